import json
import os
from typing import List

from dashtiles.ports.phase_table_port import PhaseTableSourcePort
from dashtiles.tools.moon_tools.moon_phase import PhaseRange, parse_phase_table
from dashtiles.utils import BASE_DIR
from dashtiles.utils.custom_exception import ProviderError

BUNDLED_PHASE_TABLE = os.path.join(BASE_DIR, "data", "moon_phases.json")


class FilePhaseTableSource(PhaseTableSourcePort):
    """Reads the phase table from a JSON file, the bundled eight-phase table by default."""

    def __init__(self, path: str = BUNDLED_PHASE_TABLE):
        self.path = path

    def fetch(self) -> List[PhaseRange]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ProviderError(f"Cannot read phase table {self.path}: {e}") from e
        return parse_phase_table(document)
