from typing import List

import requests

from dashtiles.ports.phase_table_port import PhaseTableSourcePort
from dashtiles.tools.moon_tools.moon_phase import PhaseRange, parse_phase_table
from dashtiles.utils.custom_exception import ProviderError


class HttpPhaseTableSource(PhaseTableSourcePort):
    def __init__(self, url: str, timeout: float = 10.0, session: requests.Session = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self) -> List[PhaseRange]:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            document = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(f"Phase table request to {self.url} failed: {e}") from e
        return parse_phase_table(document)
