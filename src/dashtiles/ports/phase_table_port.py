from abc import ABC, abstractmethod
from typing import List
from dashtiles.tools.moon_tools.moon_phase import PhaseRange


class PhaseTableSourcePort(ABC):
    """Provider of the lunar phase table document ``{"moonPhases": [...]}``."""

    @abstractmethod
    def fetch(self) -> List[PhaseRange]:
        """Return the parsed table. Raises ProviderError on any failure."""
        pass
