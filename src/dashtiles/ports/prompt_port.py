from abc import ABC, abstractmethod
from typing import Optional
from dashtiles.core.widgets import WidgetRequest


class WidgetPromptPort(ABC):
    """Asks the user which widget to add."""

    @abstractmethod
    def ask(self) -> Optional[WidgetRequest]:
        """Return the chosen widget, or None when the user cancelled."""
        pass
