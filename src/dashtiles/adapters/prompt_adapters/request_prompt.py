from typing import Any, Dict, Optional

from dashtiles.core.widgets import WidgetRequest, WidgetType
from dashtiles.ports.prompt_port import WidgetPromptPort
from dashtiles.utils.custom_exception import InputError


class RequestPrompt(WidgetPromptPort):
    """Answers the widget prompt from a JSON body such as ``{"type": "notes", "title": "..."}``."""

    def __init__(self, payload: Optional[Dict[str, Any]]):
        self.payload = payload or {}

    def ask(self) -> Optional[WidgetRequest]:
        if self.payload.get("cancelled"):
            return None
        if "type" not in self.payload:
            raise InputError("Widget request needs a 'type'")
        content = self.payload.get("content")
        return WidgetRequest(
            type=WidgetType.parse(self.payload["type"]),
            title=str(self.payload.get("title") or ""),
            content=None if content is None else str(content),
        )
