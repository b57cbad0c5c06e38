# models/backend.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class BackendResponse(BaseModel):
    """
    Uniform result of every financial backend call.
    `error` is safe to show to the user; `detail` is for logs only.
    """

    success: bool = True
    data: Any = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def ok(cls, body: Any = None) -> "BackendResponse":
        if isinstance(body, dict):
            return cls(success=True, data=body, payload=body)
        return cls(success=True, data=body)

    @classmethod
    def fail(cls, error: str, detail: Optional[str] = None) -> "BackendResponse":
        return cls(success=False, error=error, detail=detail)

    @property
    def items(self) -> List[Dict[str, Any]]:
        """List payload of the response, whether it came bare or wrapped in `data`."""
        if isinstance(self.data, list):
            return self.data
        if isinstance(self.payload.get("data"), list):
            return self.payload["data"]
        return []

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)
