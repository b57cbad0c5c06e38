# core/errors.py
from typing import Optional


class AssistantError(Exception):
    """Base class for failures raised inside the assistant pipeline."""


class ClassificationFailure(AssistantError):
    """The intent classifier was unreachable or returned something unusable."""


class BackendCallFailure(AssistantError):
    """
    A call to the financial backend failed (transport error or non-2xx).
    `detail` is technical and meant for logs, never for the user.
    """

    def __init__(self, operation: str, detail: str, status_code: Optional[int] = None):
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
