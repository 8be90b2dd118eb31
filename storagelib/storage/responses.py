"""Capture of service response metadata that the SDK does not return directly."""

from typing import Any, Optional

REQUEST_ID_HEADER = "x-ms-request-id"


class RequestIdRecorder:
    """
    Callable passed to SDK operations as ``raw_response_hook``.

    Several SDK calls (queue create/delete, send message) do not hand back the
    service request id; the hook sees the raw pipeline response and keeps it.
    """

    def __init__(self):
        self.request_id: Optional[str] = None

    def __call__(self, response: Any) -> None:
        http_response = getattr(response, "http_response", response)
        headers = getattr(http_response, "headers", None) or {}
        self.request_id = headers.get(REQUEST_ID_HEADER)

    def resolve(self, result: Any = None) -> Optional[str]:
        """Return the recorded request id, falling back to a headers dict result."""
        if self.request_id is None and isinstance(result, dict):
            return result.get("request_id") or result.get(REQUEST_ID_HEADER)
        return self.request_id
