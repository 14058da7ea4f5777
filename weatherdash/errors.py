from typing import Any, Dict, Optional


class ProxyError(Exception):
    """Base error for the proxy routes; rendered as a JSON ``{error}`` envelope."""

    status_code = 500

    def __init__(
        self,
        error: str,
        *,
        message: Optional[str] = None,
        details: Any = None,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(error)
        self.error = error
        self.message = message
        self.details = details
        self.extra = extra or {}
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        if self.details is not None:
            body["details"] = self.details
        body.update(self.extra)
        return body


class BadRequest(ProxyError):
    status_code = 400


class NotFound(ProxyError):
    status_code = 404


class UpstreamError(ProxyError):
    """Upstream answered with a non-2xx status or a body we cannot use."""

    status_code = 502


class InternalError(ProxyError):
    status_code = 500


class ClientFetchError(Exception):
    """Dashboard-side failure talking to the proxy (network, status or parse)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
