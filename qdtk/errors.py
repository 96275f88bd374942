"""Error types raised by the qdtk core."""

from typing import Optional


class QdtkError(Exception):
    """Base class for all qdtk errors"""


class ConfigError(QdtkError):
    """Config file is unreadable or a required setting is missing"""


class AuthenticationError(QdtkError):
    """Server rejected the credential (HTTP 401/403). Never retried."""

    def __init__(self, status_code: int):
        super().__init__(f"authentication required (HTTP {status_code})")
        self.status_code = status_code


class RequestError(QdtkError):
    """Server answered with an error status or an undecodable body."""

    def __init__(self, status_code: int, body: str, message: Optional[str] = None):
        super().__init__(message or f"HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class TransportError(QdtkError):
    """Request never completed: connection failure, TLS failure or timeout.

    ``timeout`` is set when the failure was a timeout, which is the only
    class of error the pager retries.
    """

    def __init__(self, message: str, timeout: bool = False):
        super().__init__(message)
        self.timeout = timeout


class EncodingError(QdtkError):
    """A record could not be serialized to the output stream"""


class PayloadDepthError(QdtkError):
    """Payload nesting exceeded the matcher's depth ceiling"""

    def __init__(self, max_depth: int):
        super().__init__(f"payload nested deeper than {max_depth} levels")
        self.max_depth = max_depth
