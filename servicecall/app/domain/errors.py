"""Error taxonomy for a request's lifecycle.

Every error surfaces synchronously to the caller of the operation that
triggered it. Transport adapters translate library exceptions into
TransportError; non-success responses become HttpStatusError only when
automatic error-throwing is enabled.
"""
from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from servicecall.app.domain.headers import HeaderSet


class ServiceCallError(Exception):
    """Base for all errors raised by servicecall."""


class ConfigurationError(ServiceCallError, ValueError):
    """Raised when a required construction input is missing or invalid."""


class InvalidStateError(ServiceCallError, RuntimeError):
    """Raised when an operation is invoked in a state that forbids it."""


class UnsupportedStateError(ServiceCallError, RuntimeError):
    """Raised when two mutually exclusive features are combined on one request."""


class TransportError(ServiceCallError):
    """Raised when the transport call itself fails (connectivity, protocol)."""


class TransportTimeoutError(TransportError):
    """Raised when the transport call times out."""


class HttpStatusError(ServiceCallError):
    """A response completed with a non-success status code."""

    def __init__(
        self,
        status_code: int,
        status_message: str | None,
        headers: "HeaderSet",
        *,
        content: str | None = None,
        details: Any = None,
    ) -> None:
        self.status_code = status_code
        self.status_message = status_message
        self.headers = headers
        self.content = content
        self.details = details
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        message = str(self.status_code)
        if self.status_message:
            message = f"{message} {self.status_message}"
        if self.content:
            message = f"{message}\n{self.content}"
        return message
