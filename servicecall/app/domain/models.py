"""Domain models."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from servicecall.app.constants import SUPPORTED_METHODS
from servicecall.app.domain.content import HttpContent
from servicecall.app.domain.errors import ConfigurationError


class _NoContent:
    """Result type of calls whose response body is discarded."""

    _instance: "_NoContent | None" = None

    def __new__(cls) -> "_NoContent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_CONTENT"


NO_CONTENT: Any = _NoContent()


def is_no_content(result_type: Any) -> bool:
    return result_type is NO_CONTENT or result_type is type(None)


@dataclass(frozen=True)
class RequestDescriptor:
    """Fixed description of one API call (value object)."""

    method: str
    uri_template: str
    content: HttpContent | None
    result_type: Any

    def __post_init__(self) -> None:
        if not isinstance(self.method, str) or self.method.upper() not in SUPPORTED_METHODS:
            raise ConfigurationError(f"unsupported request method: {self.method!r}")
        if self.method != self.method.upper():
            object.__setattr__(self, "method", self.method.upper())
        # An empty template is allowed and targets the base URL.
        if not isinstance(self.uri_template, str):
            raise ConfigurationError("uri_template must be a str")
        if self.result_type is None:
            raise ConfigurationError("result_type is required (use NO_CONTENT for none)")
