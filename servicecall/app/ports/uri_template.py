"""URI template port: expands a template against a base URL and parameters."""
from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class UriTemplateExpander(Protocol):
    def expand(
        self,
        base_url: str,
        template: str,
        params: Mapping[str, Any],
        strict: bool,
    ) -> str:
        """Return the absolute URL.

        With ``strict`` set, parameters not consumed by the template are
        appended as query parameters.
        """
        ...
