"""Method override: carry a verb the transport cannot send through a header.

Modeled as a pure transform ``(method, headers) -> (wire_method, headers')``;
the caller's header set is never mutated.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from servicecall.app.constants import HEADER, HTTP_METHOD
from servicecall.app.domain.headers import HeaderSet


@dataclass(frozen=True)
class OverrideResult:
    wire_method: str
    headers: HeaderSet
    # An overridden verb goes out as POST, which must carry a length header.
    needs_empty_content: bool = False


@dataclass(frozen=True)
class MethodOverride:
    override_all_methods: bool = False

    def should_override(self, method: str, supports_method: Callable[[str], bool]) -> bool:
        if method in (HTTP_METHOD.GET, HTTP_METHOD.POST):
            return False
        if self.override_all_methods:
            return True
        return not supports_method(method)

    def apply(
        self,
        method: str,
        headers: HeaderSet,
        supports_method: Callable[[str], bool],
        *,
        has_content: bool = False,
    ) -> OverrideResult:
        if not self.should_override(method, supports_method):
            return OverrideResult(wire_method=method, headers=headers.copy())
        overridden = headers.copy()
        overridden[HEADER.METHOD_OVERRIDE] = method
        return OverrideResult(
            wire_method=HTTP_METHOD.POST,
            headers=overridden,
            needs_empty_content=not has_content,
        )
