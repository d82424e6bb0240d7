"""URI template expansion (RFC 6570 operators and modifiers) against a base URL.

A template that starts with a scheme replaces the base URL; any other
template is joined onto it. In strict mode, parameters the template does not
reference are appended as query parameters.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping
from urllib.parse import quote, urlencode

_EXPRESSION = re.compile(r"\{([^{}]+)\}")
_ABSOLUTE_URL = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_RESERVED = ":/?#[]@!$&'()*+,;=%"


@dataclass(frozen=True)
class _Operator:
    first: str
    separator: str
    named: bool
    if_empty: str
    allow_reserved: bool


_OPERATORS: dict[str, _Operator] = {
    "": _Operator("", ",", False, "", False),
    "+": _Operator("", ",", False, "", True),
    "#": _Operator("#", ",", False, "", True),
    ".": _Operator(".", ".", False, "", False),
    "/": _Operator("/", "/", False, "", False),
    ";": _Operator(";", ";", True, "", False),
    "?": _Operator("?", "&", True, "=", False),
    "&": _Operator("&", "&", True, "=", False),
}


@dataclass(frozen=True)
class _VarSpec:
    name: str
    explode: bool = False
    prefix: int | None = None


def _parse_expression(expression: str) -> tuple[_Operator, list[_VarSpec]]:
    operator = ""
    if expression[0] in _OPERATORS:
        operator, expression = expression[0], expression[1:]
    specs: list[_VarSpec] = []
    for raw in expression.split(","):
        raw = raw.strip()
        explode = raw.endswith("*")
        if explode:
            raw = raw[:-1]
        if ":" in raw:
            name, length = raw.split(":", 1)
            specs.append(_VarSpec(name, explode=explode, prefix=int(length)))
        else:
            specs.append(_VarSpec(raw, explode=explode))
    return _OPERATORS[operator], specs


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _encode(value: str, operator: _Operator) -> str:
    return quote(value, safe=_RESERVED if operator.allow_reserved else "")


def _expand_var(operator: _Operator, spec: _VarSpec, value: Any) -> str | None:
    if value is None:
        return None

    if isinstance(value, Mapping):
        pairs = [(_to_text(k), _to_text(v)) for k, v in value.items() if v is not None]
        if not pairs:
            return None
        if spec.explode:
            return operator.separator.join(
                f"{_encode(k, operator)}={_encode(v, operator)}" for k, v in pairs
            )
        joined = ",".join(f"{_encode(k, operator)},{_encode(v, operator)}" for k, v in pairs)
        return f"{spec.name}={joined}" if operator.named else joined

    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_to_text(v) for v in value if v is not None]
        if not items:
            return None
        if spec.explode:
            if operator.named:
                return operator.separator.join(f"{spec.name}={_encode(v, operator)}" for v in items)
            return operator.separator.join(_encode(v, operator) for v in items)
        joined = ",".join(_encode(v, operator) for v in items)
        return f"{spec.name}={joined}" if operator.named else joined

    text = _to_text(value)
    if spec.prefix is not None:
        text = text[: spec.prefix]
    encoded = _encode(text, operator)
    if operator.named:
        return f"{spec.name}={encoded}" if encoded else f"{spec.name}{operator.if_empty}"
    return encoded


def _expand_expression(expression: str, params: Mapping[str, Any]) -> str:
    operator, specs = _parse_expression(expression)
    parts = []
    for spec in specs:
        part = _expand_var(operator, spec, params.get(spec.name))
        if part is not None:
            parts.append(part)
    if not parts:
        return ""
    return operator.first + operator.separator.join(parts)


def referenced_names(template: str) -> set[str]:
    names: set[str] = set()
    for match in _EXPRESSION.finditer(template):
        _, specs = _parse_expression(match.group(1))
        names.update(spec.name for spec in specs)
    return names


def expand_template(template: str, params: Mapping[str, Any]) -> str:
    return _EXPRESSION.sub(lambda match: _expand_expression(match.group(1), params), template)


class TemplateExpander:
    """UriTemplateExpander implementation."""

    def expand(
        self,
        base_url: str,
        template: str,
        params: Mapping[str, Any],
        strict: bool,
    ) -> str:
        path = expand_template(template, params)
        if _ABSOLUTE_URL.match(template):
            url = path
        elif not path:
            url = base_url
        else:
            url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"

        if not strict:
            return url
        used = referenced_names(template)
        query: list[tuple[str, str]] = []
        for name, value in params.items():
            if name in used or value is None:
                continue
            if isinstance(value, (list, tuple)):
                query.extend((name, _to_text(v)) for v in value if v is not None)
            else:
                query.append((name, _to_text(value)))
        if not query:
            return url
        # The query goes before any fragment.
        url, hash_mark, fragment = url.partition("#")
        joiner = "&" if "?" in url else "?"
        return f"{url}{joiner}{urlencode(query, quote_via=quote)}{hash_mark}{fragment}"
