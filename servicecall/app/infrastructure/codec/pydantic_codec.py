"""JSON object codec backed by pydantic TypeAdapters."""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, TypeAdapter

JSON_CONTENT_TYPE = "application/json; charset=UTF-8"


@lru_cache(maxsize=256)
def _adapter(target_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target_type)


class PydanticJsonCodec:
    """ObjectCodec implementation: any type pydantic can validate (models, dataclasses, dict, list...).

    Decoding failures surface as pydantic.ValidationError, which is a ValueError.
    """

    content_type = JSON_CONTENT_TYPE

    def decode(self, data: bytes, target_type: Any) -> Any:
        if target_type is bytes:
            return bytes(data)
        if target_type is str:
            return data.decode("utf-8")
        return _adapter(target_type).validate_json(data)

    def encode(self, value: Any) -> bytes:
        if isinstance(value, BaseModel):
            return value.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        return _adapter(type(value)).dump_json(value, exclude_none=True)
