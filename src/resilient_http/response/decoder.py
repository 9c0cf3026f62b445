"""Response body decoders.

A decoder reads a byte source into a caller-supplied mutable target. Format
errors (malformed payload, schema mismatch) are raised verbatim so callers
can tell them apart from a missing source (NilSourceError) and an unusable
target (InvalidTargetError).

Writable targets:
    - non-frozen pydantic model instances (validated, then fields assigned)
    - non-frozen dataclass instances (validated via TypeAdapter)
    - MutableMapping (updated with a JSON object)
    - MutableSequence (replaced by a JSON array)

Example:
    >>> class User(BaseModel):
    ...     name: str = ""
    >>> user = User()
    >>> JsonDecoder().decode(b'{"name": "ada"}', user)
    >>> user.name
    'ada'
"""

from __future__ import annotations

import dataclasses
from collections.abc import MutableMapping, MutableSequence
from enum import StrEnum
from functools import lru_cache
from typing import IO, Protocol, runtime_checkable

import orjson
from pydantic import BaseModel, TypeAdapter

from ..errors import InvalidTargetError, NilSourceError, UnknownDecoderTypeError

DecodeSource = bytes | bytearray | memoryview | IO[bytes]


@runtime_checkable
class BodyDecoder(Protocol):
    """Protocol for body decoders."""

    def decode(self, source: DecodeSource | None, target: object) -> None:
        """Decode ``source`` into ``target`` in place."""
        ...


class DecoderType(StrEnum):
    UNKNOWN = "unknown"
    JSON = "json"


def _read(source: DecodeSource) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    return source.read()


def _check_target(target: object) -> None:
    """Reject targets that could not be updated in place."""
    if target is None:
        raise InvalidTargetError("decode target is None")
    if isinstance(target, type):
        raise InvalidTargetError(f"decode target must be an instance, got class {target.__name__}")
    if isinstance(target, BaseModel):
        if target.model_config.get("frozen"):
            raise InvalidTargetError(f"non-writable target {type(target).__name__} (frozen model)")
        return
    if dataclasses.is_dataclass(target):
        if type(target).__dataclass_params__.frozen:  # type: ignore[attr-defined]
            raise InvalidTargetError(f"non-writable target {type(target).__name__} (frozen dataclass)")
        return
    if isinstance(target, (MutableMapping, MutableSequence)):
        return
    raise InvalidTargetError(f"non-writable target {type(target).__name__}")


@lru_cache(maxsize=128)
def _dataclass_adapter(cls: type) -> TypeAdapter:
    return TypeAdapter(cls)


def _assign(payload: object, target: object) -> None:
    """Copy a parsed payload into target.

    Objects are validated merged over the target's current state, so fields
    missing from the payload keep their values. Validation happens before
    any mutation.
    """
    expected = list if isinstance(target, MutableSequence) else dict
    if not isinstance(payload, expected):
        raise InvalidTargetError(f"cannot decode JSON {type(payload).__name__} into {type(target).__name__}")

    if isinstance(target, BaseModel):
        cls = type(target)
        keys = {name: field.alias or name for name, field in cls.model_fields.items()}
        parsed = cls.model_validate({**{key: getattr(target, name) for name, key in keys.items()}, **payload})
        for name, key in keys.items():
            if key in payload or name in payload:
                setattr(target, name, getattr(parsed, name))
    elif dataclasses.is_dataclass(target):
        fields = [f.name for f in dataclasses.fields(target) if f.init]
        current = {name: getattr(target, name) for name in fields}
        parsed = _dataclass_adapter(type(target)).validate_python({**current, **payload})
        for name in fields:
            if name in payload:
                setattr(target, name, getattr(parsed, name))
    elif isinstance(target, MutableMapping):
        target.update(payload)  # type: ignore[call-overload]
    else:
        target[:] = payload  # type: ignore[index]


class JsonDecoder:
    """Decodes JSON bodies using orjson."""

    __slots__ = ()

    def decode(self, source: DecodeSource | None, target: object) -> None:
        if source is None:
            raise NilSourceError()
        _check_target(target)
        payload = orjson.loads(_read(source))
        _assign(payload, target)

    def __repr__(self) -> str:
        return "JsonDecoder()"


def decoder_for(decoder_type: DecoderType | str) -> BodyDecoder:
    """Get the decoder implementing ``decoder_type``."""
    if decoder_type == DecoderType.JSON:
        return JsonDecoder()
    raise UnknownDecoderTypeError(decoder_type)
