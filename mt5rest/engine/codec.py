"""JSON parsing and JSON -> dataclass structuring for gateway payloads."""

from __future__ import annotations

import dataclasses
import datetime
import functools
import platform
import types
import typing
from typing import Any, Final

from mt5rest.engine.errors import DecodeError

ourjson: types.ModuleType
# Only use orjson under CPython, else use default json (because `json` under pypy is faster than orjson)
if platform.python_implementation() == "CPython":
    import orjson

    ourjson = orjson
else:
    import json

    ourjson = json

# dataclass field metadata key for payload keys that aren't valid python names
WIRE: Final = "wire"


def wire(name: str, **kwargs) -> Any:
    """Declare a dataclass field whose JSON key differs from the attribute name."""
    return dataclasses.field(metadata={WIRE: name}, **kwargs)


def loads(raw: bytes | str) -> Any:
    try:
        return ourjson.loads(raw)
    except (ValueError, TypeError) as e:
        # both orjson.JSONDecodeError and json.JSONDecodeError are ValueErrors
        raise DecodeError(f"invalid JSON: {e}") from e


@functools.cache
def _hints(cls: type) -> dict[str, Any]:
    return typing.get_type_hints(cls)


@functools.cache
def wireNames(cls: type) -> frozenset[str]:
    """All JSON keys a dataclass knows how to read."""
    return frozenset(f.metadata.get(WIRE, f.name) for f in dataclasses.fields(cls))


def structure[T](cls: type[T], data: Any) -> T:
    """Build dataclass `cls` from a decoded JSON object.

    Unknown keys are ignored and missing (or null) keys keep the field default.
    A value of the wrong JSON type anywhere in the tree raises DecodeError.
    """
    if not isinstance(data, dict):
        raise DecodeError(f"{cls.__name__}: expected object, got {type(data).__name__}")

    hints = _hints(cls)
    kwargs = {}
    for f in dataclasses.fields(cls):  # type: ignore[arg-type]
        key = f.metadata.get(WIRE, f.name)
        if (value := data.get(key)) is None:
            continue

        kwargs[f.name] = _convert(hints[f.name], value, f"{cls.__name__}.{f.name}")

    return cls(**kwargs)


def _convert(tp: Any, value: Any, where: str) -> Any:
    if tp is Any:
        return value

    origin = typing.get_origin(tp)

    # Optional[X] / X | None
    if origin is types.UnionType or origin is typing.Union:
        if value is None:
            return None

        (inner,) = [a for a in typing.get_args(tp) if a is not type(None)]
        return _convert(inner, value, where)

    if origin is list:
        if not isinstance(value, list):
            raise DecodeError(f"{where}: expected array, got {type(value).__name__}")

        (inner,) = typing.get_args(tp)
        return [_convert(inner, v, where) for v in value]

    if origin is dict:
        if not isinstance(value, dict):
            raise DecodeError(f"{where}: expected object, got {type(value).__name__}")

        _, inner = typing.get_args(tp)
        return {k: _convert(inner, v, where) for k, v in value.items()}

    if dataclasses.is_dataclass(tp):
        return structure(tp, value)

    if tp is str:
        if isinstance(value, str):
            return value
    elif tp is bool:
        if isinstance(value, bool):
            return value
    elif tp is int:
        # note: bool is an int subclass, but JSON true/false is never a number
        if isinstance(value, int) and not isinstance(value, bool):
            return value

        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif tp is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif tp is datetime.datetime:
        if isinstance(value, str):
            try:
                return datetime.datetime.fromisoformat(value)
            except ValueError as e:
                raise DecodeError(f"{where}: bad timestamp {value!r}") from e
    else:
        raise DecodeError(f"{where}: unsupported field type {tp!r}")

    raise DecodeError(f"{where}: expected {getattr(tp, '__name__', tp)}, got {type(value).__name__}")
