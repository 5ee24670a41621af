"""Response decoding.

Responsibility:
- Turn a response body (bytes/str JSON or an already parsed tree) into typed models.
- Never lose data: keys the model does not declare end up in `unknown_fields`.
- Report schema violations as `DecodeError(field, expected, actual)`.

Keys are normalized once, here at the boundary (every key becomes a `str`), so the
models never have to branch on key types.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from types import UnionType
from typing import Any, Generic, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError

from tinker_http.core.errors import DecodeError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_JSON_TYPES: dict[type, str] = {
    dict: "object",
    list: "array",
    tuple: "array",
    str: "string",
    bool: "boolean",
    int: "integer",
    float: "number",
    type(None): "null",
}


def describe_value(value: Any) -> str:
    for kind, name in _JSON_TYPES.items():
        if type(value) is kind:
            return name
    return type(value).__name__


def _key(key: Any) -> str:
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, bytes):
        return key.decode("utf-8")
    return str(key)


def normalize_keys(payload: Any) -> Any:
    """Recursively convert every mapping key to `str`."""

    if isinstance(payload, dict):
        return {_key(k): normalize_keys(v) for k, v in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [normalize_keys(item) for item in payload]
    return payload


def decode_json_body(body: bytes | str) -> Any:
    """Parse a JSON body; an empty body decodes to None."""

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("<body>", "utf-8 JSON", "undecodable bytes") from exc
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise DecodeError("<body>", "JSON document", f"invalid JSON ({exc.msg})") from exc


def _type_name(annotation: Any) -> str:
    if get_origin(annotation) in (Union, UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return " | ".join(_type_name(arg) for arg in args)
    return getattr(annotation, "__name__", None) or str(annotation)


def _expected_for(model_cls: type[BaseModel], err: dict[str, Any]) -> str:
    loc = err.get("loc", ())
    if len(loc) == 1 and isinstance(loc[0], str):
        info = model_cls.model_fields.get(loc[0])
        if info is not None and info.annotation is not None:
            return _type_name(info.annotation)
    return str(err.get("type", "valid value"))


def _decode_error(model_cls: type[BaseModel], exc: ValidationError) -> DecodeError:
    err = exc.errors()[0]
    loc = err.get("loc", ())
    field_path = ".".join(str(part) for part in loc) or "<root>"
    if err.get("type") == "missing":
        actual = "missing"
    else:
        actual = describe_value(err.get("input"))
    return DecodeError(
        field_path,
        _expected_for(model_cls, err),
        actual,
        message=f"{model_cls.__name__}.{field_path}: {err.get('msg')} (got {actual})",
    )


def decode(model_cls: type[ModelT], payload: Any) -> ModelT:
    """Decode one payload into `model_cls`.

    `payload` may be raw JSON (bytes/str) or a parsed value. A bare scalar is only
    accepted by models that declare a `legacy_scalar_field`.
    """

    if isinstance(payload, (bytes, bytearray)):
        payload = decode_json_body(bytes(payload))
    try:
        return model_cls.model_validate(normalize_keys(payload))
    except ValidationError as exc:
        raise _decode_error(model_cls, exc) from exc


@dataclass
class DecodedBatch(Generic[ModelT]):
    """Result of `decode_many`: decoded items plus the records that were skipped."""

    items: list[ModelT] = field(default_factory=list)
    errors: list[tuple[int, DecodeError]] = field(default_factory=list)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def decode_many(
    model_cls: type[ModelT],
    records: Iterable[Any],
    *,
    skip_invalid: bool = False,
) -> DecodedBatch[ModelT]:
    """Decode each record independently.

    - `skip_invalid=False` (default): the first malformed record fails the whole call.
    - `skip_invalid=True`: malformed records are left out and reported in `errors`.
    """

    if isinstance(records, (bytes, bytearray, str)):
        records = decode_json_body(records)  # type: ignore[arg-type]
    if records is None or isinstance(records, dict) or not isinstance(records, Iterable):
        raise DecodeError("<root>", "array", describe_value(records))

    batch: DecodedBatch[ModelT] = DecodedBatch()
    for index, record in enumerate(records):
        try:
            batch.items.append(decode(model_cls, record))
        except DecodeError as exc:
            if not skip_invalid:
                field = f"[{index}]" if exc.field == "<root>" else f"[{index}].{exc.field}"
                raise DecodeError(field, exc.expected, exc.actual) from exc
            logger.warning("Skipping record %d for %s: %s", index, model_cls.__name__, exc)
            batch.errors.append((index, exc))
    return batch
