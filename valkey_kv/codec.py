"""
JSON value codec.

Values are written as UTF-8 JSON. Reads validate the JSON into a target
type through pydantic, so the caller names the type it wants back instead
of handing over a container to fill in.
"""

import functools
import json
from typing import Any, Type, TypeVar, Union

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from .config import ValueDecodeError, ValueEncodeError

T = TypeVar("T")


@functools.lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def encode(value: Any) -> bytes:
    """
    Serialize a value to JSON bytes.

    Dataclasses, pydantic models, datetimes and the usual containers are
    supported. NaN and infinities are refused, they have no JSON form.

    Raises:
        ValueEncodeError: If the value is not serializable
    """
    try:
        text = json.dumps(
            value,
            default=to_jsonable_python,
            allow_nan=False,
            ensure_ascii=False,
            separators=(",", ":"),
        )
        return text.encode("utf-8")
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise ValueEncodeError(f"Cannot encode {type(value).__name__}: {e}") from e


def decode(data: Union[bytes, str], target: Type[T] = Any, strict: bool = False) -> T:
    """
    Parse JSON data into an instance of ``target``.

    Args:
        data: Raw reply from the server
        target: Type to validate into; ``Any`` returns the plain JSON value
        strict: Refuse cross-type coercions such as ``"1"`` to ``int``

    Raises:
        ValueDecodeError: If the data is not valid JSON for ``target``
    """
    try:
        adapter = _adapter(target)
    except TypeError:
        # unhashable typing construct
        adapter = TypeAdapter(target)

    try:
        return adapter.validate_json(data, strict=strict)
    except ValidationError as e:
        raise ValueDecodeError(f"Cannot decode value as {_type_name(target)}: {e}") from e


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", None) or repr(target)
