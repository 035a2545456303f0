# noderpc/registry/coercion.py
import json
import math
from enum import Enum
from typing import Any, Callable, Dict

from noderpc.errors import CoercionError


# ──────────────────────────────────────────────────────────────
# Type tags
# ──────────────────────────────────────────────────────────────
class TypeTag(str, Enum):
    STRING = "str"
    INTEGER = "int"
    FLOAT = "float"
    BOOLEAN = "bool"
    OBJECT = "obj"

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, tag: "str | TypeTag") -> "TypeTag":
        """Map a declared tag to a TypeTag; anything unrecognized is STRING."""
        if isinstance(tag, cls):
            return tag
        try:
            return cls(tag)
        except ValueError:
            return cls.STRING


# ──────────────────────────────────────────────────────────────
# Converters
# ──────────────────────────────────────────────────────────────
def to_string(arg: Any) -> str:
    if arg is None:
        raise CoercionError(message="cannot convert None to a string")
    if isinstance(arg, bool):
        return "true" if arg else "false"
    return str(arg)


def _to_number(arg: Any) -> float:
    if isinstance(arg, bool):
        raise CoercionError(message=f"expected a number, got {arg!r}")
    try:
        value = float(arg)
    except (TypeError, ValueError):
        raise CoercionError(message=f"expected a number, got {arg!r}") from None
    if math.isnan(value) or math.isinf(value):
        raise CoercionError(message=f"expected a finite number, got {arg!r}")
    return value


def to_integer(arg: Any) -> int | float:
    # exact integers skip the float round trip, which loses precision past 2**53
    if isinstance(arg, int) and not isinstance(arg, bool):
        return arg
    if isinstance(arg, str):
        try:
            return int(arg.strip())
        except ValueError:
            pass
    value = _to_number(arg)
    return int(value) if value.is_integer() else value


def to_float(arg: Any) -> float:
    return _to_number(arg)


def to_boolean(arg: Any) -> bool:
    if arg is True:
        return True
    if isinstance(arg, (str, int)) and not isinstance(arg, bool):
        return str(arg).strip().lower() in ("1", "true")
    return False


def to_object(arg: Any) -> Any:
    if isinstance(arg, str):
        try:
            return json.loads(arg)
        except json.JSONDecodeError as e:
            raise CoercionError(message=f"invalid JSON argument: {e}") from e
    return arg


CONVERTERS: Dict[TypeTag, Callable[[Any], Any]] = {
    TypeTag.STRING: to_string,
    TypeTag.INTEGER: to_integer,
    TypeTag.FLOAT: to_float,
    TypeTag.BOOLEAN: to_boolean,
    TypeTag.OBJECT: to_object,
}

# Python annotation shown in generated method signatures
ANNOTATIONS: Dict[TypeTag, Any] = {
    TypeTag.STRING: str,
    TypeTag.INTEGER: int,
    TypeTag.FLOAT: float,
    TypeTag.BOOLEAN: bool,
    TypeTag.OBJECT: Any,
}


def coerce(tag: "str | TypeTag", value: Any) -> Any:
    return CONVERTERS[TypeTag.parse(tag)](value)
