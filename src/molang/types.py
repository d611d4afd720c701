from __future__ import annotations

import math
import struct
from collections.abc import MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union
from typing_extensions import TypeAlias, TypeGuard

# ---------- Value Model ----------

class _Missing:
    """Marker for a binding that did not resolve. Never escapes evaluation."""
    _instance: Optional['_Missing'] = None

    def __new__(cls) -> '_Missing':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<missing>"

    def __bool__(self) -> bool:
        return False

MISSING = _Missing()

HostFn = Callable[[List[Any]], Any]

@dataclass(frozen=True)
class MolangFunction:
    """Host function registered on a context; receives the ordered argument list."""
    fn: HostFn
    arity: Optional[int] = None
    name: str = "<fn>"

    def __repr__(self) -> str:
        arity = "n" if self.arity is None else str(self.arity)
        return f"<fn {self.name}/{arity}>"

class Namespace(MutableMapping):
    """Named group of bindings such as `temp` or `variable`.

    `creatable` controls whether an assignment may introduce a new key; host
    code can always write through the mapping interface.
    """

    def __init__(self, name: str, bindings: Optional[Dict[str, Any]] = None, *, creatable: bool = True):
        self.name = name
        self.creatable = creatable
        self._slots: Dict[str, Value] = {}

        if bindings:
            for key, val in bindings.items():
                self[key] = val

    def __getitem__(self, key: str) -> Value:
        return self._slots[key]

    def __setitem__(self, key: str, val: Any) -> None:
        self._slots[key] = ensure_value(val)

    def __delitem__(self, key: str) -> None:
        del self._slots[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{k}: {v!r}" for k, v in self._slots.items())
        return f"{self.name}{{{pairs}}}"

Value: TypeAlias = Union[float, str, Namespace, MolangFunction, Any]

_F32 = struct.Struct("<f")

def to_float32(num: float) -> float:
    """Round a Python float to the nearest single-precision value."""
    try:
        return _F32.unpack(_F32.pack(num))[0]
    except OverflowError:
        return math.copysign(math.inf, num)

def is_number(value: Any) -> TypeGuard[float]:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

def kind_name(value: Any) -> str:
    match value:
        case bool() | int() | float():
            return "number"
        case str():
            return "string"
        case Namespace():
            return "namespace"
        case MolangFunction():
            return "function"
        case _:
            return type(value).__name__

def coerce_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0

    if is_number(value):
        return to_float32(float(value))

    raise ExpressionError(ErrorKind.TYPE_COERCION, f"Cannot use {kind_name(value)} as a number")

def ensure_value(value: Any) -> Value:
    """Normalize a host-supplied value into the engine's value model."""
    if value is None:
        return 0.0

    if isinstance(value, (bool, int, float)):
        return coerce_number(value)

    return value

def as_bool(flag: bool) -> float:
    return 1.0 if flag else 0.0

# ---------- Exceptions ----------

class ErrorKind(Enum):
    UNKNOWN_PROPERTY = "unknown property"
    UNKNOWN_FUNCTION = "unknown function"
    WRONG_ARITY = "wrong arity"
    TYPE_COERCION = "type coercion failure"
    INVALID_INDEX = "invalid index"
    INVALID_ASSIGNMENT = "invalid assignment"
    DIVISION_BY_ZERO = "division by zero"
    FUNCTION_FAILED = "function failed"
    TOO_DEEP = "expression nested too deeply"

class MolangError(Exception):
    """Base class of every error raised by the engine."""
    offset: Optional[int]

    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.offset = offset

    def __str__(self) -> str:
        if self.offset is None:
            return self.message

        return f"{self.message} at offset {self.offset}"

class ParseError(MolangError):
    """Parse error with position info and the token set that would have been accepted."""

    def __init__(self, message: str, offset: Optional[int] = None,
                 expected: Sequence[str] = (), found: Optional[str] = None):
        super().__init__(message, offset)
        self.expected: Tuple[str, ...] = tuple(expected)
        self.found = found

class LexError(ParseError):
    """Lexical analysis error"""

    def __init__(self, message: str, offset: int, char: str):
        super().__init__(message, offset, found=char)
        self.char = char

class ExpressionError(MolangError):
    """Evaluation-time failure. `offset` is attached by the evaluator when known."""

    def __init__(self, kind: ErrorKind, message: str, offset: Optional[int] = None):
        super().__init__(message, offset)
        self.kind = kind

class FunctionError(ExpressionError):
    """Unknown function, wrong arity, or a failure reported by a host function."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.FUNCTION_FAILED, offset: Optional[int] = None):
        super().__init__(kind, message, offset)
