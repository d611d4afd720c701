from __future__ import annotations

import inspect
import math
from collections.abc import Mapping, Sequence
from typing import Any, List, Union

from ..runtime import Frame
from ..tree import Access, Call, Expression, Identifier, Index, NullCoalescing, to_source
from ..types import (
    MISSING,
    ErrorKind,
    FunctionError,
    MolangFunction,
    Value,
    _Missing,
    ensure_value,
    is_number,
)
from .helpers import EvalFunc, is_invalid

def probe(node: Expression, frame: Frame, eval_func: EvalFunc) -> Union[Value, _Missing]:
    """Resolve a binding-shaped node without applying the missing-binding policy.

    Identifier, Access and Index nodes answer MISSING when they do not
    resolve, as does a `??` chain whose operands all fail; any other node
    is evaluated normally.
    """
    match node:
        case Identifier(name=name):
            return frame.context.lookup(name)
        case NullCoalescing(left=left, right=right):
            current = probe(left, frame, eval_func)
            if is_invalid(current):
                return probe(right, frame, eval_func)
            return current
        case Access(object=obj_node, name=name):
            obj = probe(obj_node, frame, eval_func)
            if obj is MISSING:
                return MISSING
            return get_member(obj, name)
        case Index(object=obj_node, index=idx_node):
            obj = probe(obj_node, frame, eval_func)
            idx = eval_func(idx_node, frame)
            if obj is MISSING:
                return MISSING
            return get_index(obj, idx)
        case _:
            return eval_func(node, frame)

def get_member(obj: Value, name: str) -> Union[Value, _Missing]:
    match obj:
        case Mapping():
            found = obj.get(name)
        case bool() | int() | float() | str() | MolangFunction():
            return MISSING
        case _:
            if name.startswith('_'):
                return MISSING
            found = getattr(obj, name, None)

    if found is None:
        return MISSING

    return ensure_value(found)

def get_index(obj: Value, idx: Value) -> Union[Value, _Missing]:
    match obj:
        case Mapping():
            try:
                found = obj.get(idx)
            except TypeError:
                return MISSING
        case str() | bytes():
            return MISSING
        case Sequence():
            pos = sequence_position(idx, len(obj))
            if pos is None:
                return MISSING
            found = obj[pos]
        case _:
            try:
                found = obj[idx]
            except (LookupError, TypeError):
                return MISSING

    if found is None:
        return MISSING

    return ensure_value(found)

def sequence_position(idx: Value, length: int) -> int | None:
    """Truncate a numeric index; None when it is not a valid position."""
    if isinstance(idx, bool) or not is_number(idx) or not math.isfinite(idx):
        return None

    pos = int(idx)
    if 0 <= pos < length:
        return pos

    return None

def eval_call(node: Call, frame: Frame, eval_func: EvalFunc) -> Value:
    fn = probe(node.callee, frame, eval_func)

    if fn is MISSING:
        raise FunctionError(
            f"Unknown function '{to_source(node.callee)}'", ErrorKind.UNKNOWN_FUNCTION, node.offset
        )

    args = [eval_func(arg, frame) for arg in node.args]

    return call_value(fn, args, node.callee)

def call_value(fn: Value, args: List[Value], callee: Expression) -> Value:
    """Invoke `fn`; `callee` is rendered only when the call is rejected."""
    match fn:
        case MolangFunction(fn=impl, arity=arity):
            if arity is not None and len(args) != arity:
                raise FunctionError(
                    f"Function '{to_source(callee)}' expects {arity} argument(s); got {len(args)}",
                    ErrorKind.WRONG_ARITY,
                )
            return ensure_value(impl(list(args)))
        case Mapping() | bool() | int() | float() | str():
            raise FunctionError(f"'{to_source(callee)}' is not a function", ErrorKind.UNKNOWN_FUNCTION)
        case _ if callable(fn):
            _check_signature(fn, args, callee)
            return ensure_value(fn(*args))
        case _:
            raise FunctionError(f"'{to_source(callee)}' is not a function", ErrorKind.UNKNOWN_FUNCTION)

def _check_signature(fn: Any, args: List[Value], callee: Expression) -> None:
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        # Some builtins expose no signature; let the call itself decide.
        return

    try:
        sig.bind(*args)
    except TypeError as exc:
        raise FunctionError(f"Function '{to_source(callee)}': {exc}", ErrorKind.WRONG_ARITY) from None
