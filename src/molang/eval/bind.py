from __future__ import annotations

from collections.abc import MutableMapping, MutableSequence

from ..runtime import Frame
from ..tree import Access, Assignment, Identifier, Index, to_source
from ..types import MISSING, ErrorKind, ExpressionError, Namespace, Value, kind_name
from .chains import probe, sequence_position
from .helpers import EvalFunc

__all__ = [
    "eval_assignment",
    "assign_ident",
    "set_member",
    "set_index",
]

def eval_assignment(node: Assignment, frame: Frame, eval_func: EvalFunc) -> Value:
    value = eval_func(node.value, frame)
    target = node.target

    match target:
        case Identifier(name=name):
            assign_ident(name, value, frame)
        case Access(object=obj_node, name=name):
            recv = probe(obj_node, frame, eval_func)
            if recv is MISSING:
                raise ExpressionError(
                    ErrorKind.INVALID_ASSIGNMENT,
                    f"Cannot assign to '{to_source(target)}': '{to_source(obj_node)}' is not defined",
                    target.offset,
                )
            set_member(recv, name, value)
        case Index(object=obj_node, index=idx_node):
            recv = probe(obj_node, frame, eval_func)
            idx = eval_func(idx_node, frame)
            if recv is MISSING:
                raise ExpressionError(
                    ErrorKind.INVALID_ASSIGNMENT,
                    f"Cannot assign to '{to_source(target)}': '{to_source(obj_node)}' is not defined",
                    target.offset,
                )
            set_index(recv, idx, value)

    return value

def assign_ident(name: str, value: Value, frame: Frame) -> Value:
    """Bind a root-level name; namespaces themselves cannot be rebound."""
    current = frame.context.lookup(name)

    if isinstance(current, Namespace):
        raise ExpressionError(ErrorKind.INVALID_ASSIGNMENT, f"Cannot rebind namespace '{name}'")

    frame.context.assign(name, value)
    return value

def set_member(recv: Value, name: str, value: Value) -> Value:
    """Assign `recv.name = value`, honoring namespace creation rules."""
    match recv:
        case Namespace():
            if name not in recv and not recv.creatable:
                raise ExpressionError(
                    ErrorKind.INVALID_ASSIGNMENT,
                    f"Namespace '{recv.name}' has no member '{name}'",
                )
            recv[name] = value
            return value
        case MutableMapping():
            recv[name] = value
            return value
        case bool() | int() | float() | str():
            raise ExpressionError(
                ErrorKind.INVALID_ASSIGNMENT,
                f"Cannot set field '{name}' on {kind_name(recv)}",
            )
        case _:
            if name.startswith('_') or not hasattr(recv, name):
                raise ExpressionError(
                    ErrorKind.INVALID_ASSIGNMENT,
                    f"Cannot set field '{name}' on {kind_name(recv)}",
                )
            try:
                setattr(recv, name, value)
            except AttributeError as exc:
                raise ExpressionError(
                    ErrorKind.INVALID_ASSIGNMENT,
                    f"Field '{name}' is read-only: {exc}",
                ) from None
            return value

def set_index(recv: Value, idx: Value, value: Value) -> Value:
    """Assign `recv[idx] = value` for host mappings and lists."""
    match recv:
        case Namespace():
            if not isinstance(idx, str):
                raise ExpressionError(
                    ErrorKind.INVALID_INDEX,
                    f"Namespace '{recv.name}' is indexed by name, not {kind_name(idx)}",
                )
            return set_member(recv, idx, value)
        case MutableMapping():
            recv[idx] = value
            return value
        case MutableSequence():
            pos = sequence_position(idx, len(recv))
            if pos is None:
                raise ExpressionError(ErrorKind.INVALID_INDEX, f"Index {idx!r} is out of range")
            recv[pos] = value
            return value
        case _:
            raise ExpressionError(
                ErrorKind.INVALID_ASSIGNMENT,
                f"Cannot assign by index into {kind_name(recv)}",
            )
