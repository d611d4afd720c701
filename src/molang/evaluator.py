from __future__ import annotations

from typing import Callable, Optional

from typing_extensions import assert_never

from .config import DEFAULT_CONFIG, EngineConfig
from .runtime import Context, Frame
from .tree import (
    Access,
    Assignment,
    Call,
    Conditional,
    Expression,
    Identifier,
    Index,
    Infix,
    Literal,
    NullCoalescing,
    Sequence,
    Unary,
    to_source,
)
from .types import MISSING, ErrorKind, ExpressionError, MolangError, Value

from .eval.helpers import EvalFunc
from .eval.chains import eval_call, probe
from .eval.expr import eval_infix, eval_nullish, eval_ternary, eval_unary
from .eval.bind import eval_assignment

Handler = Callable[[Expression, Frame, EvalFunc], Value]

__all__ = ["eval_expr", "eval_node", "run_guarded", "handler_for", "attach_location", "Handler"]


def attach_location(exc: MolangError, node: Expression) -> None:
    """Record the innermost failing node's offset; outer frames leave it alone."""
    if exc.offset is None:
        exc.offset = node.offset

# ---------------- Public API ----------------

def eval_expr(
    ast: Expression,
    context: Optional[Context] = None,
    config: Optional[EngineConfig] = None,
) -> Value:
    """Evaluate a parsed tree against `context` (a fresh one when omitted)."""
    if context is None:
        context = Context()

    frame = Frame(context, config or DEFAULT_CONFIG)
    context.begin_evaluation()

    return run_guarded(eval_node, ast, frame)

def run_guarded(entry: EvalFunc, ast: Expression, frame: Frame) -> Value:
    """Run `entry` on the root node, reporting stack exhaustion as an ExpressionError."""
    try:
        return entry(ast, frame)
    except RecursionError:
        raise ExpressionError(ErrorKind.TOO_DEEP, "Expression nested too deeply", ast.offset) from None

# ---------------- Core evaluator ----------------

def eval_node(n: Expression, frame: Frame) -> Value:
    try:
        return handler_for(n)(n, frame, eval_node)
    except MolangError as e:
        attach_location(e, n)
        raise

def handler_for(n: Expression) -> Handler:
    match n:
        case Literal():
            return _eval_literal
        case Identifier():
            return _eval_identifier
        case Access():
            return _eval_access
        case Index():
            return _eval_index
        case Call():
            return eval_call
        case Unary():
            return eval_unary
        case Infix():
            return eval_infix
        case Conditional():
            return eval_ternary
        case NullCoalescing():
            return eval_nullish
        case Assignment():
            return eval_assignment
        case Sequence():
            return _eval_sequence
        case _:
            assert_never(n)

# ---------------- Bindings ----------------

def _eval_literal(n: Literal, frame: Frame, eval_func: EvalFunc) -> Value:
    return n.value

def _eval_identifier(n: Identifier, frame: Frame, eval_func: EvalFunc) -> Value:
    found = frame.context.lookup(n.name)

    if found is MISSING:
        return frame.missing(ErrorKind.UNKNOWN_PROPERTY, f"Unknown identifier '{n.name}'", n.offset)

    return found

def _eval_access(n: Access, frame: Frame, eval_func: EvalFunc) -> Value:
    found = probe(n, frame, eval_func)

    if found is MISSING:
        return frame.missing(ErrorKind.UNKNOWN_PROPERTY, f"Unknown property '{to_source(n)}'", n.offset)

    return found

def _eval_index(n: Index, frame: Frame, eval_func: EvalFunc) -> Value:
    found = probe(n, frame, eval_func)

    if found is MISSING:
        return frame.missing(ErrorKind.INVALID_INDEX, f"Invalid index '{to_source(n)}'", n.offset)

    return found

def _eval_sequence(n: Sequence, frame: Frame, eval_func: EvalFunc) -> Value:
    result: Value = 0.0

    for member in n.body:
        result = eval_func(member, frame)

    return result
