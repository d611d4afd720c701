from __future__ import annotations

from typing_extensions import assert_never

from ..runtime import Frame
from ..tree import BinaryOp, Conditional, Infix, NullCoalescing, Unary, UnaryOp
from ..types import ErrorKind, ExpressionError, Value, as_bool, coerce_number, to_float32
from .chains import probe
from .helpers import EvalFunc, is_invalid, is_truthy

def eval_unary(node: Unary, frame: Frame, eval_func: EvalFunc) -> Value:
    rhs = eval_func(node.operand, frame)

    match node.op:
        case UnaryOp.NOT:
            return as_bool(not is_truthy(rhs))
        case UnaryOp.NEG:
            return -coerce_number(rhs)
        case _:
            assert_never(node.op)

def eval_infix(node: Infix, frame: Frame, eval_func: EvalFunc) -> Value:
    if node.op in (BinaryOp.AND, BinaryOp.OR):
        return eval_logical(node, frame, eval_func)

    lhs = eval_func(node.left, frame)
    rhs = eval_func(node.right, frame)

    return apply_binary_operator(node.op, lhs, rhs, frame)

def eval_logical(node: Infix, frame: Frame, eval_func: EvalFunc) -> Value:
    # The right operand is only reached when the left one leaves the result open.
    lhs = is_truthy(eval_func(node.left, frame))

    if node.op is BinaryOp.AND and not lhs:
        return 0.0

    if node.op is BinaryOp.OR and lhs:
        return 1.0

    return as_bool(is_truthy(eval_func(node.right, frame)))

def apply_binary_operator(op: BinaryOp, lhs: Value, rhs: Value, frame: Frame) -> Value:
    match op:
        case BinaryOp.EQ:
            return as_bool(values_equal(lhs, rhs))
        case BinaryOp.NEQ:
            return as_bool(not values_equal(lhs, rhs))
        case BinaryOp.AND:
            return as_bool(is_truthy(lhs) and is_truthy(rhs))
        case BinaryOp.OR:
            return as_bool(is_truthy(lhs) or is_truthy(rhs))

    a = coerce_number(lhs)
    b = coerce_number(rhs)

    match op:
        case BinaryOp.ADD:
            return to_float32(a + b)
        case BinaryOp.SUB:
            return to_float32(a - b)
        case BinaryOp.MUL:
            return to_float32(a * b)
        case BinaryOp.DIV:
            if b == 0.0:
                if frame.config.strict_division:
                    raise ExpressionError(ErrorKind.DIVISION_BY_ZERO, "Division by zero")
                return 0.0
            return to_float32(a / b)
        case BinaryOp.LT:
            return as_bool(a < b)
        case BinaryOp.LTE:
            return as_bool(a <= b)
        case BinaryOp.GT:
            return as_bool(a > b)
        case BinaryOp.GTE:
            return as_bool(a >= b)
        case _:
            raise ExpressionError(ErrorKind.TYPE_COERCION, f"Unsupported operator {op.value}")

def values_equal(lhs: Value, rhs: Value) -> bool:
    lhs_text = isinstance(lhs, str)
    rhs_text = isinstance(rhs, str)

    if lhs_text or rhs_text:
        return lhs_text and rhs_text and lhs == rhs

    if isinstance(lhs, (bool, int, float)) and isinstance(rhs, (bool, int, float)):
        return coerce_number(lhs) == coerce_number(rhs)

    return lhs is rhs or lhs == rhs

def eval_nullish(node: NullCoalescing, frame: Frame, eval_func: EvalFunc) -> Value:
    current = probe(node.left, frame, eval_func)

    if is_invalid(current):
        return eval_func(node.right, frame)

    return current

def eval_ternary(node: Conditional, frame: Frame, eval_func: EvalFunc) -> Value:
    cond_val = eval_func(node.condition, frame)

    if is_truthy(cond_val):
        return eval_func(node.then, frame)

    return eval_func(node.otherwise, frame)
