"""Expression tree for MoLang.

A closed set of immutable node variants. Operators live in their own enums
(`BinaryOp`, `UnaryOp`) instead of being folded into the node kind, so code
that walks a tree matches on the node class and then on the operator.

Every node carries the source `offset` it was parsed from. Offsets are
diagnostics only: they do not take part in equality or hashing, so two trees
parsed from differently spaced sources compare equal.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Iterator, Tuple, Union
from typing_extensions import TypeAlias, TypeGuard, assert_never


class BinaryOp(Enum):
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    EQ = '=='
    NEQ = '!='
    LT = '<'
    LTE = '<='
    GT = '>'
    GTE = '>='
    AND = '&&'
    OR = '||'


class UnaryOp(Enum):
    NOT = '!'
    NEG = '-'


@dataclass(frozen=True)
class Literal:
    value: Union[float, str]
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class Identifier:
    name: str
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class Access:
    object: Expression
    name: str
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class Index:
    object: Expression
    index: Expression
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class Call:
    callee: Expression
    args: Tuple[Expression, ...] = ()
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class Unary:
    op: UnaryOp
    operand: Expression
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class Infix:
    op: BinaryOp
    left: Expression
    right: Expression
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class Conditional:
    condition: Expression
    then: Expression
    otherwise: Expression
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class NullCoalescing:
    left: Expression
    right: Expression
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class Assignment:
    target: LValue
    value: Expression
    offset: int = field(default=0, compare=False, repr=False)


@dataclass(frozen=True)
class Sequence:
    body: Tuple[Expression, ...]
    offset: int = field(default=0, compare=False, repr=False)


Expression: TypeAlias = Union[
    Literal,
    Identifier,
    Access,
    Index,
    Call,
    Unary,
    Infix,
    Conditional,
    NullCoalescing,
    Assignment,
    Sequence,
]

LValue: TypeAlias = Union[Identifier, Access, Index]


def is_lvalue(node: Expression) -> TypeGuard[LValue]:
    return isinstance(node, (Identifier, Access, Index))


def children(node: Expression) -> Tuple[Expression, ...]:
    match node:
        case Literal() | Identifier():
            return ()
        case Access(object=obj):
            return (obj,)
        case Index(object=obj, index=index):
            return (obj, index)
        case Call(callee=callee, args=args):
            return (callee, *args)
        case Unary(operand=operand):
            return (operand,)
        case Infix(left=left, right=right) | NullCoalescing(left=left, right=right):
            return (left, right)
        case Conditional(condition=cond, then=then, otherwise=otherwise):
            return (cond, then, otherwise)
        case Assignment(target=target, value=value):
            return (target, value)
        case Sequence(body=body):
            return body
        case _:
            assert_never(node)


def walk(node: Expression) -> Iterator[Expression]:
    """Yield `node` and all of its descendants, depth-first, left to right."""
    stack = [node]

    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(children(current)))


# ---------------- Source rendering ----------------

class Prec(IntEnum):
    SEQUENCE = 0
    ASSIGNMENT = 1
    CONDITIONAL = 2
    NULLISH = 3
    OR = 4
    AND = 5
    EQUALITY = 6
    RELATIONAL = 7
    ADDITIVE = 8
    MULTIPLICATIVE = 9
    UNARY = 10
    POSTFIX = 11
    PRIMARY = 12


BINARY_PRECEDENCE = {
    BinaryOp.OR: Prec.OR,
    BinaryOp.AND: Prec.AND,
    BinaryOp.EQ: Prec.EQUALITY,
    BinaryOp.NEQ: Prec.EQUALITY,
    BinaryOp.LT: Prec.RELATIONAL,
    BinaryOp.LTE: Prec.RELATIONAL,
    BinaryOp.GT: Prec.RELATIONAL,
    BinaryOp.GTE: Prec.RELATIONAL,
    BinaryOp.ADD: Prec.ADDITIVE,
    BinaryOp.SUB: Prec.ADDITIVE,
    BinaryOp.MUL: Prec.MULTIPLICATIVE,
    BinaryOp.DIV: Prec.MULTIPLICATIVE,
}


def precedence(node: Expression) -> Prec:
    match node:
        case Sequence():
            return Prec.SEQUENCE
        case Assignment():
            return Prec.ASSIGNMENT
        case Conditional():
            return Prec.CONDITIONAL
        case NullCoalescing():
            return Prec.NULLISH
        case Infix(op=op):
            return BINARY_PRECEDENCE[op]
        case Unary():
            return Prec.UNARY
        case Literal(value=float() as num) if num < 0:
            return Prec.UNARY
        case Access() | Index() | Call():
            return Prec.POSTFIX
        case Literal() | Identifier():
            return Prec.PRIMARY
        case _:
            assert_never(node)


def format_number(num: float) -> str:
    if num.is_integer():
        return str(int(num))

    # Decimal expands exponent forms such as 1e-05, which the lexer rejects.
    return format(Decimal(repr(num)), 'f')


def format_string(text: str) -> str:
    escaped = text.replace('\\', '\\\\').replace("'", "\\'")
    return f"'{escaped}'"


def to_source(node: Expression) -> str:
    """Render a tree as MoLang source that parses back to an equal tree."""
    match node:
        case Literal(value=str() as text):
            return format_string(text)
        case Literal(value=num):
            return format_number(num)
        case Identifier(name=name):
            return name
        case Access(object=obj, name=name):
            return f"{_operand(obj, Prec.POSTFIX)}.{name}"
        case Index(object=obj, index=index):
            return f"{_operand(obj, Prec.POSTFIX)}[{_operand(index, Prec.ASSIGNMENT)}]"
        case Call(callee=callee, args=args):
            rendered = ", ".join(_operand(arg, Prec.ASSIGNMENT) for arg in args)
            return f"{_operand(callee, Prec.POSTFIX)}({rendered})"
        case Unary(op=op, operand=operand):
            return f"{op.value}{_operand(operand, Prec.UNARY)}"
        case Infix(op=op, left=left, right=right):
            prec = BINARY_PRECEDENCE[op]
            return f"{_operand(left, prec)} {op.value} {_operand(right, prec + 1)}"
        case Conditional(condition=cond, then=then, otherwise=otherwise):
            return (
                f"{_operand(cond, Prec.NULLISH)} ? {_operand(then, Prec.ASSIGNMENT)}"
                f" : {_operand(otherwise, Prec.CONDITIONAL)}"
            )
        case NullCoalescing(left=left, right=right):
            return f"{_operand(left, Prec.NULLISH)} ?? {_operand(right, Prec.OR)}"
        case Assignment(target=target, value=value):
            return f"{_operand(target, Prec.POSTFIX)} = {_operand(value, Prec.ASSIGNMENT)}"
        case Sequence(body=body):
            return "; ".join(_operand(member, Prec.ASSIGNMENT) for member in body)
        case _:
            assert_never(node)


def _operand(node: Expression, minimum: Prec) -> str:
    text = to_source(node)

    # `1.x` would lex as the number `1.` followed by `x`.
    needs_parens = precedence(node) < minimum or (
        minimum == Prec.POSTFIX and isinstance(node, Literal) and not isinstance(node.value, str)
    )

    return f"({text})" if needs_parens else text


def pretty(node: Expression, indent: str = '  ') -> str:
    """Return an indented outline of the tree, one node per line."""
    def _pretty(n: Expression, level: int) -> str:
        pad = indent * level

        match n:
            case Literal(value=value):
                head = f'Literal {value!r}'
            case Identifier(name=name):
                head = f'Identifier {name}'
            case Access(name=name):
                head = f'Access .{name}'
            case Unary(op=op) | Infix(op=op):
                head = f'{type(n).__name__} {op.value}'
            case _:
                head = type(n).__name__

        lines = [f'{pad}{head}\n']

        for child in children(n):
            lines.append(_pretty(child, level + 1))

        return ''.join(lines)

    return _pretty(node, 0)
