from __future__ import annotations

import pytest

from molang.tree import (
    Access,
    Assignment,
    BinaryOp,
    Call,
    Conditional,
    Identifier,
    Index,
    Infix,
    Literal,
    NullCoalescing,
    Sequence,
    Unary,
    UnaryOp,
)
from molang.parser_rd import parse_expr_fragment
from tests.support.harness import LexError, ParseError, parse_rd


def num(value: float) -> Literal:
    return Literal(float(value))


def ident(name: str) -> Identifier:
    return Identifier(name)


def path(*names: str):
    node = ident(names[0])
    for name in names[1:]:
        node = Access(node, name)
    return node


PARSER_GRAMMAR_CASES = [
    ("number", "1", num(1)),
    ("number-fraction", "0.5", num(0.5)),
    ("number-trailing-point", "2.", num(2)),
    ("string", "'hi'", Literal("hi")),
    ("true-constant", "true", num(1)),
    ("false-constant", "false", num(0)),
    ("identifier", "foo", ident("foo")),
    ("grouping", "((x))", ident("x")),
    ("add-left-assoc", "1 - 2 - 3", Infix(BinaryOp.SUB, Infix(BinaryOp.SUB, num(1), num(2)), num(3))),
    ("mul-binds-tighter", "1 + 2 * 3", Infix(BinaryOp.ADD, num(1), Infix(BinaryOp.MUL, num(2), num(3)))),
    ("parens-override", "(1 + 2) * 3", Infix(BinaryOp.MUL, Infix(BinaryOp.ADD, num(1), num(2)), num(3))),
    ("div-left-assoc", "8 / 4 / 2", Infix(BinaryOp.DIV, Infix(BinaryOp.DIV, num(8), num(4)), num(2))),
    (
        "relational-over-equality",
        "a < b == c > d",
        Infix(
            BinaryOp.EQ,
            Infix(BinaryOp.LT, ident("a"), ident("b")),
            Infix(BinaryOp.GT, ident("c"), ident("d")),
        ),
    ),
    (
        "and-over-or",
        "a || b && c",
        Infix(BinaryOp.OR, ident("a"), Infix(BinaryOp.AND, ident("b"), ident("c"))),
    ),
    (
        "or-over-nullish",
        "a ?? b || c",
        NullCoalescing(ident("a"), Infix(BinaryOp.OR, ident("b"), ident("c"))),
    ),
    (
        "nullish-left-assoc",
        "a ?? b ?? c",
        NullCoalescing(NullCoalescing(ident("a"), ident("b")), ident("c")),
    ),
    (
        "ternary-right-assoc",
        "a ? b : c ? d : e",
        Conditional(ident("a"), ident("b"), Conditional(ident("c"), ident("d"), ident("e"))),
    ),
    (
        "ternary-over-nullish",
        "a ?? b ? 1 : 2",
        Conditional(NullCoalescing(ident("a"), ident("b")), num(1), num(2)),
    ),
    (
        "ternary-then-assignment",
        "c ? x = 1 : 2",
        Conditional(ident("c"), Assignment(ident("x"), num(1)), num(2)),
    ),
    (
        "assignment-right-assoc",
        "a = b = 3",
        Assignment(ident("a"), Assignment(ident("b"), num(3))),
    ),
    (
        "assignment-of-ternary",
        "x = c ? 1 : 2",
        Assignment(ident("x"), Conditional(ident("c"), num(1), num(2))),
    ),
    ("unary-neg", "-x", Unary(UnaryOp.NEG, ident("x"))),
    ("unary-not-not", "!!x", Unary(UnaryOp.NOT, Unary(UnaryOp.NOT, ident("x")))),
    (
        "unary-binds-tighter",
        "-a * b",
        Infix(BinaryOp.MUL, Unary(UnaryOp.NEG, ident("a")), ident("b")),
    ),
    (
        "binary-then-unary-minus",
        "1 - -2",
        Infix(BinaryOp.SUB, num(1), Unary(UnaryOp.NEG, num(2))),
    ),
    ("unary-over-postfix", "-a.b", Unary(UnaryOp.NEG, path("a", "b"))),
    ("access-chain", "query.entity.health", path("query", "entity", "health")),
    ("call-no-args", "f()", Call(ident("f"), ())),
    (
        "method-call",
        "math.max(1, a + 2)",
        Call(path("math", "max"), (num(1), Infix(BinaryOp.ADD, ident("a"), num(2)))),
    ),
    ("call-then-access", "f().x", Access(Call(ident("f"), ()), "x")),
    ("index", "v.list[1]", Index(path("v", "list"), num(1))),
    (
        "index-then-call",
        "fs[0](2)",
        Call(Index(ident("fs"), num(0)), (num(2),)),
    ),
    (
        "assign-access",
        "t.a = 1",
        Assignment(path("t", "a"), num(1)),
    ),
    (
        "assign-index",
        "v.list[0] = 'x'",
        Assignment(Index(path("v", "list"), num(0)), Literal("x")),
    ),
    (
        "sequence",
        "t.a = 1; t.a + 1",
        Sequence((Assignment(path("t", "a"), num(1)), Infix(BinaryOp.ADD, path("t", "a"), num(1)))),
    ),
    ("trailing-semicolon", "1 + 2;", Infix(BinaryOp.ADD, num(1), num(2))),
    (
        "sequence-trailing-semicolon",
        "a; b;",
        Sequence((ident("a"), ident("b"))),
    ),
    (
        "argument-may-assign",
        "f(x = 1)",
        Call(ident("f"), (Assignment(ident("x"), num(1)),)),
    ),
    (
        "whitespace-everywhere",
        "\n a\t+\r\n b ",
        Infix(BinaryOp.ADD, ident("a"), ident("b")),
    ),
]


@pytest.mark.parametrize(
    "code, expected",
    [pytest.param(code, expected, id=name) for name, code, expected in PARSER_GRAMMAR_CASES],
)
def test_parser_grammar(code: str, expected: object) -> None:
    assert parse_rd(code) == expected


PARSE_ERROR_LOCATION_CASES = [
    ("missing-rpar", "f(1, 2", 6, "Expected ')'"),
    ("dangling-operator", "1 +", 3, "Expected expression"),
    ("adjacent-operands", "1 2", 2, "Unexpected number '2' after expression"),
    ("unclosed-group", "(1", 2, "Expected ')'"),
    ("ternary-without-colon", "a ? 1", 5, "Expected ':'"),
    ("literal-target", "1 = 2", 0, "invalid assignment target"),
    ("infix-target", "a + b = 3", 2, "invalid assignment target"),
    ("call-target", "f() = 3", 1, "invalid assignment target"),
    ("missing-property", "a.", 2, "Expected property name"),
    ("number-property", "a.1", 2, "Expected property name"),
    ("empty-source", "", 0, "Expected expression"),
    ("lone-semicolon", ";", 0, "Expected expression"),
    ("double-semicolon", "1;;", 2, "Expected expression"),
    ("trailing-comma", "f(1,)", 4, "Expected expression"),
    ("stray-rpar", "1)", 1, "Unexpected ')'"),
    ("empty-index", "a[]", 2, "Expected expression"),
    ("binary-prefix", "* 2", 0, "Expected expression"),
]


@pytest.mark.parametrize(
    "name,source,exp_offset,msg",
    PARSE_ERROR_LOCATION_CASES,
    ids=[c[0] for c in PARSE_ERROR_LOCATION_CASES],
)
def test_parse_error_location(name: str, source: str, exp_offset: int, msg: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_rd(source)

    err = exc_info.value
    assert msg in err.message
    assert err.offset == exp_offset, f"expected offset {exp_offset}, got {err.offset}"
    assert f"at offset {exp_offset}" in str(err)


def test_multiple_points_is_a_parse_error() -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_rd("1.2.3")

    err = exc_info.value
    assert isinstance(err, LexError)
    assert err.offset == 3


def test_parse_error_reports_expected_and_found() -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_rd("1 2")

    err = exc_info.value
    assert err.expected == ("';'", "end of input")
    assert err.found == "number '2'"


def test_invalid_target_reports_node_kind() -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_rd("a ? b : c = 1")

    assert exc_info.value.found == "Conditional"


def test_offsets_point_at_operators() -> None:
    tree = parse_rd("a + b * c")

    assert isinstance(tree, Infix)
    assert tree.offset == 2
    assert tree.right.offset == 6
    assert tree.left.offset == 0


def test_fragment_rejects_statement_separator() -> None:
    assert parse_expr_fragment("1 + 2") == Infix(BinaryOp.ADD, num(1), num(2))

    with pytest.raises(ParseError) as exc_info:
        parse_expr_fragment("1; 2")

    assert exc_info.value.offset == 1


def test_parse_stops_at_first_error() -> None:
    # A lexical error past a syntax error is never reached.
    with pytest.raises(ParseError) as exc_info:
        parse_rd("1 + ) #")

    assert not isinstance(exc_info.value, LexError)
    assert exc_info.value.offset == 4
