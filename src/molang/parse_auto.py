"""Grammar-driven reference parser.

`grammar.lark` restates the MoLang grammar for lark's LALR parser, and
`TreeBuilder` turns lark's parse tree into the same `tree` nodes the
recursive-descent parser builds. Tests parse every valid sample with both and
compare the results.
"""
from __future__ import annotations

import argparse
import sys
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from lark import Lark, Token, Transformer, UnexpectedInput
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedToken, VisitError
from lark.visitors import v_args

from .lexer_rd import unescape
from .parser_rd import CONSTANTS, NESTED_TOO_DEEPLY
from .tree import (
    Access,
    Assignment,
    BinaryOp,
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
    UnaryOp,
    is_lvalue,
    pretty,
)
from .types import MolangError, ParseError, to_float32

__all__ = ["GRAMMAR_PATH", "build_parser", "parse_with_lark", "TreeBuilder"]

GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")


@lru_cache(maxsize=None)
def build_parser(parser_kind: str = "lalr") -> Lark:
    return Lark(
        GRAMMAR_PATH.read_text(encoding="utf-8"),
        parser=parser_kind,
        lexer="basic",
        start="start",
        maybe_placeholders=False,
        propagate_positions=True,
    )


@v_args(meta=True)
class TreeBuilder(Transformer):
    """Build `tree` nodes bottom-up from lark's parse tree."""

    def start(self, meta, c):
        if len(c) == 1:
            return c[0]
        return Sequence(tuple(c), meta.start_pos)

    def assign(self, meta, c):
        target, value = c
        if not is_lvalue(target):
            raise ParseError(
                "invalid assignment target",
                target.offset,
                expected=['identifier', 'property access', 'index'],
                found=type(target).__name__,
            )
        return Assignment(target, value, meta.start_pos)

    def ternary(self, meta, c):
        cond, then, otherwise = c
        return Conditional(cond, then, otherwise, meta.start_pos)

    def coalesce(self, meta, c):
        left, op, right = c
        return NullCoalescing(left, right, op.start_pos)

    def infix(self, meta, c):
        left, op, right = c
        return Infix(BinaryOp(op.value), left, right, op.start_pos)

    def prefix(self, meta, c):
        op, operand = c
        return Unary(UnaryOp(op.value), operand, op.start_pos)

    def access(self, meta, c):
        obj, name = c
        return Access(obj, str(name), name.start_pos - 1)

    def call(self, meta, c):
        callee, *rest = c
        args = rest[0] if rest else ()
        return Call(callee, args, meta.start_pos)

    def index(self, meta, c):
        obj, idx = c
        return Index(obj, idx, meta.start_pos)

    def arguments(self, meta, c):
        return tuple(c)

    def number(self, meta, c):
        (tok,) = c
        return Literal(to_float32(float(tok)), tok.start_pos)

    def string(self, meta, c):
        (tok,) = c
        return Literal(unescape(tok[1:-1]), tok.start_pos)

    def name(self, meta, c):
        (tok,) = c
        if tok in CONSTANTS:
            return Literal(CONSTANTS[tok], tok.start_pos)
        return Identifier(str(tok), tok.start_pos)


def _describe(token: Any) -> str:
    if isinstance(token, Token):
        if token.type == "$END":
            return "end of input"
        return f"{token.type} {str(token)!r}"
    return "end of input"


def parse_with_lark(source: str) -> Expression:
    """Parse `source` with the lark grammar; raises ParseError like parse_source."""
    parser = build_parser()

    try:
        raw = parser.parse(source)
    except UnexpectedCharacters as err:
        raise ParseError(
            f"Unexpected character {err.char!r}",
            err.pos_in_stream,
            expected=sorted(err.allowed or ()),
            found=err.char,
        ) from None
    except UnexpectedToken as err:
        pos = err.token.start_pos if err.token.start_pos is not None else len(source)
        raise ParseError(
            f"Unexpected {_describe(err.token)}",
            pos,
            expected=sorted(err.expected),
            found=_describe(err.token),
        ) from None
    except UnexpectedEOF as err:
        raise ParseError(
            "Unexpected end of input",
            len(source),
            expected=sorted(err.expected),
            found="end of input",
        ) from None
    except UnexpectedInput as err:
        raise ParseError(str(err), getattr(err, "pos_in_stream", None)) from None

    try:
        return TreeBuilder().transform(raw)
    except RecursionError:
        raise ParseError(NESTED_TOO_DEEPLY, 0) from None
    except VisitError as err:
        if isinstance(err.orig_exc, MolangError):
            raise err.orig_exc from None
        if isinstance(err.orig_exc, RecursionError):
            raise ParseError(NESTED_TOO_DEEPLY, 0) from None
        raise


def main(argv: List[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="Parse MoLang with the lark reference grammar")
    ap.add_argument("source", nargs="?", help="source text; read from stdin when omitted")
    args = ap.parse_args(argv)

    code = args.source if args.source is not None else sys.stdin.read()

    try:
        print(pretty(parse_with_lark(code)), end="")
    except ParseError as err:
        print(f"Error: {err}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
