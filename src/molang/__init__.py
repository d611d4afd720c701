"""MoLang expression engine: tokenizer, parser and tree-walking evaluator."""

from __future__ import annotations

from typing import Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .engine import Engine
from .evaluator import eval_expr
from .lexer_rd import iter_tokens, tokenize
from .parser_rd import parse_source
from .runtime import Context
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
    pretty,
    to_source,
    walk,
)
from .types import (
    ErrorKind,
    ExpressionError,
    FunctionError,
    LexError,
    MolangError,
    MolangFunction,
    Namespace,
    ParseError,
    Value,
)

__version__ = "0.1.0"

__all__ = [
    "parse",
    "evaluate",
    "tokenize",
    "iter_tokens",
    "Context",
    "Engine",
    "EngineConfig",
    "DEFAULT_CONFIG",
    "ErrorKind",
    "MolangError",
    "ParseError",
    "LexError",
    "ExpressionError",
    "FunctionError",
    "MolangFunction",
    "Namespace",
    "Value",
    "Expression",
    "Literal",
    "Identifier",
    "Access",
    "Index",
    "Call",
    "Unary",
    "Infix",
    "Conditional",
    "NullCoalescing",
    "Assignment",
    "Sequence",
    "BinaryOp",
    "UnaryOp",
    "to_source",
    "pretty",
    "walk",
]


def parse(source: str) -> Expression:
    return parse_source(source)


def evaluate(tree: Expression, context: Optional[Context] = None, config: Optional[EngineConfig] = None) -> Value:
    return eval_expr(tree, context, config)
