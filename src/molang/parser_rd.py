"""
Recursive Descent Parser for MoLang

Structure:
- Lexer: lazy token stream from source
- Parser: one method per precedence tier, one token of lookahead
- AST: immutable nodes from `tree`
"""

from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .lexer_rd import iter_tokens
from .token_types import TT, Tok
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
)
from .types import ParseError, to_float32

__all__ = ["Parser", "ParseError", "parse_source", "parse_expr_fragment"]

# ============================================================================
# Parser
# ============================================================================

# Spelling used in error messages for each token kind
TOKEN_NAMES: Dict[TT, str] = {
    TT.NUMBER: 'number',
    TT.STRING: 'string',
    TT.IDENT: 'identifier',
    TT.EOF: 'end of input',
    TT.PLUS: "'+'",
    TT.MINUS: "'-'",
    TT.STAR: "'*'",
    TT.SLASH: "'/'",
    TT.EQ: "'=='",
    TT.NEQ: "'!='",
    TT.LT: "'<'",
    TT.LTE: "'<='",
    TT.GT: "'>'",
    TT.GTE: "'>='",
    TT.AND: "'&&'",
    TT.OR: "'||'",
    TT.NEG: "'!'",
    TT.NULLISH: "'??'",
    TT.ASSIGN: "'='",
    TT.LPAR: "'('",
    TT.RPAR: "')'",
    TT.LSQB: "'['",
    TT.RSQB: "']'",
    TT.DOT: "'.'",
    TT.COMMA: "','",
    TT.COLON: "':'",
    TT.SEMI: "';'",
    TT.QMARK: "'?'",
}

EXPRESSION_START = (TT.NUMBER, TT.STRING, TT.IDENT, TT.LPAR, TT.NEG, TT.MINUS)

BINARY_TOKENS: Dict[TT, BinaryOp] = {
    TT.PLUS: BinaryOp.ADD,
    TT.MINUS: BinaryOp.SUB,
    TT.STAR: BinaryOp.MUL,
    TT.SLASH: BinaryOp.DIV,
    TT.EQ: BinaryOp.EQ,
    TT.NEQ: BinaryOp.NEQ,
    TT.LT: BinaryOp.LT,
    TT.LTE: BinaryOp.LTE,
    TT.GT: BinaryOp.GT,
    TT.GTE: BinaryOp.GTE,
    TT.AND: BinaryOp.AND,
    TT.OR: BinaryOp.OR,
}

UNARY_TOKENS: Dict[TT, UnaryOp] = {
    TT.NEG: UnaryOp.NOT,
    TT.MINUS: UnaryOp.NEG,
}

# `true` / `false` are constants, not bindings
CONSTANTS: Dict[str, float] = {
    'true': 1.0,
    'false': 0.0,
}

NESTED_TOO_DEEPLY = "Expression nested too deeply"


def describe(tok: Tok) -> str:
    if tok.type in (TT.NUMBER, TT.IDENT):
        return f"{TOKEN_NAMES[tok.type]} {tok.value!r}"
    return TOKEN_NAMES[tok.type]


class Parser:
    """
    Recursive descent parser for MoLang.

    Expression precedence (lowest to highest):
    1. assignment (=), right associative
    2. ternary (? :), right associative
    3. nullish (??)
    4. or (||)
    5. and (&&)
    6. equality (==, !=)
    7. relational (<, <=, >, >=)
    8. add (+, -)
    9. mul (*, /)
    10. unary (!, -)
    11. postfix (.name, (call), [index])
    12. primary (literals, identifiers, parens)
    """

    def __init__(self, tokens: Iterable[Tok]):
        self.tokens: Iterator[Tok] = iter(tokens)
        self.current = self._pull()

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def _pull(self) -> Tok:
        # A finished stream keeps answering EOF
        return next(self.tokens, Tok(TT.EOF, None, -1))

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        prev = self.current
        if prev.type != TT.EOF:
            self.current = self._pull()
        return prev

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.current.type in types

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, token_type: TT, message: Optional[str] = None) -> Tok:
        """Consume token of expected type or raise error"""
        if not self.check(token_type):
            msg = message or f"Expected {TOKEN_NAMES[token_type]}, got {describe(self.current)}"
            raise self.error(msg, (token_type,))
        return self.advance()

    def error(self, message: str, expected: Tuple[TT, ...] = ()) -> ParseError:
        tok = self.current
        return ParseError(
            message,
            tok.offset,
            expected=[TOKEN_NAMES[t] for t in expected],
            found=describe(tok),
        )

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def parse(self) -> Expression:
        """Parse a program: expressions separated by ';', optional trailing ';'"""
        start = self.current.offset
        body: List[Expression] = [self.parse_expr()]

        while self.match(TT.SEMI):
            if self.check(TT.EOF):
                break
            body.append(self.parse_expr())

        if not self.check(TT.EOF):
            raise self.error(
                f"Unexpected {describe(self.current)} after expression",
                (TT.SEMI, TT.EOF),
            )

        if len(body) == 1:
            return body[0]

        return Sequence(tuple(body), start)

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_expr(self) -> Expression:
        """Parse expression (top level)."""
        return self.parse_assignment_expr()

    def parse_assignment_expr(self) -> Expression:
        """Parse assignment: lvalue = expr"""
        target = self.parse_ternary_expr()

        if self.check(TT.ASSIGN):
            eq_tok = self.advance()

            if not is_lvalue(target):
                raise ParseError(
                    "invalid assignment target",
                    target.offset,
                    expected=['identifier', 'property access', 'index'],
                    found=type(target).__name__,
                )

            value = self.parse_assignment_expr()  # Right associative
            return Assignment(target, value, eq_tok.offset)

        return target

    def parse_ternary_expr(self) -> Expression:
        """Parse ternary: expr ? then : else"""
        cond = self.parse_nullish_expr()

        if self.check(TT.QMARK):
            qmark = self.advance()
            then_expr = self.parse_expr()
            self.expect(TT.COLON)
            else_expr = self.parse_ternary_expr()  # Right associative
            return Conditional(cond, then_expr, else_expr, qmark.offset)

        return cond

    def parse_nullish_expr(self) -> Expression:
        """Parse nullish coalescing: expr ?? expr"""
        left = self.parse_or_expr()

        while self.check(TT.NULLISH):
            op = self.advance()
            right = self.parse_or_expr()
            left = NullCoalescing(left, right, op.offset)

        return left

    def parse_or_expr(self) -> Expression:
        """Parse logical OR: expr || expr"""
        return self._fold_infix(self.parse_and_expr, (TT.OR,))

    def parse_and_expr(self) -> Expression:
        """Parse logical AND: expr && expr"""
        return self._fold_infix(self.parse_equality_expr, (TT.AND,))

    def parse_equality_expr(self) -> Expression:
        return self._fold_infix(self.parse_relational_expr, (TT.EQ, TT.NEQ))

    def parse_relational_expr(self) -> Expression:
        return self._fold_infix(self.parse_add_expr, (TT.LT, TT.LTE, TT.GT, TT.GTE))

    def parse_add_expr(self) -> Expression:
        """Parse addition/subtraction: expr + expr"""
        return self._fold_infix(self.parse_mul_expr, (TT.PLUS, TT.MINUS))

    def parse_mul_expr(self) -> Expression:
        """Parse multiplication/division: expr * expr"""
        return self._fold_infix(self.parse_unary_expr, (TT.STAR, TT.SLASH))

    def _fold_infix(self, operand: Callable[[], Expression], ops: Tuple[TT, ...]) -> Expression:
        """Build a left-associative Infix chain over one precedence tier."""
        left = operand()

        while self.check(*ops):
            op = self.advance()
            right = operand()
            left = Infix(BINARY_TOKENS[op.type], left, right, op.offset)

        return left

    def parse_unary_expr(self) -> Expression:
        """Parse unary operators: -expr, !expr"""
        if self.check(TT.NEG, TT.MINUS):
            op = self.advance()
            operand = self.parse_unary_expr()
            return Unary(UNARY_TOKENS[op.type], operand, op.offset)

        return self.parse_postfix_expr()

    def parse_postfix_expr(self) -> Expression:
        """
        Parse postfix expressions:
        - field access: expr.field
        - calls: expr(args)
        - indexing: expr[index]
        """
        expr = self.parse_primary_expr()

        while True:
            if self.check(TT.DOT):
                dot = self.advance()
                name = self.expect(TT.IDENT, f"Expected property name after '.', got {describe(self.current)}")
                expr = Access(expr, name.value, dot.offset)
            elif self.check(TT.LPAR):
                lpar = self.advance()
                args = self.parse_arg_list()
                self.expect(TT.RPAR)
                expr = Call(expr, args, lpar.offset)
            elif self.check(TT.LSQB):
                lsqb = self.advance()
                index = self.parse_expr()
                self.expect(TT.RSQB)
                expr = Index(expr, index, lsqb.offset)
            else:
                return expr

    def parse_arg_list(self) -> Tuple[Expression, ...]:
        """Parse call arguments up to (not including) ')'"""
        if self.check(TT.RPAR):
            return ()

        args = [self.parse_expr()]
        while self.match(TT.COMMA):
            args.append(self.parse_expr())

        return tuple(args)

    def parse_primary_expr(self) -> Expression:
        """
        Parse primary expressions:
        - Literals (numbers, strings, true, false)
        - Identifiers
        - Parenthesized expressions
        """
        tok = self.current

        if self.match(TT.NUMBER):
            return Literal(to_float32(float(tok.value)), tok.offset)

        if self.match(TT.STRING):
            return Literal(tok.value, tok.offset)

        if self.match(TT.IDENT):
            if tok.value in CONSTANTS:
                return Literal(CONSTANTS[tok.value], tok.offset)
            return Identifier(tok.value, tok.offset)

        if self.match(TT.LPAR):
            expr = self.parse_expr()
            self.expect(TT.RPAR)
            return expr

        raise self.error(f"Expected expression, got {describe(tok)}", EXPRESSION_START)

# ============================================================================
# Entry points
# ============================================================================

def parse_source(source: str) -> Expression:
    """
    Parse MoLang source code to an expression tree.

    Raises ParseError (or its LexError subclass); never returns a partial tree.
    """
    parser = Parser(iter_tokens(source))

    try:
        return parser.parse()
    except RecursionError:
        raise parser.error(NESTED_TOO_DEEPLY) from None


def parse_expr_fragment(source: str) -> Expression:
    """
    Parse a single expression with no statement separators.
    """
    parser = Parser(iter_tokens(source))

    try:
        expr = parser.parse_expr()
    except RecursionError:
        raise parser.error(NESTED_TOO_DEEPLY) from None

    # Ensure we've consumed the entire fragment
    if not parser.check(TT.EOF):
        raise parser.error("Unexpected tokens after expression fragment", (TT.EOF,))
    return expr
