"""
Lexer for MoLang - Recursive Descent Parser

Tokenizes MoLang source into a lazy stream of tokens.

Features:
- Single forward pass; tokens are produced on demand
- Offset tracking (0-based character index)
- Single-quoted strings with backslash escapes
"""

from typing import Iterator, List

from .token_types import TT, Tok
from .types import LexError

__all__ = ["Lexer", "LexError", "iter_tokens", "tokenize", "unescape"]

ESCAPE = '\\'
QUOTE = "'"
WHITESPACE = (' ', '\t', '\n', '\r')

# ============================================================================
# Lexer Implementation
# ============================================================================

class Lexer:
    """
    MoLang lexer.

    `tokens()` is a generator: it scans one token per step and stops after
    emitting EOF. It cannot be restarted; build a new Lexer to scan again.
    """

    # Operator mapping: longest matches first to handle prefixes correctly
    OPERATORS = [
        # Two-character operators
        ('==', TT.EQ),
        ('!=', TT.NEQ),
        ('<=', TT.LTE),
        ('>=', TT.GTE),
        ('&&', TT.AND),
        ('||', TT.OR),
        ('??', TT.NULLISH),

        # Single-character operators
        ('+', TT.PLUS),
        ('-', TT.MINUS),
        ('*', TT.STAR),
        ('/', TT.SLASH),
        ('<', TT.LT),
        ('>', TT.GT),
        ('!', TT.NEG),
        ('=', TT.ASSIGN),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        ('[', TT.LSQB),
        (']', TT.RSQB),
        ('.', TT.DOT),
        (',', TT.COMMA),
        (':', TT.COLON),
        (';', TT.SEMI),
        ('?', TT.QMARK),
    ]

    def __init__(self, source: str):
        self.source = source
        self.pos = 0

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokens(self) -> Iterator[Tok]:
        """Yield tokens lazily, ending with a single EOF token"""
        while True:
            self.skip_whitespace()

            if self.pos >= len(self.source):
                yield Tok(TT.EOF, None, self.pos)
                return

            yield self.scan_token()

    def tokenize(self) -> List[Tok]:
        """Tokenize entire source, return token list"""
        return list(self.tokens())

    def scan_token(self) -> Tok:
        """Scan next token"""
        ch = self.peek()

        if ch == QUOTE:
            return self.scan_string()

        if is_digit(ch):
            return self.scan_number()

        if is_ident_start(ch):
            return self.scan_identifier()

        return self.scan_operator()

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_string(self) -> Tok:
        """Scan string literal: '...'"""
        start = self.pos
        self.advance()  # opening quote
        value = ''

        while self.pos < len(self.source) and self.peek() != QUOTE:
            if self.peek() == ESCAPE:
                self.advance()
                if self.pos >= len(self.source):
                    break
            value += self.advance()

        if self.pos >= len(self.source):
            raise LexError("Unterminated string", start, QUOTE)

        self.advance()  # closing quote
        return Tok(TT.STRING, value, start)

    def scan_number(self) -> Tok:
        """Scan number literal: digits with at most one decimal point"""
        start = self.pos
        value = ''
        seen_point = False

        while is_digit(self.peek()) or self.peek() == '.':
            if self.peek() == '.':
                if seen_point:
                    raise LexError("Numbers can't have multiple floating points", self.pos, '.')
                seen_point = True
            value += self.advance()

        return Tok(TT.NUMBER, value, start)

    def scan_identifier(self) -> Tok:
        """Scan identifier"""
        start = self.pos
        value = ''

        while is_ident_part(self.peek()):
            value += self.advance()

        return Tok(TT.IDENT, value, start)

    def scan_operator(self) -> Tok:
        """Scan operators and punctuation"""
        start = self.pos

        for op_str, op_type in self.OPERATORS:
            if self.source.startswith(op_str, self.pos):
                self.advance(len(op_str))
                return Tok(op_type, op_str, start)

        ch = self.peek()
        raise LexError(f"Unexpected character '{ch}'", start, ch)

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters and return them as a string"""
        if n < 0:
            raise ValueError(f"advance() requires n >= 0, got {n}")
        result = self.source[self.pos:self.pos + n]
        self.pos += n
        return result

    def skip_whitespace(self) -> None:
        while self.peek() in WHITESPACE:
            self.advance()


def is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def is_ident_start(ch: str) -> bool:
    return ('a' <= ch <= 'z') or ('A' <= ch <= 'Z') or ch == '_'


def is_ident_part(ch: str) -> bool:
    return is_ident_start(ch) or is_digit(ch)


def unescape(body: str) -> str:
    """Drop escape characters from a raw string body (without quotes)."""
    out = []
    i = 0

    while i < len(body):
        if body[i] == ESCAPE and i + 1 < len(body):
            i += 1
        out.append(body[i])
        i += 1

    return ''.join(out)


def iter_tokens(source: str) -> Iterator[Tok]:
    """Lazily tokenize source"""
    return Lexer(source).tokens()


def tokenize(source: str) -> List[Tok]:
    """Convenience function to tokenize source"""
    return Lexer(source).tokenize()
