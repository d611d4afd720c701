"""prompt_toolkit lexer for live MoLang syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer_rd import Lexer as MolangTokenizer, LexError
from .parser_rd import CONSTANTS
from .runtime import Context
from .token_types import TT, Tok

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "namespace": "bold ansicyan",
    "boolean": "ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "identifier": "",
    "function": "bold ansiyellow",
    "operator": "",
    "punctuation": "",
    "error": "bold ansired",
}

_TT_GROUP = {
    TT.NUMBER: "number",
    TT.STRING: "string",
    TT.IDENT: "identifier",
    TT.PLUS: "operator",
    TT.MINUS: "operator",
    TT.STAR: "operator",
    TT.SLASH: "operator",
    TT.EQ: "operator",
    TT.NEQ: "operator",
    TT.LT: "operator",
    TT.LTE: "operator",
    TT.GT: "operator",
    TT.GTE: "operator",
    TT.AND: "operator",
    TT.OR: "operator",
    TT.NEG: "operator",
    TT.NULLISH: "operator",
    TT.ASSIGN: "operator",
    TT.LPAR: "punctuation",
    TT.RPAR: "punctuation",
    TT.LSQB: "punctuation",
    TT.RSQB: "punctuation",
    TT.DOT: "punctuation",
    TT.COMMA: "punctuation",
    TT.COLON: "punctuation",
    TT.SEMI: "punctuation",
    TT.QMARK: "punctuation",
}

_NAMESPACE_NAMES = {"temp", "variable", "query", *Context.ALIASES}


def _ident_group(tokens: list[Tok], idx: int) -> str:
    tok = tokens[idx]
    nxt = tokens[idx + 1] if idx + 1 < len(tokens) else None
    prev = tokens[idx - 1] if idx > 0 else None

    if tok.value in CONSTANTS:
        return "boolean"

    if nxt is not None and nxt.type == TT.LPAR:
        return "function"

    # Only the head of a chain names a namespace; `x.temp` is a plain member.
    if tok.value in _NAMESPACE_NAMES and (prev is None or prev.type != TT.DOT):
        return "namespace"

    return "identifier"


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    try:
        tokens = MolangTokenizer(text).tokenize()
    except LexError as exc:
        # Keep the valid prefix plain and flag the rest.
        bad = exc.offset if exc.offset is not None else 0
        return [("", text[:bad]), (GROUP_STYLE["error"], text[bad:])]

    result: StyleAndTextTuples = []
    pos = 0

    for i, tok in enumerate(tokens):
        if tok.type == TT.EOF:
            break

        # A token spans up to the next token's start, minus the whitespace between.
        end = tokens[i + 1].offset
        tok_text = text[tok.offset:end].rstrip()

        if tok.offset > pos:
            result.append(("", text[pos:tok.offset]))

        group = _TT_GROUP.get(tok.type, "")
        if tok.type == TT.IDENT:
            group = _ident_group(tokens, i)

        result.append((GROUP_STYLE.get(group, ""), tok_text))
        pos = tok.offset + len(tok_text)

    # Trailing unstyled text.
    if pos < len(text):
        result.append(("", text[pos:]))

    return result if result else [("", text)]


class MolangLexer(Lexer):
    """prompt_toolkit Lexer that highlights MoLang source using the RD lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
