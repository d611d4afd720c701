"""Evaluator helper modules for the MoLang runtime."""

__all__ = [
    "bind",
    "chains",
    "expr",
    "helpers",
]
