from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional, Tuple

from .config import EngineConfig, debug_py_trace_enabled
from .evaluator import eval_expr
from .lexer_rd import tokenize
from .parser_rd import parse_source
from .runtime import Context
from .tree import format_number, pretty
from .types import MolangError, Value

logger = logging.getLogger(__name__)

USAGE = "usage: molang [--strict] [--tree] [--tokens] [--verbose] [--set NAME=VALUE]... [SOURCE|FILE|-]"

def run(src: str, context: Optional[Context] = None, config: Optional[EngineConfig] = None) -> Value:
    """Parse and evaluate `src` in one step."""
    ast = parse_source(src)
    return eval_expr(ast, context, config)

def format_value(val: Value) -> str:
    if isinstance(val, float):
        if val != val or val in (float("inf"), float("-inf")):
            return repr(val)
        return format_number(val)

    if isinstance(val, str):
        return val

    return repr(val)

def parse_binding(arg: str) -> Tuple[str, Value]:
    """Split a `--set NAME=VALUE` argument; numeric values become floats."""
    name, sep, raw = arg.partition("=")

    if not sep or not name:
        raise SystemExit(f"--set expects NAME=VALUE, got {arg!r}")

    try:
        return name, float(raw)
    except ValueError:
        return name, raw

def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    if candidate.is_file():
        return candidate.read_text(encoding="utf-8")

    return arg

def _report(exc: MolangError) -> None:
    print(f"Error: {exc}", file=sys.stderr)

    if debug_py_trace_enabled():
        print("\nPython traceback:", file=sys.stderr)
        print("".join(traceback.format_exception(exc)), file=sys.stderr, end="")

def main(argv: Optional[List[str]] = None) -> None:
    strict = False
    show_tree = False
    show_tokens = False
    verbose = False
    bindings: List[Tuple[str, Value]] = []
    arg = None
    it = iter(sys.argv[1:] if argv is None else argv)

    for token in it:
        if token == "--strict":
            strict = True
            continue

        if token == "--tree":
            show_tree = True
            continue

        if token == "--tokens":
            show_tokens = True
            continue

        if token in ("-v", "--verbose"):
            verbose = True
            continue

        if token in ("-h", "--help"):
            print(USAGE)
            return

        if token.startswith("--set="):
            bindings.append(parse_binding(token.split("=", 1)[1]))
            continue

        if token == "--set":
            try:
                bindings.append(parse_binding(next(it)))
            except StopIteration:
                raise SystemExit("--set flag requires NAME=VALUE") from None
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        config = EngineConfig.from_env()
    except ValueError as exc:
        raise SystemExit(str(exc)) from None

    if strict:
        config = config.evolve(strict=True)

    source = _load_source(arg or "-")
    logger.debug(f"Running {source!r} with {config}")

    try:
        if show_tokens:
            for tok in tokenize(source):
                print(tok)
            return

        if show_tree:
            print(pretty(parse_source(source)), end="")
            return

        context = Context()
        for name, val in bindings:
            context.define(name, val)

        print(format_value(run(source, context, config)))
    except MolangError as exc:
        _report(exc)
        sys.exit(1)

if __name__ == "__main__":
    main()
