"""Interactive REPL for MoLang, powered by prompt_toolkit."""

from __future__ import annotations

import os
import re
import sys
import traceback
from dataclasses import dataclass, field

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.shortcuts import clear

from .config import EngineConfig, debug_py_trace_enabled
from .engine import Engine
from .repl_highlight import MolangLexer
from .runner import format_value
from .runtime import Context
from .types import MolangError

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Reset all bindings", ""),
    "/strict": ("Toggle strict missing-binding mode", "[on|off]"),
    "/vars": ("Show root bindings and the variable namespace", ""),
}

_ON = ("on", "1", "true", "yes")
_OFF = ("off", "0", "false", "no")


@dataclass
class Session:
    """Mutable REPL state so slash commands can swap the engine or context."""
    engine: Engine = field(default_factory=lambda: Engine(EngineConfig.from_env()))
    context: Context = field(default_factory=Context)


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def _parse_switch(arg: str, current: bool) -> bool | None:
    """Resolve an [on|off] argument; empty toggles, anything else is None."""
    lowered = arg.lower()

    if lowered in _ON:
        return True
    if lowered in _OFF:
        return False
    if lowered == "":
        return not current

    return None


def _handle_slash(line: str, session: Session) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1] if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/py-traceback":
        enabled = _parse_switch(arg, debug_py_trace_enabled())
        if enabled is None:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        if enabled:
            os.environ["MOLANG_DEBUG_PY_TRACE"] = "1"
        else:
            os.environ.pop("MOLANG_DEBUG_PY_TRACE", None)

        state = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state}")
        return True

    if cmd == "/strict":
        config = session.engine.config
        enabled = _parse_switch(arg, config.strict)
        if enabled is None:
            print("Usage: /strict [on|off]", file=sys.stderr)
            return True

        session.engine = Engine(config.evolve(strict=enabled))
        print(f"Strict mode: {'on' if enabled else 'off'}")
        return True

    if cmd == "/reset":
        session.context = Context()
        print("Environment reset.")
        return True

    if cmd == "/vars":
        ctx = session.context
        for name, val in ctx.vars.items():
            print(f"{name} = {format_value(val)}")
        for name, val in ctx.namespace("variable").items():
            print(f"variable.{name} = {format_value(val)}")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def repl_eval(text: str, session: Session) -> str:
    """Evaluate one input line and return the printable result."""
    return format_value(session.engine.eval(text, session.context))


def repl() -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    session = Session()

    prompt: PromptSession[str] = PromptSession(
        history=InMemoryHistory(),
        lexer=MolangLexer(),
        completer=_SlashCompleter(),
        complete_while_typing=True,
    )

    print("molang repl (Ctrl-D to exit, / for commands)")

    while True:
        try:
            text = prompt.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        if _handle_slash(text, session):
            continue

        try:
            print(repl_eval(text, session))
        except MolangError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            if debug_py_trace_enabled():
                print("\nPython traceback:", file=sys.stderr)
                print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")


def main() -> None:
    repl()


if __name__ == "__main__":
    main()
