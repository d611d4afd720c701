from __future__ import annotations

import pytest
from prompt_toolkit.document import Document

from molang.engine import Engine
from molang.repl import Session, _handle_slash, _normalize, _parse_switch, repl_eval
from molang.repl_highlight import GROUP_STYLE, MolangLexer, _highlight_line
from tests.support.harness import EngineConfig, ExpressionError


@pytest.fixture
def session() -> Session:
    return Session(engine=Engine(EngineConfig()))


def test_repl_eval_keeps_state(session: Session) -> None:
    assert repl_eval("v.count = 2", session) == "2"
    assert repl_eval("v.count * 10", session) == "20"
    assert repl_eval("'done'", session) == "done"


def test_repl_eval_drops_temp_between_lines(session: Session) -> None:
    repl_eval("t.x = 5", session)

    assert repl_eval("t.x", session) == "0"


def test_non_slash_lines_are_not_commands(session: Session) -> None:
    assert not _handle_slash("1 + 1", session)


def test_reset_clears_bindings(session: Session, capsys) -> None:
    repl_eval("score = 3", session)

    assert _handle_slash("/reset", session)
    assert repl_eval("score", session) == "0"
    assert "reset" in capsys.readouterr().out


def test_strict_toggle(session: Session, capsys) -> None:
    assert _handle_slash("/strict on", session)
    assert session.engine.config.strict
    with pytest.raises(ExpressionError):
        repl_eval("ghost", session)

    _handle_slash("/strict", session)
    assert not session.engine.config.strict
    assert repl_eval("ghost", session) == "0"

    out = capsys.readouterr().out
    assert "Strict mode: on" in out
    assert "Strict mode: off" in out


def test_strict_rejects_bad_argument(session: Session, capsys) -> None:
    assert _handle_slash("/strict maybe", session)
    assert not session.engine.config.strict
    assert "Usage" in capsys.readouterr().err


def test_py_traceback_toggle(session: Session, capsys, monkeypatch) -> None:
    monkeypatch.delenv("MOLANG_DEBUG_PY_TRACE", raising=False)

    _handle_slash("/py-traceback on", session)
    _handle_slash("/py-traceback off", session)

    out = capsys.readouterr().out
    assert "Python traceback: on" in out
    assert "Python traceback: off" in out


def test_vars_lists_bindings(session: Session, capsys) -> None:
    repl_eval("hp = 20; v.speed = 1.5", session)

    assert _handle_slash("/vars", session)
    out = capsys.readouterr().out.splitlines()

    assert "hp = 20" in out
    assert "variable.speed = 1.5" in out


def test_unknown_command(session: Session, capsys) -> None:
    assert _handle_slash("/nope", session)
    assert "Unknown command: /nope" in capsys.readouterr().err


def test_parse_switch() -> None:
    assert _parse_switch("on", False) is True
    assert _parse_switch("OFF", True) is False
    assert _parse_switch("", True) is False
    assert _parse_switch("sideways", True) is None


def test_normalize_strips_invisible_characters() -> None:
    assert _normalize("1\u200b +\ufeff 2\r") == "1 + 2"


def test_highlight_covers_whole_line() -> None:
    text = "t.x = math.abs(-1) ?? 'a'"

    fragments = _highlight_line(text)

    assert "".join(chunk for _, chunk in fragments) == text


def test_highlight_groups() -> None:
    styles = dict((chunk, style) for style, chunk in _highlight_line("q.x + max(1) + true + 'a'"))

    assert styles["q"] == GROUP_STYLE["namespace"]
    assert styles["max"] == GROUP_STYLE["function"]
    assert styles["true"] == GROUP_STYLE["boolean"]
    assert styles["1"] == GROUP_STYLE["number"]
    assert styles["'a'"] == GROUP_STYLE["string"]


def test_namespace_only_at_chain_head() -> None:
    fragments = _highlight_line("x.temp")

    assert (GROUP_STYLE["namespace"], "temp") not in fragments


def test_highlight_flags_lex_errors() -> None:
    assert _highlight_line("1 + @") == [("", "1 + "), (GROUP_STYLE["error"], "@")]


def test_lexer_handles_multiple_lines() -> None:
    get_line = MolangLexer().lex_document(Document("1\n'x'"))

    assert get_line(0) == [(GROUP_STYLE["number"], "1")]
    assert get_line(1) == [(GROUP_STYLE["string"], "'x'")]
    assert get_line(5) == [("", "")]
