from __future__ import annotations

import io
import math

import pytest

from molang.runner import format_value, main, parse_binding


def _run_cli(capsys, *argv: str):
    main(list(argv))
    return capsys.readouterr()


def test_prints_result(capsys) -> None:
    out = _run_cli(capsys, "1+2")

    assert out.out == "3\n"
    assert out.err == ""


def test_prints_fractions_and_strings(capsys) -> None:
    assert _run_cli(capsys, "1 / 4").out == "0.25\n"
    assert _run_cli(capsys, "'hi'").out == "hi\n"


def test_set_bindings(capsys) -> None:
    out = _run_cli(capsys, "--set", "x=4", "--set=name=mob", "x * 2 + (name == 'mob')")

    assert out.out == "9\n"


def test_set_requires_name_and_value() -> None:
    with pytest.raises(SystemExit):
        main(["--set", "novalue", "1"])

    with pytest.raises(SystemExit):
        main(["--set"])


def test_strict_flag(capsys) -> None:
    assert _run_cli(capsys, "ghost + 1").out == "1\n"

    with pytest.raises(SystemExit) as exc_info:
        main(["--strict", "ghost + 1"])

    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "ghost" in err


def test_strict_from_environment(capsys, monkeypatch) -> None:
    monkeypatch.setenv("MOLANG_STRICT", "1")

    with pytest.raises(SystemExit) as exc_info:
        main(["ghost"])

    assert exc_info.value.code == 1


def test_bad_environment_is_reported(monkeypatch) -> None:
    monkeypatch.setenv("MOLANG_CACHE_SIZE", "many")

    with pytest.raises(SystemExit) as exc_info:
        main(["1"])

    assert "MOLANG_" in str(exc_info.value.code)


def test_tree_flag(capsys) -> None:
    out = _run_cli(capsys, "--tree", "1 + 2")

    assert out.out == "Infix +\n  Literal 1.0\n  Literal 2.0\n"


def test_tokens_flag(capsys) -> None:
    lines = _run_cli(capsys, "--tokens", "a ?? 1").out.splitlines()

    assert lines == [
        "Tok(IDENT, 'a', @0)",
        "Tok(NULLISH, '??', @2)",
        "Tok(NUMBER, '1', @5)",
        "Tok(EOF, None, @6)",
    ]


def test_parse_error_exits_with_status(capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["1.2.3"])

    assert exc_info.value.code == 1
    assert capsys.readouterr().err.startswith("Error: ")


def test_reads_source_file(tmp_path, capsys) -> None:
    script = tmp_path / "expr.molang"
    script.write_text("t.a = 2;\nt.a * 21", encoding="utf-8")

    assert _run_cli(capsys, str(script)).out == "42\n"


def test_reads_stdin(monkeypatch, capsys) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("6 * 7"))

    assert _run_cli(capsys, "-").out == "42\n"


def test_empty_stdin_is_an_error(monkeypatch) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO(""))

    with pytest.raises(SystemExit):
        main([])


def test_unexpected_argument() -> None:
    with pytest.raises(SystemExit):
        main(["1", "2"])


def test_help(capsys) -> None:
    assert _run_cli(capsys, "--help").out.startswith("usage: molang")


def test_format_value() -> None:
    assert format_value(3.0) == "3"
    assert format_value(-0.5) == "-0.5"
    assert format_value(math.inf) == "inf"
    assert format_value(math.nan) == "nan"
    assert format_value("text") == "text"


def test_parse_binding() -> None:
    assert parse_binding("x=1.5") == ("x", 1.5)
    assert parse_binding("who=steve") == ("who", "steve")
    assert parse_binding("empty=") == ("empty", "")
