# tests/core/test_handlers.py
import io

import pytest

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.handlers.core.cat_handler import handle_cat
from pipeshell.core.handlers.core.echo_handler import handle_echo
from pipeshell.core.handlers.core.exit_handler import handle_exit
from pipeshell.core.handlers.core.grep_handler import handle_grep, parse_grep_args
from pipeshell.core.handlers.core.pwd_handler import handle_pwd
from pipeshell.core.handlers.core.wc_handler import handle_wc

SAMPLE = b"alpha beta\nGamma delta\nbetamax\nomega\n"


def _call(handler, args, data=b"", ctx=None):
    out = io.BytesIO()
    code = handler(args, ctx or ShellContext(), io.BytesIO(data), out)
    return code, out.getvalue()


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "sample.txt"
    path.write_bytes(SAMPLE)
    return path


# --- echo / pwd / exit ---

def test_echo_joins_arguments():
    assert _call(handle_echo, ["hello", "big", "world"]) == (0, b"hello big world\n")


def test_echo_without_arguments_prints_empty_line():
    assert _call(handle_echo, []) == (0, b"\n")


def test_pwd_prints_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    code, out = _call(handle_pwd, [])
    assert code == 0
    assert out.decode().strip() == str(tmp_path.resolve())


def test_exit_returns_last_exit_code():
    ctx = ShellContext()
    ctx.last_exit_code = 42
    assert _call(handle_exit, [], ctx=ctx) == (42, b"")


# --- cat ---

def test_cat_copies_file(sample_file):
    assert _call(handle_cat, [str(sample_file)]) == (0, SAMPLE)


def test_cat_reads_input_stream_without_file():
    assert _call(handle_cat, [], data=b"piped\x00\xffbytes") == (0, b"piped\x00\xffbytes")


def test_cat_nonexistent_file(tmp_path, capsys):
    code, out = _call(handle_cat, [str(tmp_path / "nope.txt")])
    assert (code, out) == (1, b"")
    assert "cat:" in capsys.readouterr().err


# --- wc ---

def test_wc_file_reports_name(sample_file):
    code, out = _call(handle_wc, [str(sample_file)])
    assert code == 0
    assert out == f"4 6 {len(SAMPLE)} {sample_file}\n".encode()


def test_wc_counts_unterminated_last_line():
    assert _call(handle_wc, [], data=b"one two\nthree") == (0, b"2 3 13\n")


def test_wc_empty_input():
    assert _call(handle_wc, []) == (0, b"0 0 0\n")


def test_wc_nonexistent_file(tmp_path):
    assert _call(handle_wc, [str(tmp_path / "nope.txt")]) == (1, b"")


# --- grep ---

def test_grep_matches_substring_regex(sample_file):
    assert _call(handle_grep, ["beta", str(sample_file)]) == (0, b"alpha beta\nbetamax\n")


def test_grep_reads_input_stream():
    assert _call(handle_grep, ["^om"], data=SAMPLE) == (0, b"omega\n")


def test_grep_case_insensitive():
    assert _call(handle_grep, ["-i", "gamma"], data=SAMPLE) == (0, b"Gamma delta\n")


def test_grep_whole_word():
    assert _call(handle_grep, ["-w", "beta"], data=SAMPLE) == (0, b"alpha beta\n")


def test_grep_whole_word_escapes_pattern():
    assert _call(handle_grep, ["-w", "a.c"], data=b"abc\na.c here\n") == (0, b"a.c here\n")


def test_grep_after_context_prints_each_line_once():
    data = b"m1\nx\nm2\ny\nz\nw\n"
    assert _call(handle_grep, ["-A", "1", "^m"], data=data) == (0, b"m1\nx\nm2\ny\n")
    assert _call(handle_grep, ["-A", "10", "m1"], data=data) == (0, data)


def test_grep_no_match_is_1():
    assert _call(handle_grep, ["zzz"], data=SAMPLE) == (1, b"")


def test_grep_invalid_pattern_is_1(capsys):
    assert _call(handle_grep, ["("], data=SAMPLE) == (1, b"")
    assert "invalid pattern" in capsys.readouterr().err


def test_grep_adds_missing_final_newline():
    assert _call(handle_grep, ["end"], data=b"the end") == (0, b"the end\n")


def test_parse_grep_args_defaults_and_flags():
    options = parse_grep_args(["-i", "-w", "-A", "2", "pat", "file.txt"])
    assert options.ignore_case and options.whole_word
    assert options.after_context == 2
    assert (options.pattern, options.file) == ("pat", "file.txt")

    options = parse_grep_args(["pat"])
    assert not options.ignore_case and not options.whole_word
    assert options.after_context == 0
    assert options.file is None


def test_parse_grep_args_stops_at_first_operand():
    options = parse_grep_args(["foo", "-i"])
    assert not options.ignore_case
    assert (options.pattern, options.file) == ("foo", "-i")


def test_grep_flag_after_pattern_is_a_file(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert _call(handle_grep, ["gamma", "-i"], data=SAMPLE) == (1, b"")
    assert "grep: -i:" in capsys.readouterr().err


@pytest.mark.parametrize("args", [[], ["-A"], ["-A", "-1", "x"], ["-z", "x"], ["a", "b", "c"]])
def test_parse_grep_args_rejects_invalid_invocations(args):
    with pytest.raises(ValueError):
        parse_grep_args(args)
