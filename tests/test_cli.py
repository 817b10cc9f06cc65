# tests/test_cli.py
"""
Tests for the ``python -m instrcfg`` command line interface.
"""

import io

import pytest

from instrcfg.__main__ import build_parser, main
from tests.conftest import DIAMOND_LISTING


@pytest.fixture
def listing_file(tmp_path):
    path = tmp_path / "diamond.s"
    path.write_text(DIAMOND_LISTING)
    return path


class TestParser:

    def test_commands(self):
        parser = build_parser()
        args = parser.parse_args(["summary", "x.s", "--no-instrs", "-vv"])
        assert args.command == "summary"
        assert args.no_instrs is True
        assert args.verbose == 2

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 2
        assert "usage:" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "instrcfg" in capsys.readouterr().out


class TestSummaryCommand:

    def test_summary(self, listing_file, capsys):
        assert main(["summary", str(listing_file)]) == 0
        out = capsys.readouterr().out
        assert "Cfg(blocks=5, edges=5)" in out
        assert "BB1 [0, 2)  succ=[BB2, BB3]" in out

    def test_summary_from_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(DIAMOND_LISTING))
        assert main(["summary", "-", "--no-instrs"]) == 0
        out = capsys.readouterr().out
        assert "EXIT [5, 5)" in out
        assert "cmpq" not in out

    def test_output_file(self, listing_file, tmp_path, capsys):
        target = tmp_path / "out.txt"
        assert main(["summary", str(listing_file), "-o", str(target)]) == 0
        assert capsys.readouterr().out == ""
        assert "ENTRY" in target.read_text(encoding="utf-8")


class TestDotCommand:

    def test_dot(self, listing_file, capsys):
        assert main(["dot", str(listing_file), "--title", "diamond"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("digraph CFG {")
        assert 'label="diamond";' in out


class TestErrors:

    def test_unresolved_label(self, tmp_path, capsys):
        path = tmp_path / "bad.s"
        path.write_text("jmp nowhere\n")
        assert main(["summary", str(path)]) == 1
        assert "CFG-1002" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main(["dot", str(tmp_path / "nope.s")]) == 1
        assert "CFG-2001" in capsys.readouterr().err

    def test_syntax_error(self, tmp_path, capsys):
        path = tmp_path / "garbage.s"
        path.write_text("nop\n!!\n")
        assert main(["summary", str(path)]) == 1
        err = capsys.readouterr().err
        assert "CFG-2000" in err
        assert "garbage.s:2:1" in err

    def test_unwritable_output(self, listing_file, tmp_path, capsys):
        target = tmp_path / "missing" / "out.dot"
        assert main(["dot", str(listing_file), "-o", str(target)]) == 1
        err = capsys.readouterr().err
        assert "CFG-2002" in err
        assert "out.dot" in err

    def test_negative_max_instrs_rejected(self, listing_file, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["summary", str(listing_file), "--max-instrs", "-1"])
        assert exc.value.code == 2
        assert "must be 0 or greater" in capsys.readouterr().err
