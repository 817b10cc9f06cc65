#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
instrcfg/__main__.py
====================

Command line entry point.

Usage
-----
    python -m instrcfg <command> [options] <listing>

Commands
--------
    summary     Print blocks, instruction ranges and edges
    dot         Emit Graphviz DOT source for the CFG

Pipeline
--------
    listing text ──► parse_listing ──► Cfg.recompute ──► summary / DOT
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import textwrap
from pathlib import Path
from typing import Optional, Sequence, TextIO

from instrcfg import __version__
from instrcfg.ctrlflow_graph import build_cfg
from instrcfg.errors import CfgError, ErrorCode
from instrcfg.instruction import Code
from instrcfg.listing import parse_listing, parse_listing_file
from instrcfg.report import RenderConfig, cfg_summary, cfg_to_dot

__description__ = "instrcfg — control flow graphs for assembly listings"

logger = logging.getLogger("instrcfg")


# ═══════════════════════════════════════════════════════════════════════════
# TERMINAL COLORS
# ═══════════════════════════════════════════════════════════════════════════

class _Colors:
    """ANSI color codes, disabled when not writing to a TTY."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def _code(self, code: str) -> str:
        return code if self.enabled else ""

    @property
    def RESET(self) -> str:
        return self._code("\033[0m")

    @property
    def BOLD(self) -> str:
        return self._code("\033[1m")

    @property
    def RED(self) -> str:
        return self._code("\033[31m")


def _get_colors(stream: Optional[TextIO] = None) -> _Colors:
    """Get color codes appropriate for the given stream."""
    stream = stream if stream is not None else sys.stderr
    is_tty = hasattr(stream, "isatty") and stream.isatty()
    return _Colors(enabled=is_tty and os.environ.get("NO_COLOR") is None)


def _report_error(exc: CfgError) -> None:
    c = _get_colors()
    sys.stderr.write(f"{c.BOLD}{c.RED}error:{c.RESET} {exc.format()}\n")


# ═══════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════

def _load(path: str) -> Code:
    if path == "-":
        return parse_listing(sys.stdin.read(), source="<stdin>")
    return parse_listing_file(path)


def _render_config(args: argparse.Namespace) -> RenderConfig:
    return RenderConfig(
        title=args.title,
        show_instrs=not args.no_instrs,
        max_instrs=args.max_instrs,
        hide_unreachable=args.hide_unreachable,
    )


def _emit(text: str, output: Optional[str]) -> None:
    if output:
        try:
            Path(output).write_text(text, encoding="utf-8")
        except OSError as e:
            raise CfgError(
                f"cannot write {output}: {e.strerror or e}",
                code=ErrorCode.OUTPUT_IO,
            ) from e
        logger.info("wrote %s", output)
    else:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")


def cmd_summary(args: argparse.Namespace) -> int:
    """Handle the 'summary' command."""
    try:
        cfg = build_cfg(_load(args.input))
        _emit(cfg_summary(cfg, _render_config(args)), args.output)
    except CfgError as e:
        _report_error(e)
        return 1
    return 0


def cmd_dot(args: argparse.Namespace) -> int:
    """Handle the 'dot' command."""
    try:
        cfg = build_cfg(_load(args.input))
        _emit(cfg_to_dot(cfg, _render_config(args)), args.output)
    except CfgError as e:
        _report_error(e)
        return 1
    return 0


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {value}")
    return value


# ═══════════════════════════════════════════════════════════════════════════
# ARGUMENT PARSER
# ═══════════════════════════════════════════════════════════════════════════

def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "input",
        help="Assembly listing file (use '-' for stdin)",
    )
    p.add_argument(
        "-o", "--output",
        help="Write to this file instead of stdout",
    )
    p.add_argument(
        "--title",
        default=None,
        help="Title line / graph label",
    )
    p.add_argument(
        "--no-instrs",
        action="store_true",
        default=False,
        help="Do not list the instructions of each block",
    )
    p.add_argument(
        "--max-instrs",
        type=_non_negative_int,
        default=12,
        metavar="N",
        help="Instructions shown per block, 0 for all (default: 12)",
    )
    p.add_argument(
        "--hide-unreachable",
        action="store_true",
        default=False,
        help="Omit blocks not reachable from ENTRY",
    )
    p.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="instrcfg",
        description=__description__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              %(prog)s summary prog.s
              %(prog)s dot prog.s -o prog.dot
              cat prog.s | %(prog)s summary -
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="available commands",
        metavar="<command>",
    )

    p_summary = subparsers.add_parser(
        "summary",
        help="Print blocks and edges",
        description="Print every basic block with its range and edges.",
    )
    _add_common(p_summary)
    p_summary.set_defaults(func=cmd_summary)

    p_dot = subparsers.add_parser(
        "dot",
        help="Emit Graphviz DOT",
        description="Emit the CFG as Graphviz DOT source.",
    )
    _add_common(p_dot)
    p_dot.set_defaults(func=cmd_dot)

    return parser


# ═══════════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════════

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the instrcfg CLI.

    Returns
    -------
    int
        Exit code (0 = success, 1 = input error, 2 = usage error).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 2

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return args.func(args)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        return 130
    except BrokenPipeError:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 0


if __name__ == "__main__":
    sys.exit(main())
