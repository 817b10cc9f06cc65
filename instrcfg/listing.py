"""
instrcfg.listing
================

Reads textual assembly listings into :class:`~instrcfg.instruction.Code`.

The accepted format is one statement per line, AT&T or Intel flavoured::

    # comment
    .L0:                    # label definition
        cmpq $0, %rdi       # mnemonic followed by comma separated operands
        je .L1
        movq 8(%rsp,%rax,4), %rbx
    .L1: retq               # a label may share its line with an instruction

Label names are interned into integer ids in order of first appearance,
whether that appearance is a definition or a jump.  Only the first operand
of a direct jump is treated as a label; ``jmp *%rax`` keeps a plain
operand and is therefore not a jump to the CFG.

Depends on:
    - parsimonious      (PEG parser)
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from parsimonious.exceptions import IncompleteParseError, ParseError, VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from instrcfg.errors import ErrorCode, ListingParseError
from instrcfg.instruction import (
    COND_JUMP_OPCODES,
    UNCOND_JUMP_OPCODES,
    Code,
    Instruction,
    Label,
    Operand,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

LISTING_GRAMMAR = Grammar(r'''
    listing         = line*
    line            = hspace label_defn? hspace instruction? hspace comment? newline

    label_defn      = label_name hspace ":"
    instruction     = mnemonic operand_list?
    operand_list    = hspace1 operand (hspace "," hspace operand)*

    operand         = ~r"(?:\([^)\n]*\)|[^,#;\n()])+"
    mnemonic        = ~r"[A-Za-z][A-Za-z0-9_]*"
    label_name      = ~r"[A-Za-z_.$][A-Za-z0-9_.$]*"

    comment         = ~r"[#;][^\n]*"
    hspace          = ~r"[ \t]*"
    hspace1         = ~r"[ \t]+"
    newline         = "\n"
''')

_LABEL_RE = re.compile(r"[A-Za-z_.$][A-Za-z0-9_.$]*\Z")
_JUMP_OPCODES = COND_JUMP_OPCODES | UNCOND_JUMP_OPCODES

# A parsed statement: ("label", name) or ("instr", mnemonic, [operands])
Statement = Tuple


# ═══════════════════════════════════════════════════════════════════
#  PARSE TREE -> STATEMENTS
# ═══════════════════════════════════════════════════════════════════

def _optional(value):
    """Unwrap the result of an ``x?`` rule: the child's value, or None."""
    if isinstance(value, list) and value:
        return value[0]
    return None


def _repeated(value) -> list:
    """Results of an ``x*`` rule; an empty match visits as a bare Node."""
    return value if isinstance(value, list) else []


class ListingVisitor(NodeVisitor):
    """Transforms the Parsimonious parse tree into a flat statement list."""

    def generic_visit(self, node, visited_children):
        return visited_children or node

    def visit_listing(self, node, visited_children) -> List[Statement]:
        statements: List[Statement] = []
        for line in _repeated(visited_children):
            statements.extend(line)
        return statements

    def visit_line(self, node, visited_children) -> List[Statement]:
        _, label, _, instr, _, _, _ = visited_children
        return [s for s in (_optional(label), _optional(instr)) if s is not None]

    def visit_label_defn(self, node, visited_children) -> Statement:
        name, _, _ = visited_children
        return ("label", name.text)

    def visit_instruction(self, node, visited_children) -> Statement:
        mnemonic, operands = visited_children
        return ("instr", mnemonic.text, _optional(operands) or [])

    def visit_operand_list(self, node, visited_children) -> List[str]:
        _, first, rest = visited_children
        operands = [first]
        for _, _, _, op in _repeated(rest):
            operands.append(op)
        return operands

    def visit_operand(self, node, visited_children) -> str:
        return node.text.strip()


# ═══════════════════════════════════════════════════════════════════
#  STATEMENTS -> CODE
# ═══════════════════════════════════════════════════════════════════

class _LabelTable:
    """Interns label names into dense integer ids."""

    def __init__(self) -> None:
        self._ids: Dict[str, int] = {}

    def get(self, name: str) -> Label:
        if name not in self._ids:
            self._ids[name] = len(self._ids)
        return Label(self._ids[name], name)

    def __len__(self) -> int:
        return len(self._ids)


def _build_code(statements: List[Statement]) -> Code:
    table = _LabelTable()
    code = Code()
    for stmt in statements:
        if stmt[0] == "label":
            code.append(Instruction.label_defn(table.get(stmt[1])))
            continue
        _, mnemonic, texts = stmt
        opcode = mnemonic.lower()
        operands = []
        for i, text in enumerate(texts):
            if i == 0 and opcode in _JUMP_OPCODES and _LABEL_RE.match(text):
                operands.append(table.get(text))
            else:
                operands.append(Operand(text))
        code.append(Instruction(opcode, tuple(operands)))
    logger.debug("parsed listing: %d instructions, %d labels", len(code), len(table))
    return code


def _line_text(text: str, pos: int) -> str:
    start = text.rfind("\n", 0, pos) + 1
    end = text.find("\n", pos)
    return text[start:end if end != -1 else len(text)].strip()


# ═══════════════════════════════════════════════════════════════════
#  PUBLIC API
# ═══════════════════════════════════════════════════════════════════

def parse_listing(text: str, source: str = "<listing>") -> Code:
    """Parse listing *text* into a :class:`Code` sequence.

    Raises
    ------
    ListingParseError
        With the 1-based line and column of the first offending line.
    """
    text = text.replace("\r\n", "\n")
    if text and not text.endswith("\n"):
        text += "\n"
    try:
        tree = LISTING_GRAMMAR.parse(text)
    except IncompleteParseError as e:
        raise ListingParseError(
            f"cannot parse line: {_line_text(text, e.pos)!r}",
            line=e.line(), column=e.column(), source=source,
        ) from e
    except ParseError as e:
        raise ListingParseError(
            f"syntax error near {_line_text(text, e.pos)!r}",
            line=e.line(), column=e.column(), source=source,
        ) from e
    try:
        statements = ListingVisitor().visit(tree)
    except VisitationError as e:
        raise ListingParseError(str(e), source=source) from e
    return _build_code(statements)


def parse_listing_file(path: Union[str, Path], encoding: Optional[str] = "utf-8") -> Code:
    """Read and parse the listing stored at *path*."""
    path = Path(path)
    try:
        text = path.read_text(encoding=encoding)
    except OSError as e:
        raise ListingParseError(
            f"cannot read listing: {e.strerror or e}",
            source=str(path), code=ErrorCode.LISTING_IO,
        ) from e
    return parse_listing(text, source=str(path))


__all__ = [
    "LISTING_GRAMMAR",
    "ListingVisitor",
    "parse_listing",
    "parse_listing_file",
]
