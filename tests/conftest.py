# tests/conftest.py
"""
Shared fixtures and builders for the instrcfg test-suite.

Two instruction flavours are provided:

* real :class:`instrcfg.instruction.Instruction` objects, built with the
  short helpers ``lbl``, ``jmp``, ``jcc``, ``ret`` and ``op``;
* ``MockInstr`` objects plus ``MockClassifier``, used to check that the
  CFG builder only talks to instructions through the classifier protocol.
"""

from dataclasses import dataclass

import pytest

from instrcfg.instruction import Code, Instruction, Label, Operand


# ── Real instruction builders ─────────────────────────────────────

def lbl(n: int) -> Instruction:
    return Instruction.label_defn(Label(n, f".L{n}"))


def jmp(n: int) -> Instruction:
    return Instruction("jmp", (Label(n, f".L{n}"),))


def jcc(n: int, cc: str = "je") -> Instruction:
    return Instruction(cc, (Label(n, f".L{n}"),))


def ret() -> Instruction:
    return Instruction("retq")


def op(mnemonic: str = "nop", *operands: str) -> Instruction:
    return Instruction(mnemonic, tuple(Operand(o) for o in operands))


def code_of(*instrs: Instruction) -> Code:
    return Code(instrs)


# ── Mock instructions ─────────────────────────────────────────────

@dataclass(frozen=True)
class MockInstr:
    """kind is one of 'label', 'jmp', 'jcc', 'ret', 'op'."""

    kind: str = "op"
    target: int = 0


class MockClassifier:
    """Classifier over MockInstr; counts calls so tests can inspect usage."""

    def __init__(self):
        self.calls = 0

    def _kind(self, instr):
        self.calls += 1
        return instr.kind

    def is_label_defn(self, instr):
        return self._kind(instr) == "label"

    def is_jump(self, instr):
        return self._kind(instr) in ("jmp", "jcc")

    def is_cond_jump(self, instr):
        return self._kind(instr) == "jcc"

    def is_uncond_jump(self, instr):
        return self._kind(instr) == "jmp"

    def is_return(self, instr):
        return self._kind(instr) == "ret"

    def target(self, instr):
        return instr.target


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture
def diamond_code():
    """cmp; je L1; mov; L1: ret: three real blocks."""
    return code_of(
        op("cmpq", "$0", "%rdi"),
        jcc(1),
        op("movq", "%rdi", "%rax"),
        lbl(1),
        ret(),
    )


@pytest.fixture
def self_loop_code():
    """L0: jmp L0: one real block that loops to itself."""
    return code_of(lbl(0), jmp(0))


@pytest.fixture
def unreachable_code():
    """xor; jmp L1; mov; L1: ret: the mov block is never reached."""
    return code_of(
        op("xorq", "%rax", "%rax"),
        jmp(1),
        op("movq", "%rax", "%rbx"),
        lbl(1),
        ret(),
    )


DIAMOND_LISTING = """\
# returns its argument, or zero
    cmpq $0, %rdi
    je .L1
    movq %rdi, %rax
.L1:
    retq
"""
