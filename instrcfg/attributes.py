"""
instrcfg.attributes
===================

Instruction classification.

The CFG builder is decoupled from any concrete instruction type: it asks an
:class:`InstrClassifier` five yes/no questions about an instruction and,
for label definitions and jumps, for the integer label id they carry.

Any object with these methods satisfies the protocol; :class:`X64Attributes`
is the implementation for :class:`~instrcfg.instruction.Instruction`.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from instrcfg.instruction import (
    COND_JUMP_OPCODES,
    LABEL_DEFN_OPCODE,
    RETURN_OPCODES,
    UNCOND_JUMP_OPCODES,
    Instruction,
    Label,
)


@runtime_checkable
class InstrClassifier(Protocol):
    """Capability interface consumed by :class:`~instrcfg.ctrlflow_graph.Cfg`.

    Contract: ``is_cond_jump`` and ``is_uncond_jump`` each imply
    ``is_jump`` and are mutually exclusive.  ``target`` is only called on
    instructions for which ``is_label_defn`` or ``is_jump`` holds.
    """

    def is_label_defn(self, instr: Any) -> bool: ...

    def is_jump(self, instr: Any) -> bool: ...

    def is_cond_jump(self, instr: Any) -> bool: ...

    def is_uncond_jump(self, instr: Any) -> bool: ...

    def is_return(self, instr: Any) -> bool: ...

    def target(self, instr: Any) -> int: ...


def _label_operand(instr: Instruction) -> bool:
    return bool(instr.operands) and isinstance(instr.operands[0], Label)


class X64Attributes:
    """Classifier for :class:`~instrcfg.instruction.Instruction`.

    Only direct jumps (first operand a :class:`Label`) count as jumps;
    ``jmp *%rax`` and friends are ordinary instructions to the CFG.
    """

    def is_label_defn(self, instr: Instruction) -> bool:
        return instr.opcode == LABEL_DEFN_OPCODE and _label_operand(instr)

    def is_cond_jump(self, instr: Instruction) -> bool:
        return instr.opcode in COND_JUMP_OPCODES and _label_operand(instr)

    def is_uncond_jump(self, instr: Instruction) -> bool:
        return instr.opcode in UNCOND_JUMP_OPCODES and _label_operand(instr)

    def is_jump(self, instr: Instruction) -> bool:
        return self.is_cond_jump(instr) or self.is_uncond_jump(instr)

    def is_return(self, instr: Instruction) -> bool:
        return instr.opcode in RETURN_OPCODES

    def target(self, instr: Instruction) -> int:
        return instr.get_operand(0).val

    def __repr__(self) -> str:
        return "X64Attributes()"


DEFAULT_CLASSIFIER = X64Attributes()

__all__ = ["InstrClassifier", "X64Attributes", "DEFAULT_CLASSIFIER"]
