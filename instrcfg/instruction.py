"""
instrcfg.instruction
====================

A small reference instruction model for x86-64 style listings.

The CFG builder never looks inside these objects; it only asks an
:class:`~instrcfg.attributes.InstrClassifier` about them.  This module
exists so that listings can be parsed, printed and fed to the builder
without an external decoder.

Public API
----------
    Label          - a symbolic jump target / label-definition operand
    Operand        - any other operand, kept as text
    Instruction    - opcode + operands (immutable)
    Code           - an ordered, mutable instruction sequence
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple, Union

# ---------------------------------------------------------------------------
# Opcode tables
# ---------------------------------------------------------------------------

LABEL_DEFN_OPCODE = ".label"

COND_JUMP_OPCODES = frozenset({
    "ja", "jae", "jb", "jbe", "jc", "je", "jg", "jge", "jl", "jle",
    "jna", "jnae", "jnb", "jnbe", "jnc", "jne", "jng", "jnge", "jnl",
    "jnle", "jno", "jnp", "jns", "jnz", "jo", "jp", "jpe", "jpo", "js",
    "jz", "jcxz", "jecxz", "jrcxz",
})

UNCOND_JUMP_OPCODES = frozenset({"jmp", "jmpq"})

RETURN_OPCODES = frozenset({"ret", "retq"})


# ---------------------------------------------------------------------------
# Operands
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Label:
    """A label operand.  ``val`` is the integer identity used by the CFG;
    ``name`` is only for display and does not take part in equality."""

    val: int
    name: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.name or f".L{self.val}"


@dataclass(frozen=True)
class Operand:
    """An operand the CFG does not care about (register, memory, imm)."""

    text: str

    def __str__(self) -> str:
        return self.text


OperandT = Union[Label, Operand]


# ---------------------------------------------------------------------------
# Instruction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Instruction:
    """A single instruction: a lower-case mnemonic and its operands."""

    opcode: str
    operands: Tuple[OperandT, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "opcode", self.opcode.lower())
        object.__setattr__(self, "operands", tuple(self.operands))

    @classmethod
    def label_defn(cls, label: Union[Label, int], name: str = "") -> "Instruction":
        """Build the pseudo-instruction that defines *label*."""
        if not isinstance(label, Label):
            label = Label(label, name)
        return cls(LABEL_DEFN_OPCODE, (label,))

    def arity(self) -> int:
        return len(self.operands)

    def get_operand(self, index: int) -> OperandT:
        return self.operands[index]

    @property
    def is_label_defn(self) -> bool:
        return self.opcode == LABEL_DEFN_OPCODE

    def __str__(self) -> str:
        if self.is_label_defn:
            return f"{self.operands[0]}:"
        if not self.operands:
            return self.opcode
        return f"{self.opcode} " + ", ".join(str(o) for o in self.operands)


# ---------------------------------------------------------------------------
# Code
# ---------------------------------------------------------------------------

class Code(list):
    """An ordered instruction sequence.

    A plain ``list`` of :class:`Instruction` with a few listing helpers.
    A :class:`~instrcfg.ctrlflow_graph.Cfg` borrows a ``Code`` object; it
    must be recomputed after the sequence is mutated.
    """

    def __init__(self, instrs: Iterable[Instruction] = ()) -> None:
        super().__init__(instrs)

    def label_names(self) -> Dict[int, str]:
        """Map label id -> display name for every label mentioned."""
        names: Dict[int, str] = {}
        for instr in self:
            for op in instr.operands:
                if isinstance(op, Label) and op.name:
                    names.setdefault(op.val, op.name)
        return names

    def to_text(self) -> str:
        """Render one instruction per line; non-label lines are indented."""
        lines = []
        for instr in self:
            prefix = "" if instr.is_label_defn else "  "
            lines.append(prefix + str(instr))
        return "\n".join(lines) + ("\n" if lines else "")

    def __repr__(self) -> str:
        return f"Code({list.__repr__(self)})"


__all__ = [
    "LABEL_DEFN_OPCODE",
    "COND_JUMP_OPCODES",
    "UNCOND_JUMP_OPCODES",
    "RETURN_OPCODES",
    "Label",
    "Operand",
    "Instruction",
    "Code",
]
