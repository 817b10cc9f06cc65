"""
instrcfg.ctrlflow_graph
=======================

Builds a Control Flow Graph (CFG) over a flat, linearly ordered instruction
sequence.

The sequence is partitioned into maximal straight-line *basic blocks*.
Blocks are identified by plain integers: block ``0`` is the synthetic
ENTRY block, the last block is the synthetic EXIT block, and every block
in between covers a contiguous, non-empty range of instruction indices.

Public API
----------
    Cfg         - the control flow graph over one instruction sequence
    build_cfg   - bind a sequence, recompute, and return the Cfg

Typical usage::

    from instrcfg import build_cfg, parse_listing

    code = parse_listing('''
        cmpq $0, %rdi
        je .L1
        movq %rdi, %rax
    .L1:
        retq
    ''')
    cfg = build_cfg(code)
    for b in cfg.blocks():
        print(b, cfg.instr_range(b), cfg.successors(b))

Implementation notes
--------------------
* ``recompute()`` does one forward scan to find block boundaries and, in
  the same scan, records which block each label definition begins.  A
  second pass over the blocks computes successors; a third inverts them.
* The boundary table has ``num_blocks() + 1`` entries; block ``b`` spans
  ``[table[b], table[b+1])``.  ENTRY is ``[0, 0)`` and EXIT is ``[N, N)``.
* Instruction 0 is only checked for a label, which maps to block 1.  From
  index 1 on, a jump or return at ``i`` pushes ``i+1`` and a label at ``i``
  pushes ``i`` only if ``i`` is not already the last boundary, so a label
  directly after a jump does not create an empty block.
* All tables are built into locals and only installed once the whole
  computation succeeded, so a failing ``recompute()`` leaves the previous
  graph intact.
"""

from __future__ import annotations

import bisect
import logging
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from instrcfg.attributes import DEFAULT_CLASSIFIER, InstrClassifier
from instrcfg.errors import (
    InvalidBlockError,
    NotComputedError,
    UnboundCodeError,
    UnresolvedLabelError,
)

logger = logging.getLogger(__name__)

BlockId = int


class Cfg:
    """Control flow graph over a borrowed instruction sequence.

    Parameters
    ----------
    code : sequence or None
        Any ordered, indexable, ``len()``-queryable instruction sequence.
        The Cfg never mutates it.
    classifier : InstrClassifier, optional
        Answers the label/jump/return questions about each instruction.
        Defaults to :class:`~instrcfg.attributes.X64Attributes`.

    No query is valid until :meth:`recompute` has succeeded; after the
    sequence is mutated, call :meth:`recompute` again.
    """

    def __init__(
        self,
        code: Optional[Sequence[Any]] = None,
        classifier: Optional[InstrClassifier] = None,
    ) -> None:
        self._code = code
        self._classifier: InstrClassifier = (
            classifier if classifier is not None else DEFAULT_CLASSIFIER
        )
        self._reset()

    def _reset(self) -> None:
        self._blocks: Optional[Tuple[int, ...]] = None
        self._labels: Dict[int, BlockId] = {}
        self._succs: Tuple[Tuple[BlockId, ...], ...] = ()
        self._preds: Tuple[Tuple[BlockId, ...], ...] = ()
        self._reachable: frozenset = frozenset()
        self._snapshot: Tuple[Any, ...] = ()

    # ----- binding ----------------------------------------------------------

    def get_code(self) -> Optional[Sequence[Any]]:
        return self._code

    def set_code(self, code: Optional[Sequence[Any]]) -> None:
        """Bind a new sequence.  The graph must be recomputed afterwards."""
        self._code = code
        self._reset()

    @property
    def classifier(self) -> InstrClassifier:
        return self._classifier

    # ----- construction -----------------------------------------------------

    def recompute(self) -> None:
        """(Re)build blocks, successors and predecessors from the bound code.

        Raises
        ------
        UnboundCodeError
            No sequence is bound.
        UnresolvedLabelError
            A jump names a label that no instruction defines.
        """
        code = self._code
        if code is None:
            raise UnboundCodeError()

        # Quick exit for the corner case of empty code
        if len(code) == 0:
            blocks: Tuple[int, ...] = (0, 0, 0)
            labels: Dict[int, BlockId] = {}
            succs: Tuple[Tuple[BlockId, ...], ...] = ((1,), ())
            preds: Tuple[Tuple[BlockId, ...], ...] = ((), (0,))
        else:
            blocks, labels = self._partition(code)
            succs = self._successors(code, blocks, labels)
            preds = self._predecessors(succs)

        reachable = self._reachable_from(0, succs)

        self._blocks = blocks
        self._labels = labels
        self._succs = succs
        self._preds = preds
        self._reachable = reachable
        self._snapshot = tuple(code)

        logger.debug(
            "recomputed CFG: %d instrs, %d blocks, %d labels, %d unreachable",
            len(code), len(blocks) - 1, len(labels),
            len(blocks) - 1 - len(reachable),
        )

    def _partition(
        self, code: Sequence[Any]
    ) -> Tuple[Tuple[int, ...], Dict[int, BlockId]]:
        cls = self._classifier
        n = len(code)

        # ENTRY and the first block both start at zero
        blocks: List[int] = [0, 0]
        labels: Dict[int, BlockId] = {}

        # Only a label is considered at position 0; the scan proper starts at 1
        first = code[0]
        if cls.is_label_defn(first):
            labels[cls.target(first)] = 1

        for i in range(1, n):
            instr = code[i]
            # Labels begin blocks, unless a jump/return already ended one here
            if cls.is_label_defn(instr):
                if blocks[-1] != i:
                    blocks.append(i)
                label = cls.target(instr)
                if label in labels:
                    logger.warning(
                        "label %s defined more than once; using instruction %d",
                        label, i,
                    )
                labels[label] = len(blocks) - 1
                continue
            # Jumps and returns end blocks
            if cls.is_jump(instr) or cls.is_return(instr):
                blocks.append(i + 1)

        # Close the last block (a trailing jump may already have), then EXIT
        if blocks[-1] != n:
            blocks.append(n)
        blocks.append(n)
        return tuple(blocks), labels

    def _resolve(self, labels: Dict[int, BlockId], instr: Any, index: int) -> BlockId:
        label = self._classifier.target(instr)
        try:
            return labels[label]
        except KeyError:
            raise UnresolvedLabelError(label, index) from None

    def _successors(
        self,
        code: Sequence[Any],
        blocks: Tuple[int, ...],
        labels: Dict[int, BlockId],
    ) -> Tuple[Tuple[BlockId, ...], ...]:
        cls = self._classifier
        exit_id = len(blocks) - 2
        succs: List[Tuple[BlockId, ...]] = []

        for b in range(exit_id):
            begin, end = blocks[b], blocks[b + 1]
            # Empty blocks fall through (this handles ENTRY)
            if begin == end:
                succs.append((b + 1,))
                continue

            last = end - 1
            instr = code[last]
            if cls.is_uncond_jump(instr):
                succs.append((self._resolve(labels, instr, last),))
            elif cls.is_return(instr):
                succs.append((exit_id,))
            elif cls.is_cond_jump(instr):
                target = self._resolve(labels, instr, last)
                # Edge lists are set-like: a jump to the fallthrough block is one edge
                if target == b + 1:
                    succs.append((b + 1,))
                else:
                    succs.append((b + 1, target))
            else:
                succs.append((b + 1,))

        # EXIT
        succs.append(())
        return tuple(succs)

    @staticmethod
    def _predecessors(
        succs: Tuple[Tuple[BlockId, ...], ...]
    ) -> Tuple[Tuple[BlockId, ...], ...]:
        preds: List[List[BlockId]] = [[] for _ in succs]
        for b, targets in enumerate(succs):
            for s in targets:
                preds[s].append(b)
        return tuple(tuple(p) for p in preds)

    @staticmethod
    def _reachable_from(
        start: BlockId, succs: Tuple[Tuple[BlockId, ...], ...]
    ) -> frozenset:
        visited: Set[BlockId] = set()
        worklist = [start]
        while worklist:
            b = worklist.pop()
            if b in visited:
                continue
            visited.add(b)
            worklist.extend(succs[b])
        return frozenset(visited)

    # ----- state ------------------------------------------------------------

    def is_computed(self) -> bool:
        """True once ``recompute()`` has succeeded for the bound code."""
        return self._blocks is not None

    def is_current(self) -> bool:
        """True if computed and the bound code still matches the snapshot
        taken at the last ``recompute()``."""
        if self._blocks is None or self._code is None:
            return False
        return tuple(self._code) == self._snapshot

    def _require(self, query: str) -> Tuple[int, ...]:
        if self._blocks is None:
            raise NotComputedError(query)
        return self._blocks

    def _check_block(self, b: BlockId, query: str) -> Tuple[int, ...]:
        blocks = self._require(query)
        if not 0 <= b < len(blocks) - 1:
            raise InvalidBlockError(b, len(blocks) - 1)
        return blocks

    # ----- block queries ----------------------------------------------------

    def get_entry(self) -> BlockId:
        self._require("get_entry")
        return 0

    def get_exit(self) -> BlockId:
        return len(self._require("get_exit")) - 2

    def num_blocks(self) -> int:
        return len(self._require("num_blocks")) - 1

    def blocks(self) -> range:
        """All block ids, ENTRY first and EXIT last."""
        return range(self.num_blocks())

    def is_entry(self, b: BlockId) -> bool:
        self._check_block(b, "is_entry")
        return b == 0

    def is_exit(self, b: BlockId) -> bool:
        self._check_block(b, "is_exit")
        return b == self.get_exit()

    def num_instrs(self, b: BlockId) -> int:
        blocks = self._check_block(b, "num_instrs")
        return blocks[b + 1] - blocks[b]

    def instr_range(self, b: BlockId) -> Tuple[int, int]:
        """Half-open instruction index range ``(begin, end)`` of block *b*."""
        blocks = self._check_block(b, "instr_range")
        return blocks[b], blocks[b + 1]

    def instrs(self, b: BlockId) -> Tuple[Any, ...]:
        """The instructions of block *b*, read from the bound code."""
        begin, end = self.instr_range(b)
        code = self._code
        return tuple(code[i] for i in range(begin, end))

    def get_index(self, b: BlockId, offset: int) -> int:
        """Absolute instruction index of the *offset*-th instruction in *b*."""
        count = self.num_instrs(b)
        if not 0 <= offset < count:
            raise InvalidBlockError(offset, count, what="offset")
        return self._blocks[b] + offset

    def block_of(self, index: int) -> BlockId:
        """The block that contains instruction *index*."""
        blocks = self._require("block_of")
        n = blocks[-1]
        if not 0 <= index < n:
            raise InvalidBlockError(index, n, what="instruction")
        return bisect.bisect_right(blocks, index) - 1

    def block_table(self) -> Tuple[int, ...]:
        """The raw boundary table (``num_blocks() + 1`` entries)."""
        return self._require("block_table")

    # ----- label queries ----------------------------------------------------

    def labels(self) -> Dict[int, BlockId]:
        """Snapshot of label id -> block id."""
        self._require("labels")
        return dict(self._labels)

    def label_block(self, label: int) -> BlockId:
        self._require("label_block")
        try:
            return self._labels[label]
        except KeyError:
            raise UnresolvedLabelError(label) from None

    # ----- edge queries -----------------------------------------------------

    def successors(self, b: BlockId) -> Tuple[BlockId, ...]:
        self._check_block(b, "successors")
        return self._succs[b]

    def predecessors(self, b: BlockId) -> Tuple[BlockId, ...]:
        self._check_block(b, "predecessors")
        return self._preds[b]

    def edges(self) -> Iterator[Tuple[BlockId, BlockId]]:
        """Yield every ``(src, dst)`` edge in block order."""
        self._require("edges")
        for b, targets in enumerate(self._succs):
            for s in targets:
                yield b, s

    def is_reachable(self, b: BlockId) -> bool:
        """True if *b* can be reached from ENTRY."""
        self._check_block(b, "is_reachable")
        return b in self._reachable

    # ----- dunder -----------------------------------------------------------

    def __repr__(self) -> str:
        if self._blocks is None:
            return "Cfg(<not computed>)"
        return (
            f"Cfg(blocks={len(self._blocks) - 1}, "
            f"edges={sum(len(s) for s in self._succs)})"
        )


# ===========================================================================
# PUBLIC API
# ===========================================================================

def build_cfg(
    code: Sequence[Any],
    classifier: Optional[InstrClassifier] = None,
) -> Cfg:
    """Bind *code*, compute its CFG and return it.

    Raises
    ------
    UnresolvedLabelError
        A jump names a label that no instruction defines.
    """
    cfg = Cfg(code, classifier)
    cfg.recompute()
    return cfg


__all__ = ["BlockId", "Cfg", "build_cfg"]
