# instrcfg/errors.py
"""
Error Types for Control-Flow Graph Construction

Every failure raised by :mod:`instrcfg` derives from :class:`CfgError` and
carries a stable :class:`ErrorCode` so that callers (and the CLI) can
classify failures without parsing messages.

Error Hierarchy:
────────────────
┌──────────────────────────────────────────────────────────────────────┐
│  CfgError (base)                                                     │
│  ├── NotComputedError      - query before any successful recompute   │
│  ├── UnboundCodeError      - recompute without an instruction seq.   │
│  ├── UnresolvedLabelError  - jump target with no label definition    │
│  ├── InvalidBlockError     - block id / instruction index out of     │
│  │                           range (also an IndexError)              │
│  └── ListingParseError     - textual listing does not parse          │
└──────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
  - CFG-1xxx: graph construction and query errors
  - CFG-2xxx: listing input and report output errors

Example Usage:
──────────────
    from instrcfg.errors import CfgError

    try:
        cfg.recompute()
    except CfgError as exc:
        print(exc.format(), file=sys.stderr)
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Any, Dict, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorCode(Enum):
    """Stable identifiers for every failure class."""

    NOT_COMPUTED = 1000
    UNBOUND_CODE = 1001
    UNRESOLVED_LABEL = 1002
    INVALID_BLOCK = 1003
    INVALID_INDEX = 1004
    LISTING_SYNTAX = 2000
    LISTING_IO = 2001
    OUTPUT_IO = 2002

    @property
    def code(self) -> str:
        """Get the full error code string, e.g. ``CFG-1002``."""
        return f"CFG-{self.value:04d}"

    def __str__(self) -> str:
        return self.code


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION HIERARCHY
# ═══════════════════════════════════════════════════════════════════════════════

class CfgError(Exception):
    """
    Base exception for all instrcfg errors.

    Subclasses set :attr:`default_code`; an explicit ``code`` argument
    overrides it.
    """

    default_code: ErrorCode = ErrorCode.NOT_COMPUTED

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.hint = hint

    def format(self) -> str:
        """Render as ``[CFG-XXXX] message`` with an optional hint line."""
        text = f"[{self.code}] {self.message}"
        if self.hint:
            text += f"\n  hint: {self.hint}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.code,
            "type": type(self).__name__,
            "message": self.message,
            "hint": self.hint,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.code}, {self.message!r})"


class NotComputedError(CfgError):
    """Raised when a graph query is made before ``recompute()`` succeeded."""

    default_code = ErrorCode.NOT_COMPUTED

    def __init__(self, query: str = "") -> None:
        what = f"'{query}' " if query else ""
        super().__init__(
            f"CFG query {what}made before recompute()",
            hint="call recompute() after binding or mutating the code",
        )
        self.query = query


class UnboundCodeError(CfgError):
    """Raised by ``recompute()`` when no instruction sequence is bound."""

    default_code = ErrorCode.UNBOUND_CODE

    def __init__(self) -> None:
        super().__init__(
            "no instruction sequence bound to this CFG",
            hint="pass a sequence to Cfg(...) or call set_code()",
        )


class UnresolvedLabelError(CfgError):
    """A jump names a label that is never defined in the sequence."""

    default_code = ErrorCode.UNRESOLVED_LABEL

    def __init__(self, label: int, index: Optional[int] = None) -> None:
        where = f" (instruction {index})" if index is not None else ""
        super().__init__(f"jump target label {label} is not defined{where}")
        self.label = label
        self.index = index

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["label"] = self.label
        d["index"] = self.index
        return d


class InvalidBlockError(CfgError, IndexError):
    """A block id or instruction index lies outside the graph."""

    default_code = ErrorCode.INVALID_BLOCK

    def __init__(self, value: int, limit: int, what: str = "block") -> None:
        code = ErrorCode.INVALID_BLOCK if what == "block" else ErrorCode.INVALID_INDEX
        super().__init__(f"{what} {value} out of range [0, {limit})", code=code)
        self.value = value
        self.limit = limit


class ListingParseError(CfgError):
    """A textual instruction listing could not be parsed."""

    default_code = ErrorCode.LISTING_SYNTAX

    def __init__(
        self,
        message: str,
        line: int = 0,
        column: int = 0,
        source: str = "<listing>",
        code: Optional[ErrorCode] = None,
    ) -> None:
        loc = f"{source}:{line}:{column}: " if line else f"{source}: "
        super().__init__(f"{loc}{message}", code=code)
        self.line = line
        self.column = column
        self.source = source

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["line"] = self.line
        d["column"] = self.column
        d["source"] = self.source
        return d


__all__ = [
    "ErrorCode",
    "CfgError",
    "NotComputedError",
    "UnboundCodeError",
    "UnresolvedLabelError",
    "InvalidBlockError",
    "ListingParseError",
]
