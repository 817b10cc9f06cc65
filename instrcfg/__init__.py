"""
instrcfg — Control Flow Graphs over Linear Instruction Listings
===============================================================

This package partitions a flat instruction sequence into basic blocks and
computes the successor/predecessor relation between them, for use by
downstream analyses (liveness, dominance, optimisation passes).

Core modules
------------
ctrlflow_graph
    The :class:`Cfg` builder and its block / edge queries.
attributes
    The :class:`InstrClassifier` protocol the builder consumes, and the
    default x86-64 classifier.
instruction
    A reference instruction model (``Instruction``, ``Label``, ``Code``).
listing
    Parsimonious grammar reading textual assembly listings.
report
    Text summary and Graphviz DOT rendering.
errors
    The :class:`CfgError` hierarchy.

Quick start
-----------
>>> from instrcfg import build_cfg, parse_listing
>>> cfg = build_cfg(parse_listing(".L0:\\n  jmp .L0\\n"))
>>> cfg.num_blocks(), cfg.successors(1)
(3, (1,))

Package layout
--------------
::

    instrcfg/
    ├── __init__.py            ← this file
    ├── __main__.py            ← command line interface
    ├── attributes.py
    ├── ctrlflow_graph.py
    ├── errors.py
    ├── instruction.py
    ├── listing.py
    └── report.py
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import TYPE_CHECKING, List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__all__: List[str] = []          # populated below

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Re-export registry: module_name -> names to bind on the package
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "errors": [
        "ErrorCode",
        "CfgError",
        "NotComputedError",
        "UnboundCodeError",
        "UnresolvedLabelError",
        "InvalidBlockError",
        "ListingParseError",
    ],
    "instruction": [
        "Label",
        "Operand",
        "Instruction",
        "Code",
    ],
    "attributes": [
        "InstrClassifier",
        "X64Attributes",
    ],
    "ctrlflow_graph": [
        "Cfg",
        "build_cfg",
    ],
    "listing": [
        "parse_listing",
        "parse_listing_file",
    ],
    "report": [
        "RenderConfig",
        "cfg_summary",
        "cfg_to_dot",
    ],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace."""
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"instrcfg: required submodule '{module_rel_name}' "
            f"failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            raise AttributeError(
                f"instrcfg.{module_rel_name} does not export '{name}'"
            )
        setattr(current_module, name, obj)
        __all__.append(name)

    setattr(current_module, module_rel_name, mod)
    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names)

del _mod, _names


def list_submodules() -> List[str]:
    """Return the names of all re-exporting submodules."""
    return sorted(_CORE_MODULES)


def package_info() -> dict:
    """Return a dict of metadata about the installed package."""
    return {
        "package": __name__,
        "version": __version__,
        "python": sys.version,
        "submodules": list_submodules(),
        "all_exports": list(__all__),
    }


__all__ += ["list_submodules", "package_info", "__version__"]

if TYPE_CHECKING:
    from .errors import (
        ErrorCode as ErrorCode,
        CfgError as CfgError,
        NotComputedError as NotComputedError,
        UnboundCodeError as UnboundCodeError,
        UnresolvedLabelError as UnresolvedLabelError,
        InvalidBlockError as InvalidBlockError,
        ListingParseError as ListingParseError,
    )
    from .instruction import (
        Label as Label,
        Operand as Operand,
        Instruction as Instruction,
        Code as Code,
    )
    from .attributes import (
        InstrClassifier as InstrClassifier,
        X64Attributes as X64Attributes,
    )
    from .ctrlflow_graph import (
        Cfg as Cfg,
        build_cfg as build_cfg,
    )
    from .listing import (
        parse_listing as parse_listing,
        parse_listing_file as parse_listing_file,
    )
    from .report import (
        RenderConfig as RenderConfig,
        cfg_summary as cfg_summary,
        cfg_to_dot as cfg_to_dot,
    )
