"""
instrcfg.report
===============

Human-readable renderings of a computed :class:`~instrcfg.ctrlflow_graph.Cfg`:
a plain-text summary and Graphviz DOT source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from instrcfg.ctrlflow_graph import BlockId, Cfg


@dataclass
class RenderConfig:
    """Presentation options shared by :func:`cfg_summary` and :func:`cfg_to_dot`.

    Attributes
    ----------
    title : str or None
        Graph label (DOT) / header line (summary).
    show_instrs : bool
        List the instructions of each block.
    max_instrs : int
        Instructions shown per block before eliding with ``…``.
        ``0`` means no limit.
    hide_unreachable : bool
        Omit blocks that cannot be reached from ENTRY.
    """

    title: Optional[str] = None
    show_instrs: bool = True
    max_instrs: int = 12
    hide_unreachable: bool = False


def _block_name(cfg: Cfg, b: BlockId) -> str:
    if b == cfg.get_entry():
        return "ENTRY"
    if b == cfg.get_exit():
        return "EXIT"
    return f"BB{b}"


def _block_lines(cfg: Cfg, b: BlockId, config: RenderConfig) -> List[str]:
    instrs = cfg.instrs(b)
    limit = config.max_instrs or len(instrs)
    lines = [str(i) for i in instrs[:limit]]
    if len(instrs) > limit:
        lines.append("…")
    return lines


def _visible(cfg: Cfg, config: RenderConfig) -> List[BlockId]:
    return [
        b for b in cfg.blocks()
        if not config.hide_unreachable or cfg.is_reachable(b)
    ]


def cfg_summary(cfg: Cfg, config: Optional[RenderConfig] = None) -> str:
    """Return a multi-line human-readable summary of *cfg*."""
    config = config or RenderConfig()
    lines = []
    if config.title:
        lines.append(config.title)
    lines.append(repr(cfg))
    for b in _visible(cfg, config):
        begin, end = cfg.instr_range(b)
        succ = ", ".join(_block_name(cfg, s) for s in cfg.successors(b))
        pred = ", ".join(_block_name(cfg, p) for p in cfg.predecessors(b))
        flag = "" if cfg.is_reachable(b) else "  (unreachable)"
        lines.append(
            f"  {_block_name(cfg, b)} [{begin}, {end})  "
            f"succ=[{succ}]  pred=[{pred}]{flag}"
        )
        if config.show_instrs:
            for text in _block_lines(cfg, b, config):
                lines.append(f"      {text}")
    return "\n".join(lines)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def cfg_to_dot(cfg: Cfg, config: Optional[RenderConfig] = None) -> str:
    """Return a Graphviz DOT representation of *cfg*."""
    config = config or RenderConfig()
    lines = ["digraph CFG {"]
    if config.title:
        lines.append(f'  label="{_escape(config.title)}";')
    lines.append("  node [shape=box, fontname=monospace, fontsize=10];")

    shown = set(_visible(cfg, config))
    for b in sorted(shown):
        label = _block_name(cfg, b)
        if config.show_instrs and cfg.num_instrs(b):
            body = "\\l".join(_escape(t) for t in _block_lines(cfg, b, config))
            label = f"{label}\\n{body}\\l"
        color = ""
        if b == cfg.get_entry():
            color = ', style=filled, fillcolor="#ccffcc"'
        elif b == cfg.get_exit():
            color = ', style=filled, fillcolor="#ffcccc"'
        elif not cfg.is_reachable(b):
            color = ', style=dashed'
        lines.append(f'  n{b} [label="{label}"{color}];')

    for src, dst in cfg.edges():
        if src not in shown or dst not in shown:
            continue
        style = ""
        if dst <= src and dst != cfg.get_exit():
            style = " [style=bold, color=blue]"
        elif dst != src + 1:
            style = " [color=red]"
        lines.append(f"  n{src} -> n{dst}{style};")
    lines.append("}")
    return "\n".join(lines) + "\n"


__all__ = ["RenderConfig", "cfg_summary", "cfg_to_dot"]
