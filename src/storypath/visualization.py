"""Story graph visualization.

Extracts the scene/choice structure of a story and renders it as DOT
(Graphviz) or Mermaid markup. Dangling choice targets are drawn as
placeholder nodes so broken references are visible at a glance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storypath.config import DEFAULT_STARTING_SCENE
from storypath.engine.outcome import compute_outcome
from storypath.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from storypath.models.story import Scene

log = get_logger(__name__)

_START_COLOR = "#90EE90"  # light green
_SCENE_COLOR = "#ADD8E6"  # light blue
_MISSING_COLOR = "#FFFFFF"
_OUTCOME_COLORS = {
    "positive": "#FFD700",  # gold
    "negative": "#FFB6C1",  # light pink
    "neutral": "#D3D3D3",  # light grey
}
_BROKEN_EDGE_COLOR = "#FF4500"  # orange-red
_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_]")


@dataclass
class DiagramNode:
    """A scene in the diagram."""

    id: str
    label: str
    is_start: bool = False
    is_ending: bool = False
    outcome: str | None = None
    badge: str | None = None
    is_missing: bool = False


@dataclass
class DiagramEdge:
    """A choice in the diagram."""

    from_id: str
    to_id: str
    label: str = ""
    is_broken: bool = False


@dataclass
class StoryDiagram:
    """Complete visualization data extracted from a story graph."""

    nodes: list[DiagramNode] = field(default_factory=list)
    edges: list[DiagramEdge] = field(default_factory=list)


def build_story_diagram(
    graph: Mapping[str, Scene],
    starting_scene_id: str = DEFAULT_STARTING_SCENE,
    *,
    max_label: int = 40,
) -> StoryDiagram:
    """Extract visualization data from a story graph.

    Args:
        graph: Scene id to Scene mapping.
        starting_scene_id: Scene marked as the start.
        max_label: Scene text is truncated to this many characters.

    Returns:
        StoryDiagram with nodes in graph order, followed by placeholder
        nodes for missing targets.
    """
    nodes: list[DiagramNode] = []
    edges: list[DiagramEdge] = []
    missing: list[str] = []

    for scene_id, scene in graph.items():
        outcome = compute_outcome(scene)
        nodes.append(
            DiagramNode(
                id=scene_id,
                label=_truncate(scene.text or scene_id, max_label),
                is_start=scene_id == starting_scene_id,
                is_ending=scene.is_ending,
                outcome=outcome.type if outcome else None,
                badge=outcome.badge if outcome else None,
            )
        )
        for choice in scene.choices:
            if not choice.next_scene_id:
                log.warning("choice_missing_target", scene_id=scene_id, choice=choice.text)
                continue
            is_broken = choice.next_scene_id not in graph
            if is_broken and choice.next_scene_id not in missing:
                missing.append(choice.next_scene_id)
            edges.append(
                DiagramEdge(
                    from_id=scene_id,
                    to_id=choice.next_scene_id,
                    label=choice.text,
                    is_broken=is_broken,
                )
            )

    nodes.extend(
        DiagramNode(id=scene_id, label=f"missing: {scene_id}", is_missing=True)
        for scene_id in missing
    )

    log.info("story_diagram_built", nodes=len(nodes), edges=len(edges), missing=len(missing))
    return StoryDiagram(nodes=nodes, edges=edges)


def render_dot(diagram: StoryDiagram, *, no_labels: bool = False) -> str:
    """Render a StoryDiagram as DOT (Graphviz) markup.

    Args:
        diagram: Story diagram data.
        no_labels: If True, omit choice labels on edges.

    Returns:
        DOT format string.
    """
    lines = [
        "digraph story {",
        "  rankdir=LR;",
        '  node [fontname="Helvetica" fontsize=10 style="filled,solid"];',
        '  edge [fontname="Helvetica" fontsize=8];',
        "",
    ]

    for node in diagram.nodes:
        attrs = _dot_node_attrs(node)
        attr_str = " ".join(f"{k}={v}" for k, v in attrs.items())
        lines.append(f'  "{_dot_escape(node.id)}" [{attr_str}];')

    lines.append("")

    for edge in diagram.edges:
        edge_attrs: dict[str, str] = {}
        if not no_labels and edge.label:
            edge_attrs["label"] = f'"{_dot_escape(edge.label)}"'
        if edge.is_broken:
            edge_attrs["style"] = '"dashed"'
            edge_attrs["color"] = f'"{_BROKEN_EDGE_COLOR}"'
        edge_attr_str = " ".join(f"{k}={v}" for k, v in edge_attrs.items())
        suffix = f" [{edge_attr_str}]" if edge_attr_str else ""
        lines.append(f'  "{_dot_escape(edge.from_id)}" -> "{_dot_escape(edge.to_id)}"{suffix};')

    lines.append("}")
    return "\n".join(lines)


def render_mermaid(diagram: StoryDiagram, *, no_labels: bool = False) -> str:
    """Render a StoryDiagram as Mermaid markup.

    Args:
        diagram: Story diagram data.
        no_labels: If True, omit choice labels on edges.

    Returns:
        Mermaid format string.
    """
    lines = ["graph LR"]
    ids = _mermaid_ids(node.id for node in diagram.nodes)

    for node in diagram.nodes:
        safe_id = ids[node.id]
        label = _mermaid_escape(node.label)
        if node.is_missing:
            lines.append(f'  {safe_id}(["{label}"]):::missing')
        elif node.is_start:
            lines.append(f'  {safe_id}["{label}"]:::start')
        elif node.is_ending:
            lines.append(f'  {safe_id}(("{label}")):::{node.outcome}')
        else:
            lines.append(f'  {safe_id}["{label}"]')

    lines.append("")

    for edge in diagram.edges:
        src = ids[edge.from_id]
        dst = ids[edge.to_id]
        arrow = "-.->" if edge.is_broken else "-->"
        if not no_labels and edge.label:
            label = _mermaid_escape(edge.label)
            lines.append(f'  {src} {arrow}|"{label}"| {dst}')
        else:
            lines.append(f"  {src} {arrow} {dst}")

    lines.append("")
    lines.append(f"  classDef start fill:{_START_COLOR},stroke:#333")
    for outcome, color in _OUTCOME_COLORS.items():
        lines.append(f"  classDef {outcome} fill:{color},stroke:#333")
    lines.append(f"  classDef missing fill:{_MISSING_COLOR},stroke:{_BROKEN_EDGE_COLOR},stroke-dasharray:4")

    broken_indices = [i for i, e in enumerate(diagram.edges) if e.is_broken]
    if broken_indices:
        idx_list = ",".join(str(i) for i in broken_indices)
        lines.append(f"  linkStyle {idx_list} stroke:{_BROKEN_EDGE_COLOR}")

    return "\n".join(lines)


def _truncate(text: str, max_len: int) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _dot_node_attrs(node: DiagramNode) -> dict[str, str]:
    """Build DOT attribute dict for a node."""
    attrs: dict[str, str] = {}

    if node.is_missing:
        attrs["shape"] = "box"
        attrs["style"] = '"dashed"'
        attrs["color"] = f'"{_BROKEN_EDGE_COLOR}"'
        attrs["fillcolor"] = f'"{_MISSING_COLOR}"'
    elif node.is_start:
        attrs["shape"] = "doubleoctagon"
        attrs["fillcolor"] = f'"{_START_COLOR}"'
    elif node.is_ending:
        attrs["shape"] = "octagon"
        attrs["fillcolor"] = f'"{_OUTCOME_COLORS.get(node.outcome or "", _SCENE_COLOR)}"'
    else:
        attrs["shape"] = "box"
        attrs["fillcolor"] = f'"{_SCENE_COLOR}"'

    label = node.label
    if node.badge:
        label += f"\n[{node.badge}]"
    attrs["label"] = f'"{_dot_escape(label)}"'
    return attrs


def _dot_escape(text: str) -> str:
    """Escape special characters for DOT labels."""
    return text.replace('"', '\\"').replace("\n", "\\n")


def _mermaid_ids(node_ids: Iterable[str]) -> dict[str, str]:
    """Map scene IDs to unique Mermaid identifiers.

    The ``s_`` prefix keeps IDs clear of Mermaid keywords such as ``end``.
    IDs that sanitize to the same text get a numeric suffix.
    """
    ids: dict[str, str] = {}
    used: set[str] = set()
    for node_id in node_ids:
        if node_id in ids:
            continue
        base = "s_" + _UNSAFE_ID_CHARS.sub("_", node_id)
        candidate = base
        suffix = 2
        while candidate in used:
            candidate = f"{base}_{suffix}"
            suffix += 1
        ids[node_id] = candidate
        used.add(candidate)
    return ids


def _mermaid_escape(text: str) -> str:
    """Escape special characters for Mermaid labels."""
    return text.replace('"', "&quot;").replace("\n", " ")
