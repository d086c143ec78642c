"""Story inspection and structure analysis.

Pure graph analysis for authors: how big the story is, how it branches,
what a reader can actually reach from the start, and what the validator
thinks of it.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storypath.config import DEFAULT_STARTING_SCENE
from storypath.engine.outcome import compute_outcome
from storypath.graph.validation import validate_story_graph
from storypath.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from storypath.graph.validation_types import ValidationResult
    from storypath.models.story import Scene

log = get_logger(__name__)


@dataclass
class StorySummary:
    """High-level story statistics."""

    total_scenes: int
    total_choices: int
    ending_count: int
    endings_by_outcome: dict[str, int] = field(default_factory=dict)
    awarded_badges: list[str] = field(default_factory=list)
    discarded_badges: list[str] = field(default_factory=list)


@dataclass
class BranchingStats:
    """Branching structure metrics over non-ending scenes."""

    branching_scenes: int = 0
    linear_scenes: int = 0
    dead_ends: int = 0
    max_choices: int = 0
    avg_choices: float = 0.0


@dataclass
class ReachabilityStats:
    """What a reader can reach from the starting scene.

    Attributes:
        reachable: Number of scenes reachable from the start (start included).
        unreachable: Scene ids no sequence of choices leads to.
        shortest_paths: Fewest choices needed to reach each reachable ending.
    """

    reachable: int = 0
    unreachable: list[str] = field(default_factory=list)
    shortest_paths: dict[str, int] = field(default_factory=dict)


@dataclass
class InspectionReport:
    """Complete story inspection report."""

    starting_scene_id: str
    summary: StorySummary
    branching: BranchingStats
    reachability: ReachabilityStats
    validation: ValidationResult


def inspect_story(
    graph: Mapping[str, Scene],
    starting_scene_id: str = DEFAULT_STARTING_SCENE,
) -> InspectionReport:
    """Run all inspection checks on a story graph.

    Args:
        graph: Scene id to Scene mapping.
        starting_scene_id: Scene a reader starts from.

    Returns:
        InspectionReport with all analysis results.
    """
    summary = _story_summary(graph)
    branching = _branching_stats(graph)
    reachability = _reachability_stats(graph, starting_scene_id)
    validation = validate_story_graph(graph, starting_scene_id)

    log.info(
        "inspection_complete",
        scenes=summary.total_scenes,
        choices=summary.total_choices,
        unreachable=len(reachability.unreachable),
        valid=validation.is_valid,
    )

    return InspectionReport(
        starting_scene_id=starting_scene_id,
        summary=summary,
        branching=branching,
        reachability=reachability,
        validation=validation,
    )


def _story_summary(graph: Mapping[str, Scene]) -> StorySummary:
    endings_by_outcome: Counter[str] = Counter()
    awarded: list[str] = []
    discarded: list[str] = []

    for scene in graph.values():
        outcome = compute_outcome(scene)
        if outcome is None:
            continue
        endings_by_outcome[outcome.type] += 1
        if outcome.badge:
            awarded.append(outcome.badge)
        elif scene.badge_id:
            discarded.append(scene.badge_id)

    return StorySummary(
        total_scenes=len(graph),
        total_choices=sum(len(scene.choices) for scene in graph.values()),
        ending_count=sum(endings_by_outcome.values()),
        endings_by_outcome=dict(sorted(endings_by_outcome.items())),
        awarded_badges=sorted(set(awarded)),
        discarded_badges=sorted(set(discarded)),
    )


def _branching_stats(graph: Mapping[str, Scene]) -> BranchingStats:
    counts = [len(scene.choices) for scene in graph.values() if not scene.is_ending]
    if not counts:
        return BranchingStats()

    return BranchingStats(
        branching_scenes=sum(1 for c in counts if c > 1),
        linear_scenes=sum(1 for c in counts if c == 1),
        dead_ends=sum(1 for c in counts if c == 0),
        max_choices=max(counts),
        avg_choices=round(sum(counts) / len(counts), 2),
    )


def _reachability_stats(graph: Mapping[str, Scene], starting_scene_id: str) -> ReachabilityStats:
    if starting_scene_id not in graph:
        return ReachabilityStats(reachable=0, unreachable=list(graph))

    # Breadth-first, so the first visit to a scene is along a shortest path.
    # Loops are legal; the visited map stops them.
    depth: dict[str, int] = {starting_scene_id: 0}
    queue: deque[str] = deque([starting_scene_id])
    while queue:
        scene_id = queue.popleft()
        for choice in graph[scene_id].choices:
            target = choice.next_scene_id
            if target in graph and target not in depth:
                depth[target] = depth[scene_id] + 1
                queue.append(target)

    return ReachabilityStats(
        reachable=len(depth),
        unreachable=[sid for sid in graph if sid not in depth],
        shortest_paths={sid: d for sid, d in depth.items() if graph[sid].is_ending},
    )
