"""Recovery target selection for unresolvable scene references."""

from __future__ import annotations

from typing import TYPE_CHECKING

from storypath.graph.validation import DEFAULT_STARTING_SCENE

if TYPE_CHECKING:
    from collections.abc import Mapping

    from storypath.models.story import Scene


def resolve_fallback_scene(
    graph: Mapping[str, Scene],
    invalid_id: str,
    starting_scene_id: str = DEFAULT_STARTING_SCENE,
) -> Scene | None:
    """Pick the scene to show instead of one that cannot be found.

    Policy, in order: the starting scene; else the first scene in iteration
    order; else nothing. There is no search for an alternate path.

    Pure: callers log the substitution and update their own state.

    Args:
        graph: Scene id to Scene mapping.
        invalid_id: The reference that failed to resolve. The policy does not
            depend on it.
        starting_scene_id: Preferred recovery target.

    Returns:
        The recovery scene, or None if the graph is empty.
    """
    start = graph.get(starting_scene_id)
    if start is not None:
        return start
    return next(iter(graph.values()), None)
