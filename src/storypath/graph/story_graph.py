"""Read-only story graph.

A StoryGraph maps scene ids to scenes. It is immutable for its whole
lifetime, so a single graph can back any number of navigation sessions.
Iteration follows insertion order; the fallback resolver depends on it.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from storypath.graph.errors import SceneNotFoundError
from storypath.models.story import Choice, Scene


class StoryGraph(Mapping[str, Scene]):
    """Immutable mapping from scene id to Scene."""

    __slots__ = ("_scenes",)

    def __init__(self, scenes: Mapping[str, Scene] | None = None) -> None:
        """Initialize graph from already-built scenes.

        Args:
            scenes: Mapping of scene id to Scene. Copied, so later changes
                to the argument are not visible through the graph.
        """
        self._scenes: Mapping[str, Scene] = MappingProxyType(dict(scenes or {}))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StoryGraph:
        """Build a graph from raw scene definitions.

        Values may be Scene instances or plain mappings (as parsed from
        YAML/JSON). Mappings without an ``id`` are not given one: a missing
        id is a structural problem for the validator to report.

        Args:
            data: Mapping of scene id to scene definition.

        Returns:
            New StoryGraph.

        Raises:
            pydantic.ValidationError: If a definition has the wrong shape
                (e.g. ``choices`` is not a list).
        """
        scenes: dict[str, Scene] = {}
        for scene_id, payload in data.items():
            if isinstance(payload, Scene):
                scenes[str(scene_id)] = payload
            else:
                scenes[str(scene_id)] = Scene.model_validate(dict(payload))
        return cls(scenes)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Return a plain-dict copy of the graph, suitable for YAML/JSON."""
        return {scene_id: scene.model_dump() for scene_id, scene in self._scenes.items()}

    # -------------------------------------------------------------------------
    # Mapping protocol
    # -------------------------------------------------------------------------

    def __getitem__(self, scene_id: str) -> Scene:
        return self._scenes[scene_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._scenes)

    def __len__(self) -> int:
        return len(self._scenes)

    def __repr__(self) -> str:
        return f"StoryGraph({list(self._scenes)!r})"

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def require(self, scene_id: str, *, context: str = "") -> Scene:
        """Get a scene that must exist.

        Raises:
            SceneNotFoundError: If the id is unknown. The error lists close
                matches among the existing ids.
        """
        scene = self._scenes.get(scene_id)
        if scene is None:
            raise SceneNotFoundError(scene_id, available=list(self._scenes), context=context)
        return scene

    def first_scene_id(self) -> str | None:
        """Id of the first scene in iteration order, or None if empty."""
        return next(iter(self._scenes), None)

    def ending_ids(self) -> list[str]:
        return [sid for sid, scene in self._scenes.items() if scene.is_ending]

    def edges(self) -> Iterator[tuple[str, Choice]]:
        """Yield (source scene id, choice) pairs in graph order."""
        for scene_id, scene in self._scenes.items():
            for choice in scene.choices:
                yield scene_id, choice
