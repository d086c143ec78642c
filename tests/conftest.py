"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from storypath.graph.story_graph import StoryGraph


def scene_data(
    scene_id: str,
    *choices: tuple[str, str],
    text: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Build a raw scene definition as it would appear in a story file."""
    return {
        "id": scene_id,
        "text": text if text is not None else f"Text of {scene_id}",
        "choices": [{"text": label, "next_scene_id": target} for label, target in choices],
        **fields,
    }


@pytest.fixture(autouse=True)
def clear_storypath_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of the tests."""
    for name in (
        "STORYPATH_STARTING_SCENE",
        "STORYPATH_INIT_DELAY",
        "STORYPATH_TRANSITION_DELAY",
        "STORYPATH_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def small_story_data() -> dict[str, dict[str, Any]]:
    """Raw scenes for a three-way story with one of each outcome.

    start -> middle -> good (positive, badge) | bad (negative) | meh (neutral)
    """
    return {
        "start": scene_data("start", ("Go on", "middle")),
        "middle": scene_data(
            "middle",
            ("Be kind", "good"),
            ("Be cruel", "bad"),
            ("Shrug", "meh"),
        ),
        "good": scene_data("good", is_ending=True, outcome_type="positive", badge_id="kindness"),
        "bad": scene_data("bad", is_ending=True, outcome_type="negative", badge_id="kindness"),
        "meh": scene_data("meh", is_ending=True, outcome_type="neutral"),
    }


@pytest.fixture
def small_graph(small_story_data: dict[str, dict[str, Any]]) -> StoryGraph:
    """StoryGraph built from small_story_data."""
    return StoryGraph.from_dict(small_story_data)


@pytest.fixture
def broken_graph() -> StoryGraph:
    """Graph whose only choice points at a scene that does not exist."""
    return StoryGraph.from_dict(
        {
            "start": scene_data("start", ("Into the void", "nowhere")),
            "end": scene_data("end", is_ending=True, outcome_type="neutral"),
        }
    )


@pytest.fixture
def make_scene() -> Any:
    """Factory for raw scene definitions; see ``scene_data``."""
    return scene_data
