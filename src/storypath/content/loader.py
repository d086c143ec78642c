"""Story loading from YAML or JSON files.

A story file holds a ``scenes`` mapping plus optional ``title`` and
``starting_scene`` keys. A file that is just a scene mapping (no
``scenes`` key) is accepted too.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML

from storypath.config import DEFAULT_STARTING_SCENE
from storypath.graph.errors import StoryValidationError
from storypath.graph.story_graph import StoryGraph
from storypath.graph.validation import validate_story_graph
from storypath.observability.logging import get_logger

log = get_logger(__name__)

BUILTIN_PACKAGE = "storypath.content"
BUILTIN_DIR = "stories"
DEFAULT_STORY = "anise_ray"

_STORY_SUFFIXES = (".yaml", ".yml", ".json")


class StoryLoadError(Exception):
    """Raised when a story file can't be read or parsed."""

    def __init__(self, source: Path | str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load story from {source}: {reason}")


@dataclass(frozen=True)
class Story:
    """A loaded story and where to start reading it.

    Attributes:
        name: Short identifier (file stem for files).
        title: Display title.
        starting_scene_id: Scene the file says to start from, if it says.
        graph: The scenes.
    """

    name: str
    title: str
    starting_scene_id: str | None
    graph: StoryGraph


def parse_story(
    data: dict[str, Any],
    *,
    name: str,
    source: Path | str = "<dict>",
    validate: bool = False,
) -> Story:
    """Build a Story from parsed file contents.

    Args:
        data: Parsed YAML/JSON document.
        name: Story identifier.
        source: Where the data came from, for error messages.
        validate: If True, raise when the story has structural errors.

    Returns:
        Story instance.

    Raises:
        StoryLoadError: If the document does not have the expected shape.
        StoryValidationError: If ``validate`` is set and the story is invalid.
    """
    scenes_data = data.get("scenes", data)
    if not isinstance(scenes_data, dict):
        raise StoryLoadError(source, "'scenes' must be a mapping of scene id to scene")

    try:
        graph = StoryGraph.from_dict(scenes_data)
    except ValidationError as e:
        raise StoryLoadError(source, str(e)) from e
    except (TypeError, ValueError) as e:
        raise StoryLoadError(source, f"scene definitions must be mappings ({e})") from e

    starting_scene = data.get("starting_scene")
    starting_scene_id = str(starting_scene) if starting_scene else None
    story = Story(
        name=name,
        title=str(data.get("title") or name),
        starting_scene_id=starting_scene_id,
        graph=graph,
    )

    if validate:
        result = validate_story_graph(graph, starting_scene_id or DEFAULT_STARTING_SCENE)
        if not result.is_valid:
            raise StoryValidationError(result)

    log.debug("story_parsed", story=name, scenes=len(graph), starting_scene=starting_scene_id)
    return story


def _read_document(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        if path.suffix == ".json":
            return json.load(f)
        return YAML(typ="safe").load(f)


def load_story(path: Path, *, validate: bool = False) -> Story:
    """Load a story file.

    Args:
        path: Path to a ``.yaml``, ``.yml`` or ``.json`` story file.
        validate: If True, raise when the story has structural errors.

    Returns:
        Loaded Story.

    Raises:
        StoryLoadError: If the file is missing, unreadable or malformed.
        StoryValidationError: If ``validate`` is set and the story is invalid.
    """
    if not path.exists():
        raise StoryLoadError(path, "File not found")
    if path.suffix not in _STORY_SUFFIXES:
        raise StoryLoadError(path, f"Unsupported file type '{path.suffix}'")

    try:
        data = _read_document(path)
    except Exception as e:
        raise StoryLoadError(path, str(e)) from e

    if data is None:
        raise StoryLoadError(path, "Empty file")
    if not isinstance(data, dict):
        raise StoryLoadError(path, "Top level must be a mapping")

    story = parse_story(data, name=path.stem, source=path, validate=validate)
    log.info("story_loaded", story=story.name, path=str(path), scenes=len(story.graph))
    return story


def list_builtin_stories() -> list[str]:
    """Names of the stories bundled with StoryPath."""
    stories_dir = resources.files(BUILTIN_PACKAGE).joinpath(BUILTIN_DIR)
    return sorted(
        Path(entry.name).stem
        for entry in stories_dir.iterdir()
        if entry.is_file() and Path(entry.name).suffix in _STORY_SUFFIXES
    )


def load_builtin_story(name: str = DEFAULT_STORY, *, validate: bool = False) -> Story:
    """Load a bundled story by name.

    Raises:
        StoryLoadError: If no bundled story has that name.
    """
    resource = resources.files(BUILTIN_PACKAGE).joinpath(BUILTIN_DIR).joinpath(f"{name}.yaml")
    if not resource.is_file():
        available = ", ".join(list_builtin_stories())
        raise StoryLoadError(name, f"No bundled story named '{name}' (available: {available})")

    with resources.as_file(resource) as path:
        return load_story(path, validate=validate)
