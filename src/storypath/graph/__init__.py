"""Story graph: storage, validation and reference recovery."""

from storypath.graph.errors import SceneNotFoundError, StoryGraphError, StoryValidationError
from storypath.graph.fallback import resolve_fallback_scene
from storypath.graph.story_graph import StoryGraph
from storypath.graph.validation import (
    DEFAULT_STARTING_SCENE,
    create_error_scene,
    is_valid_scene_reference,
    validate_story_graph,
)
from storypath.graph.validation_types import IssueKind, ValidationIssue, ValidationResult

__all__ = [
    "DEFAULT_STARTING_SCENE",
    "IssueKind",
    "SceneNotFoundError",
    "StoryGraph",
    "StoryGraphError",
    "StoryValidationError",
    "ValidationIssue",
    "ValidationResult",
    "create_error_scene",
    "is_valid_scene_reference",
    "resolve_fallback_scene",
    "validate_story_graph",
]
