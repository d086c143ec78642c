"""Structural validation of story graphs.

Pure graph analysis: the same graph and starting id always yield the same
result. Error messages end up verbatim in the error scene text shown to
the reader when a story cannot be played.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from storypath.config import DEFAULT_STARTING_SCENE
from storypath.graph.validation_types import IssueKind, ValidationIssue, ValidationResult
from storypath.models.story import Scene

if TYPE_CHECKING:
    from collections.abc import Mapping

ERROR_SCENE_ID = "error"
ERROR_SCENE_IMAGE = "error-placeholder"


def validate_story_graph(
    graph: Mapping[str, Scene],
    starting_scene_id: str = DEFAULT_STARTING_SCENE,
) -> ValidationResult:
    """Check a story graph for structural soundness.

    Args:
        graph: Scene id to Scene mapping (usually a StoryGraph).
        starting_scene_id: Scene a session will start from.

    Returns:
        ValidationResult; ``is_valid`` is True iff there are no errors.
    """
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    if starting_scene_id not in graph:
        errors.append(
            ValidationIssue(
                kind=IssueKind.MISSING_STARTING_SCENE,
                message=f'Starting scene "{starting_scene_id}" not found in story data',
                scene_id=starting_scene_id,
            )
        )

    for scene_id, scene in graph.items():
        if not scene.id or not scene.text:
            errors.append(
                ValidationIssue(
                    kind=IssueKind.INVALID_CHOICE,
                    message=f'Scene "{scene_id}" is missing required properties (id, text)',
                    scene_id=scene_id,
                )
            )
            continue

        errors.extend(_check_choices(graph, scene_id, scene))

        if scene.id != scene_id:
            warnings.append(
                ValidationIssue(
                    kind=IssueKind.SCENE_ID_MISMATCH,
                    message=f'Scene "{scene_id}" declares id "{scene.id}"',
                    scene_id=scene_id,
                )
            )

        if scene.is_ending and scene.has_choices:
            warnings.append(
                ValidationIssue(
                    kind=IssueKind.ENDING_WITH_CHOICES,
                    message=f'Ending scene "{scene_id}" has choices but should not',
                    scene_id=scene_id,
                )
            )
        elif not scene.is_ending and not scene.has_choices:
            warnings.append(
                ValidationIssue(
                    kind=IssueKind.NON_ENDING_WITHOUT_CHOICES,
                    message=f'Non-ending scene "{scene_id}" has no choices',
                    scene_id=scene_id,
                )
            )

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))


def _check_choices(
    graph: Mapping[str, Scene], scene_id: str, scene: Scene
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for choice in scene.choices:
        if choice.is_malformed:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.INVALID_CHOICE,
                    message=f'Invalid choice in scene "{scene_id}": missing text or nextScene',
                    scene_id=scene_id,
                    choice_text=choice.text or None,
                )
            )
            continue

        if choice.next_scene_id not in graph:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.MISSING_SCENE,
                    message=(
                        f'Scene "{choice.next_scene_id}" referenced by choice '
                        f'"{choice.text}" in scene "{scene_id}" does not exist'
                    ),
                    scene_id=scene_id,
                    choice_text=choice.text,
                )
            )
    return issues


def is_valid_scene_reference(graph: Mapping[str, Scene], scene_id: str) -> bool:
    """True if ``scene_id`` names a scene in the graph."""
    return scene_id in graph


def create_error_scene(message: str) -> Scene:
    """Build a terminal scene that displays ``message``.

    Used when a story cannot be played at all, so a reader always has
    something to look at.
    """
    return Scene(
        id=ERROR_SCENE_ID,
        text=message,
        image=ERROR_SCENE_IMAGE,
        is_ending=True,
        outcome_type="negative",
    )
