"""Validation types shared by the story validator and its consumers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class IssueKind(StrEnum):
    """Kinds of problem the story validator can report.

    Attributes:
        MISSING_STARTING_SCENE: The starting scene id is not in the graph.
        MISSING_SCENE: A choice points at a scene that does not exist.
        INVALID_CHOICE: A choice, or the scene holding it, lacks required fields.
        ENDING_WITH_CHOICES: Advisory. An ending scene declares choices.
        NON_ENDING_WITHOUT_CHOICES: Advisory. A non-ending scene has no way out.
        SCENE_ID_MISMATCH: Advisory. A scene is stored under a key other than its id.
        INVALID_SCENE_REFERENCE: Runtime only. Navigation targeted an unknown id.
    """

    MISSING_STARTING_SCENE = "missing_starting_scene"
    MISSING_SCENE = "missing_scene"
    INVALID_CHOICE = "invalid_choice"
    ENDING_WITH_CHOICES = "ending_with_choices"
    NON_ENDING_WITHOUT_CHOICES = "non_ending_without_choices"
    SCENE_ID_MISMATCH = "scene_id_mismatch"
    INVALID_SCENE_REFERENCE = "invalid_scene_reference"


@dataclass(frozen=True)
class ValidationIssue:
    """A single tagged problem or advisory.

    Attributes:
        kind: What went wrong.
        message: Human-readable description.
        scene_id: Scene the issue was found in (or the missing start id).
        choice_text: Label of the offending choice, when there is one.
    """

    kind: IssueKind
    message: str
    scene_id: str | None = None
    choice_text: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    """Aggregated result of validating a story graph.

    Warnings never affect ``is_valid``.

    Attributes:
        errors: Structural problems; any one makes the story unplayable.
        warnings: Advisories reported through the log only.
    """

    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()

    @property
    def is_valid(self) -> bool:
        """True if no errors were found."""
        return len(self.errors) == 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def errors_of(self, kind: IssueKind) -> list[ValidationIssue]:
        return [issue for issue in self.errors if issue.kind == kind]

    def warnings_of(self, kind: IssueKind) -> list[ValidationIssue]:
        return [issue for issue in self.warnings if issue.kind == kind]

    def error_message(self) -> str:
        """All error messages joined with ``"; "``."""
        return "; ".join(issue.message for issue in self.errors)

    @property
    def summary(self) -> str:
        """Human-readable summary of the result."""
        parts: list[str] = []
        if self.errors:
            parts.append(f"{len(self.errors)} error(s)")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warning(s)")
        if not parts:
            return "valid"
        return ", ".join(parts)
