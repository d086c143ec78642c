"""Story graph error types.

Structural problems found while validating a story are reported as data
(see ``validation_types``). The exceptions here are raised only on strict
paths: looking up a scene that must exist, or loading a story that must be
valid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storypath.graph.validation_types import ValidationResult


class StoryGraphError(Exception):
    """Base class for story graph errors."""


@dataclass
class SceneNotFoundError(StoryGraphError):
    """Raised when referencing a scene id that is not in the graph.

    Attributes:
        scene_id: The id that was referenced but doesn't exist.
        available: Scene ids that could be used instead.
        context: Description of where the reference occurred.
    """

    scene_id: str
    available: list[str] = field(default_factory=list)
    context: str = ""

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Scene '{self.scene_id}' not found"
        if self.context:
            msg += f" ({self.context})"
        suggestions = self.suggestions()
        if suggestions:
            msg += f"; did you mean: {', '.join(suggestions)}?"
        return msg

    def suggestions(self) -> list[str]:
        """Find similar ids that might be typos."""
        return get_close_matches(self.scene_id, self.available, n=3, cutoff=0.6)


class StoryValidationError(StoryGraphError):
    """Raised when a story must be valid but the validator reported errors.

    Attributes:
        result: The full validation result, errors and warnings included.
    """

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        super().__init__(f"Story validation failed: {result.error_message()}")
