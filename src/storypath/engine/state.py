"""Navigation session state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storypath.models.story import Outcome, Scene


class NavigationState(StrEnum):
    """Single source of truth for where a session is.

    Lifecycle::

        UNINITIALIZED -> VALIDATING -> ERROR_TERMINAL
                                    -> AT_SCENE <-> TRANSITIONING -> COMPLETED

    ``restart()`` leaves any state for AT_SCENE (or COMPLETED when the
    starting scene is itself an ending).
    """

    UNINITIALIZED = "uninitialized"
    VALIDATING = "validating"
    ERROR_TERMINAL = "error_terminal"
    AT_SCENE = "at_scene"
    TRANSITIONING = "transitioning"
    COMPLETED = "completed"

    @property
    def is_loading(self) -> bool:
        return self in (NavigationState.VALIDATING, NavigationState.TRANSITIONING)

    @property
    def is_initialized(self) -> bool:
        return self not in (NavigationState.UNINITIALIZED, NavigationState.VALIDATING)

    @property
    def accepts_choices(self) -> bool:
        return self is NavigationState.AT_SCENE


@dataclass(frozen=True)
class NavigationSnapshot:
    """Everything a rendering surface needs, captured at one instant.

    Attributes:
        state: Current state.
        current_scene: Scene to render; the error scene in ERROR_TERMINAL.
        pending_scene_id: Target of an in-flight transition.
        choice_history: Labels of the choices taken, oldest first.
        outcome: Set once an ending is reached.
        error: Session error message, if any.
    """

    state: NavigationState
    current_scene: Scene | None
    pending_scene_id: str | None
    choice_history: tuple[str, ...]
    outcome: Outcome | None
    error: str | None

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    @property
    def is_initialized(self) -> bool:
        return self.state.is_initialized

    @property
    def is_complete(self) -> bool:
        return self.state is NavigationState.COMPLETED
