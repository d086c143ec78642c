"""Navigation engine: one reader's session over a story graph.

The engine owns all mutable traversal state (current scene, choice history,
error) and exposes it through read-only properties and snapshots. The
story graph itself is never modified and may be shared between engines.

Transitions are paced: after a choice the engine sits in TRANSITIONING for
``transition_delay`` seconds before committing the new scene, and after a
successful validation it sits in VALIDATING for ``init_delay`` seconds.
The waiting is delegated to a Scheduler so hosts and tests control time.

Reference problems never raise. Unknown targets fall back to the starting
scene (or the first scene), and only if nothing is navigable does the
session record an error while keeping the reader where they were.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from storypath.config import EngineSettings
from storypath.engine.outcome import compute_outcome
from storypath.engine.scheduler import ImmediateScheduler
from storypath.engine.state import NavigationSnapshot, NavigationState
from storypath.graph.fallback import resolve_fallback_scene
from storypath.graph.validation import create_error_scene, validate_story_graph
from storypath.graph.validation_types import IssueKind
from storypath.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from storypath.engine.scheduler import ScheduledCall, Scheduler
    from storypath.graph.validation_types import ValidationResult
    from storypath.models.story import Choice, Outcome, Scene

    Listener = Callable[[NavigationSnapshot], None]

log = get_logger(__name__)

INVALID_CHOICE_MESSAGE = "Invalid choice selected"
NO_SCENES_MESSAGE = "Story has no scenes to show"


class NavigationEngine:
    """Stateful orchestrator for a single navigation session.

    Typical use::

        engine = NavigationEngine(scheduler=AsyncioScheduler())
        engine.initialize(graph, "scene1")
        ...
        engine.select_choice(engine.current_scene.choices[0])

    Attributes:
        settings: Pacing delays and the default starting scene.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        """Create an uninitialized engine.

        Args:
            scheduler: Drives the pacing delays. Defaults to
                ImmediateScheduler, i.e. no pacing at all.
            settings: Engine settings. Defaults to EngineSettings().
        """
        self.settings = settings or EngineSettings()
        self._scheduler: Scheduler = scheduler or ImmediateScheduler()

        self._graph: Mapping[str, Scene] | None = None
        self._starting_scene_id = self.settings.starting_scene_id
        self._validation: ValidationResult | None = None

        self._state = NavigationState.UNINITIALIZED
        self._current_scene: Scene | None = None
        self._pending_scene_id: str | None = None
        self._history: list[str] = []
        self._error: str | None = None

        self._pending_call: ScheduledCall | None = None
        # Bumped whenever a pending settle must be discarded
        self._generation = 0
        self._listeners: list[Listener] = []

    def __repr__(self) -> str:
        return (
            f"NavigationEngine(state={self._state.value!r}, "
            f"scene={self.current_scene_id!r}, history={len(self._history)})"
        )

    # -------------------------------------------------------------------------
    # Read-only session view
    # -------------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def graph(self) -> Mapping[str, Scene] | None:
        return self._graph

    @property
    def starting_scene_id(self) -> str:
        return self._starting_scene_id

    @property
    def validation(self) -> ValidationResult | None:
        """Result of the last ``initialize`` validation run."""
        return self._validation

    @property
    def current_scene(self) -> Scene | None:
        """Scene to render.

        None only before initialization has finished. In ERROR_TERMINAL this
        is a synthetic ending scene describing the problem.
        """
        return self._current_scene

    @property
    def current_scene_id(self) -> str | None:
        return self._current_scene.id if self._current_scene is not None else None

    @property
    def pending_scene_id(self) -> str | None:
        """Scene an in-flight transition will land on."""
        return self._pending_scene_id

    @property
    def choice_history(self) -> tuple[str, ...]:
        return tuple(self._history)

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def is_initialized(self) -> bool:
        return self._state.is_initialized

    @property
    def is_complete(self) -> bool:
        return self._state is NavigationState.COMPLETED

    @property
    def outcome(self) -> Outcome | None:
        if self._state is not NavigationState.COMPLETED or self._current_scene is None:
            return None
        return compute_outcome(self._current_scene)

    def snapshot(self) -> NavigationSnapshot:
        """Capture the session as an immutable value."""
        return NavigationSnapshot(
            state=self._state,
            current_scene=self._current_scene,
            pending_scene_id=self._pending_scene_id,
            choice_history=tuple(self._history),
            outcome=self.outcome,
            error=self._error,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every change.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def initialize(
        self,
        graph: Mapping[str, Scene],
        starting_scene_id: str | None = None,
    ) -> ValidationResult:
        """Start a new session over ``graph``.

        Validates the graph first. An invalid graph puts the session in
        ERROR_TERMINAL with an error scene until ``restart()``. A valid graph
        settles on the starting scene after ``settings.init_delay``.

        Any previous session on this engine is discarded.

        Args:
            graph: Story graph. Not copied; it must not change afterwards.
            starting_scene_id: Scene to start from. Defaults to
                ``settings.starting_scene_id``.

        Returns:
            The validation result.
        """
        self._discard_pending()
        self._graph = graph
        self._starting_scene_id = starting_scene_id or self.settings.starting_scene_id
        self._current_scene = None
        self._history = []
        self._error = None
        self._set_state(NavigationState.VALIDATING)

        result = validate_story_graph(graph, self._starting_scene_id)
        self._validation = result

        if not result.is_valid:
            message = f"Story validation failed: {result.error_message()}"
            log.error(
                "story_validation_failed",
                starting_scene=self._starting_scene_id,
                errors=[issue.message for issue in result.errors],
            )
            self._enter_error_terminal(message)
            return result

        for warning in result.warnings:
            log.warning(
                "story_validation_warning",
                kind=warning.kind.value,
                scene_id=warning.scene_id,
                message=warning.message,
            )

        start = graph[self._starting_scene_id]
        self._schedule_settle(self.settings.init_delay, start)
        return result

    def select_choice(self, choice: Choice | None) -> bool:
        """Follow a choice from the current scene.

        Only accepted while the session rests at a scene: a call made during
        a transition, after completion or before initialization finished is
        dropped (the first of two rapid calls wins). A malformed choice sets
        ``error`` without moving.

        Returns:
            True if a transition started.
        """
        if not self._state.accepts_choices:
            log.warning(
                "choice_ignored",
                state=self._state.value,
                choice=choice.text if choice is not None else None,
            )
            return False

        if choice is None or choice.is_malformed:
            log.error("invalid_choice", choice=choice.model_dump() if choice is not None else None)
            self._error = INVALID_CHOICE_MESSAGE
            self._notify()
            return False

        self._history.append(choice.text)
        log.info(
            "choice_selected",
            scene_id=self.current_scene_id,
            choice=choice.text,
            next_scene_id=choice.next_scene_id,
        )
        return self._begin_transition(choice.next_scene_id)

    def navigate_to_scene(self, scene_id: str) -> bool:
        """Jump straight to a scene without recording a choice.

        Allowed from a resting scene or a completed story. Unknown ids are
        resolved like choice targets.

        Returns:
            True if a transition started.
        """
        if self._state not in (NavigationState.AT_SCENE, NavigationState.COMPLETED):
            log.warning("navigation_ignored", state=self._state.value, scene_id=scene_id)
            return False
        return self._begin_transition(scene_id)

    def restart(self) -> None:
        """Return to the starting scene with empty history and no error.

        Works from every state, including ERROR_TERMINAL, and takes effect
        immediately: any pending transition is discarded.
        """
        self._discard_pending()
        if self._graph is None:
            log.warning("restart_ignored", reason="not initialized")
            return

        self._history = []
        self._error = None

        scene = resolve_fallback_scene(
            self._graph, self._starting_scene_id, self._starting_scene_id
        )
        if scene is None:
            self._enter_error_terminal(NO_SCENES_MESSAGE)
            return
        if scene.id != self._starting_scene_id:
            log.warning(
                "scene_fallback",
                kind=IssueKind.INVALID_SCENE_REFERENCE.value,
                scene_id=self._starting_scene_id,
                fallback_scene_id=scene.id,
            )

        self._current_scene = scene
        log.info("story_restarted", scene_id=scene.id)
        self._set_state(self._resting_state_for(scene))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _begin_transition(self, target_id: str) -> bool:
        graph = self._graph
        if graph is None:
            log.warning("navigation_ignored", reason="not initialized", scene_id=target_id)
            return False
        scene = graph.get(target_id) if target_id else None

        if scene is None:
            fallback = resolve_fallback_scene(graph, target_id, self._starting_scene_id)
            if fallback is None:
                log.error(
                    "scene_reference_unresolved",
                    kind=IssueKind.INVALID_SCENE_REFERENCE.value,
                    scene_id=target_id,
                )
                self._error = f'Invalid scene reference: "{target_id}"'
                self._notify()
                return False

            log.warning(
                "scene_fallback",
                kind=IssueKind.INVALID_SCENE_REFERENCE.value,
                scene_id=target_id,
                fallback_scene_id=fallback.id,
            )
            scene = fallback

        self._pending_scene_id = scene.id
        self._set_state(NavigationState.TRANSITIONING)
        self._schedule_settle(self.settings.transition_delay, scene)
        return True

    def _schedule_settle(self, delay: float, scene: Scene) -> None:
        self._generation += 1
        generation = self._generation

        def settle() -> None:
            if generation != self._generation:
                return
            self._pending_call = None
            self._commit(scene)

        handle = self._scheduler.call_later(delay, settle)
        # Synchronous schedulers have already settled by now
        if generation == self._generation and self._state.is_loading:
            self._pending_call = handle

    def _commit(self, scene: Scene) -> None:
        self._current_scene = scene
        self._pending_scene_id = None
        self._error = None
        state = self._resting_state_for(scene)
        log.info("scene_entered", scene_id=scene.id, is_ending=scene.is_ending)
        if state is NavigationState.COMPLETED:
            outcome = compute_outcome(scene)
            log.info(
                "story_completed",
                scene_id=scene.id,
                outcome=outcome.type if outcome else None,
                badge=outcome.badge if outcome else None,
                choices=len(self._history),
            )
        self._set_state(state)

    def _enter_error_terminal(self, message: str) -> None:
        self._error = message
        self._current_scene = create_error_scene(message)
        self._pending_scene_id = None
        self._set_state(NavigationState.ERROR_TERMINAL)

    def _discard_pending(self) -> None:
        self._generation += 1
        if self._pending_call is not None:
            self._pending_call.cancel()
            self._pending_call = None
        self._pending_scene_id = None

    @staticmethod
    def _resting_state_for(scene: Scene) -> NavigationState:
        return NavigationState.COMPLETED if scene.is_ending else NavigationState.AT_SCENE

    def _set_state(self, state: NavigationState) -> None:
        if state is not self._state:
            log.debug("state_changed", previous=self._state.value, state=state.value)
        self._state = state
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
