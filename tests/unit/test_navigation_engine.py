"""Tests for the navigation engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from storypath.config import EngineSettings
from storypath.engine import (
    INVALID_CHOICE_MESSAGE,
    NO_SCENES_MESSAGE,
    ImmediateScheduler,
    ManualScheduler,
    NavigationEngine,
    NavigationSnapshot,
    NavigationState,
)
from storypath.graph import StoryGraph
from storypath.models import Choice

if TYPE_CHECKING:
    from collections.abc import Callable

    SceneFactory = Callable[..., dict[str, Any]]

PACED = EngineSettings(starting_scene_id="start", init_delay=0.5, transition_delay=0.3)


@pytest.fixture
def clock() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def engine(clock: ManualScheduler) -> NavigationEngine:
    """Engine paced by a virtual clock, starting at 'start'."""
    return NavigationEngine(scheduler=clock, settings=PACED)


@pytest.fixture
def ready_engine(engine: NavigationEngine, clock: ManualScheduler, small_graph: StoryGraph) -> NavigationEngine:
    """Engine resting at 'start'."""
    engine.initialize(small_graph)
    clock.advance(0.5)
    return engine


def _choice(engine: NavigationEngine, label: str) -> Choice:
    assert engine.current_scene is not None
    return next(c for c in engine.current_scene.choices if c.text == label)


class TestInitialize:
    """Tests for initialize()."""

    def test_starts_uninitialized(self) -> None:
        engine = NavigationEngine()
        assert engine.state is NavigationState.UNINITIALIZED
        assert engine.current_scene is None
        assert not engine.is_initialized
        assert not engine.is_loading

    def test_validating_until_init_delay_elapses(
        self, engine: NavigationEngine, clock: ManualScheduler, small_graph: StoryGraph
    ) -> None:
        result = engine.initialize(small_graph)

        assert result.is_valid
        assert engine.state is NavigationState.VALIDATING
        assert engine.is_loading
        assert engine.current_scene is None

        clock.advance(0.49)
        assert engine.state is NavigationState.VALIDATING

        clock.advance(0.01)
        assert engine.state is NavigationState.AT_SCENE
        assert engine.current_scene_id == "start"
        assert engine.is_initialized
        assert not engine.is_loading

    def test_immediate_scheduler_settles_synchronously(self, small_graph: StoryGraph) -> None:
        engine = NavigationEngine(settings=PACED)
        engine.initialize(small_graph)

        assert engine.state is NavigationState.AT_SCENE
        assert engine.current_scene_id == "start"

    def test_explicit_starting_scene(self, small_graph: StoryGraph) -> None:
        engine = NavigationEngine(scheduler=ImmediateScheduler())
        engine.initialize(small_graph, "middle")

        assert engine.starting_scene_id == "middle"
        assert engine.current_scene_id == "middle"

    def test_default_starting_scene_comes_from_settings(self, small_graph: StoryGraph) -> None:
        engine = NavigationEngine()
        engine.initialize(small_graph)

        # Default settings start at scene1, which this graph lacks
        assert engine.state is NavigationState.ERROR_TERMINAL

    def test_invalid_story_enters_error_terminal(
        self, engine: NavigationEngine, clock: ManualScheduler, broken_graph: StoryGraph
    ) -> None:
        result = engine.initialize(broken_graph)

        assert not result.is_valid
        assert engine.validation is result
        assert engine.state is NavigationState.ERROR_TERMINAL
        assert engine.error == f"Story validation failed: {result.error_message()}"
        assert engine.current_scene is not None
        assert engine.current_scene.id == "error"
        assert engine.current_scene.text == engine.error
        assert engine.is_initialized
        assert not engine.is_loading
        assert not engine.is_complete
        assert engine.outcome is None
        assert clock.pending == 0

    def test_error_terminal_ignores_choices(self, broken_graph: StoryGraph) -> None:
        engine = NavigationEngine(settings=PACED)
        engine.initialize(broken_graph)

        assert engine.select_choice(Choice(text="Go", next_scene_id="end")) is False
        assert engine.navigate_to_scene("end") is False
        assert engine.state is NavigationState.ERROR_TERMINAL

    def test_warnings_do_not_block(self, make_scene: SceneFactory) -> None:
        graph = StoryGraph.from_dict(
            {"start": make_scene("start", ("Loop", "start"), is_ending=True)}
        )
        engine = NavigationEngine(settings=PACED)
        result = engine.initialize(graph)

        assert result.is_valid
        assert result.has_warnings
        assert engine.state is NavigationState.COMPLETED

    def test_reinitialize_discards_pending_settle(
        self, engine: NavigationEngine, clock: ManualScheduler, small_graph: StoryGraph
    ) -> None:
        engine.initialize(small_graph)
        engine.initialize(small_graph, "middle")
        clock.run_all()

        assert engine.current_scene_id == "middle"


class TestSelectChoice:
    """Tests for select_choice()."""

    def test_transition_then_commit(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        assert ready_engine.select_choice(_choice(ready_engine, "Go on")) is True

        assert ready_engine.state is NavigationState.TRANSITIONING
        assert ready_engine.is_loading
        assert ready_engine.pending_scene_id == "middle"
        assert ready_engine.current_scene_id == "start"
        assert ready_engine.choice_history == ("Go on",)

        clock.advance(0.3)

        assert ready_engine.state is NavigationState.AT_SCENE
        assert ready_engine.current_scene_id == "middle"
        assert ready_engine.pending_scene_id is None

    def test_second_rapid_choice_is_dropped(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        """Double clicks: the first choice wins, the second is not recorded."""
        go_on = _choice(ready_engine, "Go on")
        assert ready_engine.select_choice(go_on) is True
        assert ready_engine.select_choice(go_on) is False

        clock.run_all()

        assert ready_engine.choice_history == ("Go on",)
        assert ready_engine.current_scene_id == "middle"

    def test_ignored_before_initialization(self) -> None:
        engine = NavigationEngine()
        assert engine.select_choice(Choice(text="Go", next_scene_id="b")) is False
        assert engine.choice_history == ()

    def test_ignored_while_validating(
        self, engine: NavigationEngine, small_graph: StoryGraph
    ) -> None:
        engine.initialize(small_graph)
        assert engine.select_choice(Choice(text="Go on", next_scene_id="middle")) is False

    @pytest.mark.parametrize(
        "choice",
        [None, Choice(text="", next_scene_id="middle"), Choice(text="Go", next_scene_id="")],
    )
    def test_malformed_choice_sets_error(
        self, ready_engine: NavigationEngine, choice: Choice | None
    ) -> None:
        assert ready_engine.select_choice(choice) is False

        assert ready_engine.error == INVALID_CHOICE_MESSAGE
        assert ready_engine.state is NavigationState.AT_SCENE
        assert ready_engine.current_scene_id == "start"
        assert ready_engine.choice_history == ()

    def test_error_clears_on_next_transition(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        ready_engine.select_choice(None)
        ready_engine.select_choice(_choice(ready_engine, "Go on"))
        clock.run_all()

        assert ready_engine.error is None
        assert ready_engine.current_scene_id == "middle"

    def test_choice_from_another_scene_is_followed(self, ready_engine: NavigationEngine, clock: ManualScheduler) -> None:
        """Only shape is checked: any well-formed choice may be selected."""
        ready_engine.select_choice(Choice(text="Skip ahead", next_scene_id="meh"))
        clock.run_all()

        assert ready_engine.current_scene_id == "meh"
        assert ready_engine.is_complete


class TestEndings:
    """Reaching an ending scene."""

    def _play_to(self, engine: NavigationEngine, clock: ManualScheduler, label: str) -> None:
        engine.select_choice(_choice(engine, "Go on"))
        clock.run_all()
        engine.select_choice(_choice(engine, label))
        clock.run_all()

    def test_positive_ending_awards_badge(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        self._play_to(ready_engine, clock, "Be kind")

        assert ready_engine.state is NavigationState.COMPLETED
        assert ready_engine.is_complete
        outcome = ready_engine.outcome
        assert outcome is not None
        assert outcome.type == "positive"
        assert outcome.badge == "kindness"
        assert outcome.message == "Text of good"
        assert ready_engine.choice_history == ("Go on", "Be kind")

    def test_negative_ending_drops_badge(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        self._play_to(ready_engine, clock, "Be cruel")

        outcome = ready_engine.outcome
        assert outcome is not None
        assert outcome.type == "negative"
        assert outcome.badge is None

    def test_neutral_ending(self, ready_engine: NavigationEngine, clock: ManualScheduler) -> None:
        self._play_to(ready_engine, clock, "Shrug")

        outcome = ready_engine.outcome
        assert outcome is not None
        assert outcome.type == "neutral"

    def test_completed_ignores_choices(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        self._play_to(ready_engine, clock, "Shrug")

        assert ready_engine.select_choice(Choice(text="Again", next_scene_id="start")) is False
        assert ready_engine.choice_history == ("Go on", "Shrug")

    def test_outcome_only_when_completed(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        assert ready_engine.outcome is None
        ready_engine.select_choice(_choice(ready_engine, "Go on"))
        assert ready_engine.outcome is None

    def test_starting_on_an_ending_completes(self, small_graph: StoryGraph) -> None:
        engine = NavigationEngine()
        engine.initialize(small_graph, "good")

        assert engine.is_complete
        assert engine.outcome is not None
        assert engine.choice_history == ()


class TestInvalidReferences:
    """Runtime references that do not resolve."""

    def test_unknown_target_falls_back_to_start(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        ready_engine.select_choice(_choice(ready_engine, "Go on"))
        clock.run_all()

        assert ready_engine.select_choice(Choice(text="Wander", next_scene_id="nowhere")) is True
        assert ready_engine.pending_scene_id == "start"
        clock.run_all()

        assert ready_engine.current_scene_id == "start"
        assert ready_engine.error is None
        assert ready_engine.choice_history == ("Go on", "Wander")

    def test_navigate_to_unknown_scene_falls_back(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        ready_engine.navigate_to_scene("middle")
        clock.run_all()
        ready_engine.navigate_to_scene("nowhere")
        clock.run_all()

        assert ready_engine.current_scene_id == "start"

    def test_unresolvable_reference_sets_error(
        self, engine: NavigationEngine, clock: ManualScheduler, small_graph: StoryGraph
    ) -> None:
        """With no scene left to fall back on, the reader stays put with an error."""
        scenes = dict(small_graph)
        engine.initialize(scenes)
        clock.run_all()
        choice = _choice(engine, "Go on")
        scenes.clear()

        assert engine.select_choice(choice) is False
        assert engine.error == 'Invalid scene reference: "middle"'
        assert engine.state is NavigationState.AT_SCENE
        assert engine.current_scene_id == "start"
        assert engine.pending_scene_id is None


class TestNavigateToScene:
    """Tests for navigate_to_scene()."""

    def test_jumps_without_recording_history(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        assert ready_engine.navigate_to_scene("middle") is True
        assert ready_engine.state is NavigationState.TRANSITIONING
        clock.run_all()

        assert ready_engine.current_scene_id == "middle"
        assert ready_engine.choice_history == ()

    def test_allowed_after_completion(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        ready_engine.navigate_to_scene("bad")
        clock.run_all()
        assert ready_engine.is_complete

        assert ready_engine.navigate_to_scene("middle") is True
        clock.run_all()
        assert ready_engine.state is NavigationState.AT_SCENE

    def test_ignored_during_transition(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        ready_engine.navigate_to_scene("middle")
        assert ready_engine.navigate_to_scene("good") is False
        clock.run_all()

        assert ready_engine.current_scene_id == "middle"


class TestRestart:
    """Tests for restart()."""

    def test_returns_to_start_with_clean_session(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        ready_engine.select_choice(_choice(ready_engine, "Go on"))
        clock.run_all()
        ready_engine.select_choice(None)

        ready_engine.restart()

        assert ready_engine.state is NavigationState.AT_SCENE
        assert ready_engine.current_scene_id == "start"
        assert ready_engine.choice_history == ()
        assert ready_engine.error is None

    def test_is_idempotent(self, ready_engine: NavigationEngine) -> None:
        ready_engine.restart()
        first = ready_engine.snapshot()
        ready_engine.restart()

        assert ready_engine.snapshot() == first

    def test_cancels_pending_transition(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        ready_engine.select_choice(_choice(ready_engine, "Go on"))
        ready_engine.restart()

        assert ready_engine.pending_scene_id is None
        assert clock.pending == 0
        clock.run_all()
        assert ready_engine.current_scene_id == "start"
        assert ready_engine.state is NavigationState.AT_SCENE

    def test_applies_immediately_while_validating(
        self, engine: NavigationEngine, clock: ManualScheduler, small_graph: StoryGraph
    ) -> None:
        engine.initialize(small_graph)
        engine.restart()

        assert engine.state is NavigationState.AT_SCENE
        assert clock.pending == 0

    def test_after_completion(self, ready_engine: NavigationEngine, clock: ManualScheduler) -> None:
        ready_engine.navigate_to_scene("good")
        clock.run_all()
        ready_engine.restart()

        assert not ready_engine.is_complete
        assert ready_engine.outcome is None
        assert ready_engine.current_scene_id == "start"

    def test_recovers_from_error_terminal_via_fallback(self, broken_graph: StoryGraph) -> None:
        engine = NavigationEngine()
        engine.initialize(broken_graph)  # starting scene scene1 is missing too
        assert engine.state is NavigationState.ERROR_TERMINAL

        engine.restart()

        assert engine.state is NavigationState.AT_SCENE
        assert engine.current_scene_id == "start"
        assert engine.error is None

    def test_empty_story(self) -> None:
        engine = NavigationEngine()
        engine.initialize(StoryGraph())
        engine.restart()

        assert engine.state is NavigationState.ERROR_TERMINAL
        assert engine.error == NO_SCENES_MESSAGE

    def test_before_initialize_is_a_no_op(self) -> None:
        engine = NavigationEngine()
        engine.restart()
        assert engine.state is NavigationState.UNINITIALIZED


class TestObservation:
    """Snapshots and listeners."""

    def test_snapshot_reflects_session(
        self, ready_engine: NavigationEngine, clock: ManualScheduler
    ) -> None:
        ready_engine.select_choice(_choice(ready_engine, "Go on"))
        snapshot = ready_engine.snapshot()

        assert isinstance(snapshot, NavigationSnapshot)
        assert snapshot.state is NavigationState.TRANSITIONING
        assert snapshot.is_loading
        assert snapshot.pending_scene_id == "middle"
        assert snapshot.choice_history == ("Go on",)
        assert not snapshot.is_complete

        clock.run_all()
        # Snapshots are values; later changes don't leak into them
        assert snapshot.state is NavigationState.TRANSITIONING

    def test_listeners_see_every_state(
        self, engine: NavigationEngine, clock: ManualScheduler, small_graph: StoryGraph
    ) -> None:
        seen: list[NavigationState] = []
        engine.subscribe(lambda snap: seen.append(snap.state))

        engine.initialize(small_graph)
        clock.run_all()
        engine.navigate_to_scene("good")
        clock.run_all()

        assert seen == [
            NavigationState.VALIDATING,
            NavigationState.AT_SCENE,
            NavigationState.TRANSITIONING,
            NavigationState.COMPLETED,
        ]

    def test_unsubscribe(self, ready_engine: NavigationEngine) -> None:
        seen: list[NavigationSnapshot] = []
        unsubscribe = ready_engine.subscribe(seen.append)
        unsubscribe()
        unsubscribe()

        ready_engine.restart()
        assert seen == []

    def test_choice_history_is_a_copy(self, ready_engine: NavigationEngine) -> None:
        history = ready_engine.choice_history
        ready_engine.select_choice(_choice(ready_engine, "Go on"))
        assert history == ()

    def test_graph_is_shared_not_modified(
        self, small_graph: StoryGraph, clock: ManualScheduler
    ) -> None:
        first = NavigationEngine(scheduler=clock, settings=PACED)
        second = NavigationEngine(scheduler=clock, settings=PACED)
        first.initialize(small_graph)
        second.initialize(small_graph)
        clock.run_all()

        first.navigate_to_scene("good")
        clock.run_all()

        assert first.graph is second.graph
        assert first.is_complete
        assert second.current_scene_id == "start"
