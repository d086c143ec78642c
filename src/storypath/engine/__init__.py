"""Navigation engine, outcome calculation and pacing schedulers."""

from storypath.engine.navigation import (
    INVALID_CHOICE_MESSAGE,
    NO_SCENES_MESSAGE,
    NavigationEngine,
)
from storypath.engine.outcome import compute_outcome
from storypath.engine.scheduler import (
    AsyncioScheduler,
    ImmediateScheduler,
    ManualScheduler,
    ScheduledCall,
    Scheduler,
)
from storypath.engine.state import NavigationSnapshot, NavigationState

__all__ = [
    "INVALID_CHOICE_MESSAGE",
    "NO_SCENES_MESSAGE",
    "AsyncioScheduler",
    "ImmediateScheduler",
    "ManualScheduler",
    "NavigationEngine",
    "NavigationSnapshot",
    "NavigationState",
    "ScheduledCall",
    "Scheduler",
    "compute_outcome",
]
