"""Pydantic models for story content and outcomes."""

from storypath.models.story import (
    DEFAULT_OUTCOME_TYPE,
    Choice,
    Outcome,
    OutcomeType,
    Scene,
)

__all__ = [
    "DEFAULT_OUTCOME_TYPE",
    "Choice",
    "Outcome",
    "OutcomeType",
    "Scene",
]
