"""Story content models.

A story is a set of scenes joined by choices. Scenes and choices are
immutable once loaded; only a navigation session's traversal state changes
while a story is being played.

Required fields default to empty strings rather than failing validation so
that a malformed scene can still be loaded and reported by the graph
validator instead of aborting the whole story.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

OutcomeType = Literal["positive", "negative", "neutral"]

DEFAULT_OUTCOME_TYPE: OutcomeType = "negative"


class Choice(BaseModel):
    """A labeled edge from one scene to another.

    A choice is malformed when either its label or its target is empty.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Label shown to the reader")
    next_scene_id: str = Field(
        default="",
        validation_alias=AliasChoices("next_scene_id", "nextSceneId", "nextScene"),
        description="Scene this choice leads to",
    )

    @field_validator("text", "next_scene_id", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def is_malformed(self) -> bool:
        """True if the label or the target is missing."""
        return not self.text or not self.next_scene_id


class Scene(BaseModel):
    """One unit of narrative content with optional outgoing choices."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Unique scene key")
    text: str = Field(default="", description="Narrative text")
    image: str = Field(default="", description="Opaque asset reference")
    choices: tuple[Choice, ...] = Field(default=())
    is_ending: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_ending", "isEnding"),
    )
    outcome_type: OutcomeType | None = Field(
        default=None,
        validation_alias=AliasChoices("outcome_type", "outcomeType"),
        description="Only meaningful on ending scenes",
    )
    badge_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("badge_id", "badgeId", "badge"),
        description="Only surfaced when the outcome is positive",
    )

    @field_validator("id", "text", "image", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("choices", mode="before")
    @classmethod
    def none_as_no_choices(cls, value: Any) -> Any:
        return () if value is None else value

    @property
    def has_choices(self) -> bool:
        return len(self.choices) > 0


class Outcome(BaseModel):
    """Result computed once an ending scene is reached."""

    model_config = ConfigDict(frozen=True)

    type: OutcomeType
    badge: str | None = None
    message: str
