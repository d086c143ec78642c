"""Badge metadata lookup.

The engine only ever reports a badge id. Surfaces use a BadgeRegistry to
turn that id into something displayable; an id with no entry is simply
shown without metadata.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from importlib import resources
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from ruamel.yaml import YAML

from storypath.observability.logging import get_logger

log = get_logger(__name__)

BUILTIN_BADGES_FILE = "badges.yaml"


class BadgeCriteria(BaseModel):
    """Thresholds a surface may use to decide whether to show a badge."""

    model_config = ConfigDict(frozen=True)

    min_score: int | None = Field(default=None, ge=0)
    completed_scenarios: int | None = Field(default=None, ge=0)


class BadgeInfo(BaseModel):
    """Display metadata for a badge."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    icon: str = ""
    color: str = ""
    criteria: BadgeCriteria = Field(default_factory=BadgeCriteria)


class BadgeRegistry(Mapping[str, BadgeInfo]):
    """Read-only lookup of badge metadata by badge id."""

    def __init__(self, badges: list[BadgeInfo] | None = None) -> None:
        self._badges: dict[str, BadgeInfo] = {badge.id: badge for badge in badges or []}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BadgeRegistry:
        """Build a registry from a ``badges`` mapping of id to metadata.

        Raises:
            pydantic.ValidationError: If an entry is malformed.
        """
        entries = data.get("badges", data)
        badges = [
            BadgeInfo.model_validate({**dict(payload), "id": badge_id})
            for badge_id, payload in entries.items()
        ]
        return cls(badges)

    def __getitem__(self, badge_id: str) -> BadgeInfo:
        return self._badges[badge_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._badges)

    def __len__(self) -> int:
        return len(self._badges)

    def describe(self, badge_id: str | None) -> str | None:
        """Display name for a badge id; the id itself when unregistered."""
        if badge_id is None:
            return None
        badge = self._badges.get(badge_id)
        if badge is None:
            log.debug("badge_not_registered", badge_id=badge_id)
            return badge_id
        return badge.name


def load_builtin_badges() -> BadgeRegistry:
    """Load the badge metadata bundled with StoryPath."""
    resource = resources.files(__package__).joinpath(BUILTIN_BADGES_FILE)
    with resource.open("r", encoding="utf-8") as f:
        data = YAML(typ="safe").load(f)
    return BadgeRegistry.from_dict(data or {})
