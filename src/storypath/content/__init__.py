"""Story content: bundled stories, story file loading and badge metadata."""

from storypath.content.badges import BadgeCriteria, BadgeInfo, BadgeRegistry, load_builtin_badges
from storypath.content.loader import (
    DEFAULT_STORY,
    Story,
    StoryLoadError,
    list_builtin_stories,
    load_builtin_story,
    load_story,
    parse_story,
)

__all__ = [
    "DEFAULT_STORY",
    "BadgeCriteria",
    "BadgeInfo",
    "BadgeRegistry",
    "Story",
    "StoryLoadError",
    "list_builtin_stories",
    "load_builtin_badges",
    "load_builtin_story",
    "load_story",
    "parse_story",
]
