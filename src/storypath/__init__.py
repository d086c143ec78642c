"""StoryPath: branching narrative engine and authoring tools."""

__version__ = "0.1.0"
