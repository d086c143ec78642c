"""Terminal outcome derivation."""

from __future__ import annotations

from storypath.models.story import DEFAULT_OUTCOME_TYPE, Outcome, Scene


def compute_outcome(scene: Scene) -> Outcome | None:
    """Derive the outcome of reaching ``scene``.

    Only ending scenes have an outcome. A missing outcome type counts as
    negative, and a badge is awarded only for a positive ending: a badge id
    on a negative or neutral ending is dropped.

    Returns:
        Outcome, or None if the scene is not an ending.
    """
    if not scene.is_ending:
        return None

    outcome_type = scene.outcome_type or DEFAULT_OUTCOME_TYPE
    badge = scene.badge_id if outcome_type == "positive" else None
    return Outcome(type=outcome_type, badge=badge, message=scene.text)
