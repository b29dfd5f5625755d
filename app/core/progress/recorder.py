"""
Applies client-reported progress to a single algorithm entry.
"""
from datetime import datetime

from app.core.progress.schemas import AlgorithmProgress, DeltaOutcome, ProgressDelta


def apply_progress_delta(progress: AlgorithmProgress, delta: ProgressDelta, now: datetime) -> DeltaOutcome:
    """
    Merge a visualization and/or practice update into ``progress``.

    Completion is only ever set, never cleared, and ``best_time_practice`` only
    moves down.

    Args:
        progress: The algorithm entry to update in place
        delta: Client-reported values
        now: Timestamp used when the client did not send one

    Returns:
        DeltaOutcome describing points, time and completion changes
    """
    outcome = DeltaOutcome()

    if delta.time_spent_viz is not None:
        progress.time_spent_viz = (progress.time_spent_viz or 0) + delta.time_spent_viz
        progress.last_attempt_viz = delta.last_attempt_viz or now
        outcome.time_increment_seconds += delta.time_spent_viz
        if delta.time_spent_viz > 0:
            outcome.touched = True

    if delta.time_spent_practice is not None:
        outcome.attempted_practice = True
        if delta.time_spent_practice > 0:
            outcome.touched = True
        if delta.completed and not progress.completed:
            progress.completed = True
            outcome.completed_now = True

        if delta.accuracy_practice is not None:
            progress.accuracy_practice = delta.accuracy_practice
        progress.time_spent_practice = (progress.time_spent_practice or 0) + delta.time_spent_practice
        attempts = delta.attempts_practice if delta.attempts_practice is not None else 1
        progress.attempts_practice = (progress.attempts_practice or 0) + attempts
        points = delta.points_practice or 0
        progress.points_practice = (progress.points_practice or 0) + points
        progress.last_attempt_practice = delta.last_attempt_practice or now

        if delta.time_spent_practice > 0 and (
            progress.best_time_practice is None or delta.time_spent_practice < progress.best_time_practice
        ):
            progress.best_time_practice = delta.time_spent_practice

        outcome.points_earned += points
        outcome.time_increment_seconds += delta.time_spent_practice

    if delta.last_attempt_viz is not None or delta.last_attempt_practice is not None:
        outcome.touched = True

    return outcome


def minutes_from_seconds(seconds: float) -> int:
    """Whole minutes for activity tracking; any positive time counts as at least one."""
    if seconds <= 0:
        return 0
    return max(1, int(seconds / 60 + 0.5))
