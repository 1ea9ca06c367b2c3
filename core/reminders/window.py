"""
Reminder window matching.

The dispatcher runs on a fixed period, never exactly on a reminder's
boundary, so each kind fires anywhere inside [lead - tolerance, lead + tolerance]
of time remaining until the session starts. Both ends are inclusive.

Callers must invoke the dispatcher at least every 2 x tolerance (10 minutes
for the default 5-minute tolerance) or a kind can fall between two runs.
"""

from datetime import datetime, timedelta

from .kinds import ReminderKind


def time_until(now: datetime, start: datetime) -> timedelta:
    """Time remaining until the session starts (negative once started)."""
    return start - now


def fires(
    now: datetime,
    start: datetime,
    kind: ReminderKind,
    tolerance: timedelta | None = None,
) -> bool:
    """
    Check whether a reminder kind is due for a session at `now`.

    Args:
        now: Current time (timezone-aware)
        start: Session scheduled start (timezone-aware)
        kind: Reminder kind to test
        tolerance: Half-width of the window (defaults to the kind's own)

    Returns:
        True if time-until-start lies within the kind's window
    """
    if tolerance is None:
        tolerance = kind.tolerance
    remaining = time_until(now, start)
    return kind.lead - tolerance <= remaining <= kind.lead + tolerance


def due_kinds(
    now: datetime,
    start: datetime,
    tolerance: timedelta | None = None,
) -> list[ReminderKind]:
    """All kinds whose window contains `now`, in declaration order."""
    return [kind for kind in ReminderKind if fires(now, start, kind, tolerance)]


def max_invocation_interval(tolerance: timedelta) -> timedelta:
    """Longest trigger period that cannot skip a window entirely."""
    return tolerance * 2
