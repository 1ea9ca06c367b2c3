"""Run totals and the summary returned to the scheduler."""

from dataclasses import dataclass, field


@dataclass
class ReminderTally:
    """Counters accumulated across one dispatch run."""

    telegram: int = 0
    email: int = 0
    errors: int = 0

    def add(self, other: "ReminderTally") -> None:
        self.telegram += other.telegram
        self.email += other.email
        self.errors += other.errors

    @property
    def total_sent(self) -> int:
        return self.telegram + self.email

    def as_breakdown(self) -> dict:
        return {"telegram": self.telegram, "email": self.email, "errors": self.errors}


@dataclass
class DispatchResult:
    """Outcome of a dispatch run. A run with nothing to do is still a success."""

    message: str
    tally: ReminderTally = field(default_factory=ReminderTally)
    sessions_checked: int = 0
    include_breakdown: bool = True
    skipped: bool = False
    success: bool = True

    @property
    def reminders_sent(self) -> int:
        return self.tally.total_sent

    def to_response(self) -> dict:
        """JSON body for the trigger endpoint."""
        body = {
            "success": self.success,
            "message": self.message,
            "remindersSent": self.reminders_sent,
        }
        if self.include_breakdown:
            body["breakdown"] = self.tally.as_breakdown()
        return body
