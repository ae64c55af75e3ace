from __future__ import annotations


class LessonPlannerError(Exception):
    """Base class for errors raised by the planning engine."""


class ValidationError(LessonPlannerError, ValueError):
    """Bad unit/class identifier or start date; raised before any write."""


class MissingConfigurationError(LessonPlannerError, ValueError):
    """A unit or class document lacks a required field."""


class SourceUnavailable(LessonPlannerError):
    """A calendar or unit/class document could not be read."""


class InvalidTimeFormat(LessonPlannerError, ValueError):
    def __init__(self, text: str):
        super().__init__(
            f"Invalid time format: {text!r}. Expected H:MM or HH:MM."
        )
        self.text = text


class ScheduleSearchExhausted(LessonPlannerError, RuntimeError):
    """Too many consecutive holiday weeks while looking for class dates."""


# Warning categories. These label entries in AssignmentResult.warnings and
# are never raised by the engine.
class ScheduleConflict(LessonPlannerError):
    pass


class NeedsManualReview(LessonPlannerError):
    pass
