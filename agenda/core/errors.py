"""Error kinds raised by the scheduling engine and its store."""


class SchedulingError(Exception):
    """Base class for every error raised by agenda."""


class InvalidFormat(SchedulingError, ValueError):
    """A time string does not look like H:MM or HH:MM."""


class OutOfRange(SchedulingError, ValueError):
    """A time string has an hour outside 0-23 or a minute outside 0-59."""


class InvalidCenter(SchedulingError, ValueError):
    """A proximity search was given a missing or non-numeric location."""


class InvalidWorkSettings(SchedulingError, ValueError):
    """Work settings cannot be saved as submitted."""


class MalformedAvailability(SchedulingError, ValueError):
    """A stored settings, schedule or override document has the wrong shape."""


class InvalidStatus(SchedulingError, ValueError):
    """An appointment status outside the known lifecycle."""


class AppointmentNotFound(SchedulingError):
    pass


class SlotUnavailableError(SchedulingError):
    """The requested slot cannot be booked.

    ``reason`` is ``'past'`` when the slot already started and
    ``'not_offered'`` when the doctor did not publish it for that date.
    """

    reason = 'not_offered'

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class SlotTakenError(SlotUnavailableError):
    """Another active appointment already holds the slot.

    This is an expected outcome of the optimistic booking check: callers
    should re-display availability rather than report a failure.
    """

    reason = 'busy'


class StoreUnavailable(SchedulingError):
    """The underlying database call failed or timed out."""
