class SlotEngineError(RuntimeError):
    """Base error for slot generation and regeneration."""
    pass


class InvalidTimeBlockError(SlotEngineError, ValueError):
    """Raised when a time block cannot be sliced (bad HH:MM, inverted range, bad duration/buffer)."""
    pass


class InvalidTimezoneError(SlotEngineError, ValueError):
    """Raised when an event or exception names an unknown IANA zone."""
    pass


class EventNotFoundError(SlotEngineError, LookupError):
    """Raised when regeneration is requested for an unknown event."""
    pass


class DuplicateSlotError(SlotEngineError):
    """Raised by slot stores when an insert collides with (event, start_time, end_time)."""
    pass


class SlotPersistenceError(SlotEngineError):
    """Raised by slot stores when a single slot cannot be written."""
    pass


class JobEnumerationError(SlotEngineError):
    """Raised when the batch job cannot load its active events."""
    pass
