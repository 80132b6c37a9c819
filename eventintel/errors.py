"""Pipeline error types surfaced to direct callers."""


class ValidationError(ValueError):
    """Bad or missing required input. Nothing was persisted."""


class AttendeeNotFound(LookupError):
    """The referenced attendee id does not exist."""

    def __init__(self, attendee_id):
        super().__init__(f"Attendee not found: {attendee_id}")
        self.attendee_id = attendee_id
