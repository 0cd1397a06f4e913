class GradeTrackerError(Exception):
    """Base class for errors the UI reports back to the user."""


class InvalidInput(GradeTrackerError, ValueError):
    pass


class AlreadyExists(GradeTrackerError):
    pass


class InvalidCredentials(GradeTrackerError):
    pass


class NotApproved(GradeTrackerError):
    pass


class AdminImmutable(GradeTrackerError):
    pass


class NotFound(GradeTrackerError):
    pass


class ConfirmationRequired(GradeTrackerError):
    """Raised by destructive operations invoked without ``confirmed=True``.

    The message is the question the UI should put to the user.
    """


class CorruptState(GradeTrackerError):
    """Stored JSON that cannot be decoded into the expected shape.

    Only raised inside the storage layer, which recovers with a default value.
    """
