# hrms/core/exceptions.py


class HRMSError(Exception):
    """Base class for errors raised by the HRMS services."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFound(HRMSError):
    """Employee, leave request or payroll record does not exist."""


class InvalidInput(HRMSError):
    """Malformed dates, inverted leave ranges, unknown status values."""


class Conflict(HRMSError):
    pass


class ConflictOnAdjust(Conflict):
    """The balance row exists but the relative update did not apply."""


class LeaveRequestConflict(Conflict):
    """A leave request was reviewed after it already left Pending."""


class TransactionAborted(HRMSError):
    """A multi-step unit of work failed and was rolled back as a whole."""
