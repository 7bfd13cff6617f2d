from enum import Enum


class ErrorKind(str, Enum):
    MISSING_FIELD = "MissingField"
    INVALID_DATE = "InvalidDate"
    INVALID_TIME = "InvalidTime"
    INVALID_DURATION = "InvalidDuration"
    PAST_DATE = "PastDate"
    OUTSIDE_BUSINESS_HOURS = "OutsideBusinessHours"
    SLOT_TAKEN = "SlotTaken"
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    STORAGE_FAILURE = "StorageFailure"


STATUS_CODES = {
    ErrorKind.MISSING_FIELD: 400,
    ErrorKind.INVALID_DATE: 400,
    ErrorKind.INVALID_TIME: 400,
    ErrorKind.INVALID_DURATION: 400,
    ErrorKind.PAST_DATE: 400,
    ErrorKind.OUTSIDE_BUSINESS_HOURS: 400,
    ErrorKind.SLOT_TAKEN: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.STORAGE_FAILURE: 500,
}


class BookingError(Exception):
    """Raised by the scheduling core; carries the kind the API maps to a status."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind.value}
