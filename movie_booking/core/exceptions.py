import traceback


class BookingError(Exception):
    def __init__(self, message: str, status_code: int = 400, stack_trace: bool = False):
        self.message = message
        self.status_code = status_code
        self.stack_trace = traceback.format_exc() if stack_trace else None
        super().__init__(self.message)


class NotFoundError(BookingError):
    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", status_code=404)


class InsufficientSeatsError(BookingError):
    def __init__(self, timing_id: int, requested: int, available: int):
        self.timing_id = timing_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Show timing {timing_id} has {available} seats left, {requested} requested", status_code=409)


class InvalidStateError(BookingError):
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class HoldExpiredError(BookingError):
    def __init__(self, reservation_id):
        self.reservation_id = reservation_id
        super().__init__(f"Hold for reservation {reservation_id} has expired", status_code=410)


class BookingValidationError(BookingError):
    def __init__(self, message: str):
        super().__init__(message, status_code=422)


class LedgerCorruptionError(BookingError):
    def __init__(self, timing_id: int, message: str, record=None):
        self.timing_id = timing_id
        # the clamped journal line, when the failure produced one
        self.record = record
        super().__init__(f"Ledger corruption on show timing {timing_id}: {message}", status_code=500, stack_trace=True)
