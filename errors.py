"""Errors raised by the carpool services.

Every error carries a short machine-readable ``code`` and the HTTP status the
API layer answers with.
"""


class CarpoolError(Exception):
    code = "carpool_error"
    status_code = 400


class AlreadyRegistered(CarpoolError):
    """Raised when a member registers the same role twice."""
    code = "already_registered"
    status_code = 409


class NotRegistered(CarpoolError):
    """Raised when a member acts in a role they never registered for."""
    code = "not_registered"
    status_code = 403


class InvalidRideParameters(CarpoolError):
    code = "invalid_ride_parameters"


class InvalidDeposit(CarpoolError):
    code = "invalid_deposit"


class InvalidRequestedTime(CarpoolError):
    code = "invalid_requested_time"


class InvalidPayment(CarpoolError):
    """Raised when a direct booking does not pay the exact seat price."""
    code = "invalid_payment"


class CapacityExceeded(CarpoolError):
    code = "capacity_exceeded"
    status_code = 409


class InsufficientDeposit(CarpoolError):
    code = "insufficient_deposit"


class AlreadyResolved(CarpoolError):
    code = "already_resolved"
    status_code = 409


class RideNotFound(CarpoolError):
    code = "ride_not_found"
    status_code = 404


class EntryNotFound(CarpoolError):
    code = "entry_not_found"
    status_code = 404


class InvalidRideState(CarpoolError):
    """Raised when a ride is not in a state that allows the operation."""
    code = "invalid_ride_state"


class NotRideDriver(CarpoolError):
    code = "not_ride_driver"
    status_code = 403


class ActiveRideExists(CarpoolError):
    """Raised when a member already has a ride that has not completed."""
    code = "active_ride_exists"
    status_code = 409


class NothingToWithdraw(CarpoolError):
    code = "nothing_to_withdraw"


class BatchAborted(CarpoolError):
    """A fatal condition that aborts a whole assignment batch."""
    code = "batch_aborted"
    status_code = 422


class ComputationOverflow(BatchAborted):
    code = "computation_overflow"


class ScaleExceeded(BatchAborted):
    code = "scale_exceeded"
