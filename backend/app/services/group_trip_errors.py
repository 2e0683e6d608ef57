"""Errors raised on the transactional path (group trips, moderated posting).

Each carries the HTTP status the routers translate it to.
"""


class TripError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TripNotFound(TripError):
    status_code = 404


class TripForbidden(TripError):
    status_code = 403


class CapacityExceeded(TripError):
    status_code = 409


class DeadlinePassed(TripError):
    status_code = 409


class ModerationRejected(TripError):
    status_code = 422


class TripValidationError(TripError):
    status_code = 400


class TripConflict(TripError):
    """Another writer changed the trip first; the caller may retry."""

    status_code = 409
