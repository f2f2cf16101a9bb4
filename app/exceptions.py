# app/exceptions.py


class ServiceError(Exception):
    """Base class for errors raised by the service layer"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(ServiceError):
    """Arguments are out of range or malformed"""


class NotFound(ServiceError):
    """The requested row does not exist or is not visible to the caller"""


class ConstraintViolation(ServiceError):
    """A uniqueness, ordering or read-state invariant would be broken"""


class QueryFailed(ServiceError):
    """The database reported an execution error"""
