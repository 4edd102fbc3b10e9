"""Custom exceptions for the trade desk application."""


class TradeDeskError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(TradeDeskError):
    """Exception raised for invalid form input or actions."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(TradeDeskError):
    """Exception raised when a document or draft does not exist."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class BackendError(TradeDeskError):
    """
    Raised when the inventory backend rejects a request or cannot be reached.

    backend_status is the upstream HTTP status (None when no response came
    back); errors carries the backend's validation messages, if any.
    """
    def __init__(self, message="Backend request failed", backend_status=None, errors=None):
        payload = {'errors': errors} if errors else None
        super().__init__(message, 502, payload)
        self.backend_status = backend_status
        self.errors = errors or {}
