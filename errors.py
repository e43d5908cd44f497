"""
Error types for the data and auth layers
"""


class FlycastError(Exception):
    """Base error"""


class StoreError(FlycastError):
    """The Supabase store rejected or failed a request"""

    def __init__(self, operation, table, cause=None):
        self.operation = operation
        self.table = table
        self.cause = cause
        message = f"{operation} on {table} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class MappingError(FlycastError, ValueError):
    """A row could not be translated into its domain object"""


class AuthError(FlycastError):
    """An identity provider operation failed"""

    def __init__(self, message, cause=None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class AuthTimeoutError(AuthError):
    """No session was established before the coordinator gave up"""

    def __init__(self, seconds):
        self.seconds = seconds
        super().__init__('authentication timeout')
