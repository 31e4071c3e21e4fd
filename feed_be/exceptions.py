from feed_be.error_codes import ErrorCodes

class AppException(Exception):
    def __init__(self, error_code, status_message, status_code, details=None):
        super().__init__(status_message)
        self.error_code = error_code
        self.status_message = status_message
        self.status_code = status_code
        self.details = details if details is not None else {}

    def to_dict(self):
        return {
            'status': False,
            'error_code': self.error_code,
            'status_message': self.status_message,
            'details': self.details,
        }

class ValidationException(AppException):
    def __init__(self, status_message="Validation failed", details=None):
        super().__init__(
            error_code=ErrorCodes.VALIDATION_ERROR,
            status_message=status_message,
            status_code=422,
            details=details
        )

class AuthenticationException(AppException):
    def __init__(self, status_message="Service token required", details=None):
        super().__init__(
            error_code=ErrorCodes.UNAUTHENTICATED,
            status_message=status_message,
            status_code=401,
            details=details
        )

class AuthorizationException(AppException):
    def __init__(self, status_message="Forbidden", details=None):
        super().__init__(
            error_code=ErrorCodes.FORBIDDEN,
            status_message=status_message,
            status_code=403,
            details=details
        )

class NotFoundException(AppException):
    def __init__(self, status_message="Resource not found", details=None):
        super().__init__(
            error_code=ErrorCodes.NOT_FOUND,
            status_message=status_message,
            status_code=404,
            details=details
        )

class ConfigNotInitializedException(AppException):
    """Raised when the game config cache is read before its first refresh."""
    def __init__(self, status_message="Config not initialized. Call refresh first.", details=None):
        super().__init__(
            error_code=ErrorCodes.CONFIG_NOT_INITIALIZED,
            status_message=status_message,
            status_code=503,
            details=details
        )

class InternalServerErrorException(AppException):
    def __init__(self, status_message="Internal server error", details=None):
        super().__init__(
            error_code=ErrorCodes.INTERNAL_SERVER_ERROR,
            status_message=status_message,
            status_code=500,
            details=details
        )
