class ErrorCodes:
    GENERIC_ERROR = "FEED_000"
    VALIDATION_ERROR = "FEED_001"
    UNAUTHENTICATED = "FEED_002"
    FORBIDDEN = "FEED_003"
    NOT_FOUND = "FEED_004"
    METHOD_NOT_ALLOWED = "FEED_005"
    CONFIG_NOT_INITIALIZED = "FEED_100"
    INTERNAL_SERVER_ERROR = "FEED_500"
