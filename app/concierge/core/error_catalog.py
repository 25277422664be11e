from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    INVALID_CREDENTIALS = ErrorDefinition(
        "INVALID_CREDENTIALS",
        "Invalid credentials",
        status.HTTP_401_UNAUTHORIZED,
    )
    USER_INACTIVE = ErrorDefinition(
        "USER_INACTIVE",
        "User is inactive",
        status.HTTP_403_FORBIDDEN,
    )
    API_KEY_MISSING = ErrorDefinition(
        "API_KEY_MISSING",
        "Missing X-API-Key header",
        status.HTTP_401_UNAUTHORIZED,
    )
    INVALID_API_KEY = ErrorDefinition(
        "INVALID_API_KEY",
        "Invalid API key",
        status.HTTP_401_UNAUTHORIZED,
    )
    API_KEY_LOOKUP_FAILED = ErrorDefinition(
        "API_KEY_LOOKUP_FAILED",
        "API authentication failed due to server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    API_KEY_NOT_FOUND = ErrorDefinition(
        "API_KEY_NOT_FOUND",
        "API key not found",
        status.HTTP_404_NOT_FOUND,
    )
    USER_NOT_FOUND = ErrorDefinition(
        "USER_NOT_FOUND",
        "User not found",
        status.HTTP_404_NOT_FOUND,
    )
    USER_CONFLICT = ErrorDefinition(
        "USER_CONFLICT",
        "Username or email already in use",
        status.HTTP_409_CONFLICT,
    )
    CANNOT_DELETE_SELF = ErrorDefinition(
        "CANNOT_DELETE_SELF",
        "You cannot delete your own account",
        status.HTTP_403_FORBIDDEN,
    )
    SHIPMENT_NOT_FOUND = ErrorDefinition(
        "SHIPMENT_NOT_FOUND",
        "Shipment not found",
        status.HTTP_404_NOT_FOUND,
    )
    DEVICE_NOT_FOUND = ErrorDefinition(
        "DEVICE_NOT_FOUND",
        "Device not found in shipment",
        status.HTTP_404_NOT_FOUND,
    )
    LOCATION_NOT_FOUND = ErrorDefinition(
        "LOCATION_NOT_FOUND",
        "Location not found",
        status.HTTP_404_NOT_FOUND,
    )
    EMAIL_LOG_NOT_FOUND = ErrorDefinition(
        "EMAIL_LOG_NOT_FOUND",
        "Email log not found",
        status.HTTP_404_NOT_FOUND,
    )
    SHIPMENT_STATUS_CONFLICT = ErrorDefinition(
        "SHIPMENT_STATUS_CONFLICT",
        "Shipment status does not allow this change",
        status.HTTP_409_CONFLICT,
    )
    SHORT_CODE_EXHAUSTED = ErrorDefinition(
        "SHORT_CODE_EXHAUSTED",
        "Failed to allocate a unique shipment code",
        status.HTTP_409_CONFLICT,
    )
    LOCATION_NAME_CONFLICT = ErrorDefinition(
        "LOCATION_NAME_CONFLICT",
        "Location name already exists",
        status.HTTP_409_CONFLICT,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD = ErrorDefinition(
        "IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD",
        "Idempotency key reused with different payload",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REQUEST_IN_PROGRESS = ErrorDefinition(
        "IDEMPOTENCY_REQUEST_IN_PROGRESS",
        "Idempotency request already in progress",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REPLAY = ErrorDefinition(
        "IDEMPOTENCY_REPLAY",
        "Idempotent replay",
        status.HTTP_200_OK,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)
