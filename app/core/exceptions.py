"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthenticatedException(AppException):
    """Missing or invalid bearer credential."""

    def __init__(self, message: str = "Not authorized. Please log in again."):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ValidationException(AppException):
    """Malformed or missing input."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ChatExpiredException(ForbiddenException):
    """Chat access window has closed."""

    def __init__(self, message: str = "Chat access has expired"):
        super().__init__(message)


# ============================================================================
# Business rule failures (reported with HTTP 200 and success=false)
# ============================================================================


class BusinessRuleException(AppException):
    """Expected outcome of a request that the caller must act on."""

    def __init__(self, message: str):
        """Initialize with 200 status code."""
        super().__init__(message, status_code=200)


class AlreadyRegisteredException(BusinessRuleException):
    """A verified account already owns the address."""

    def __init__(self, message: str = "An account with this email already exists."):
        super().__init__(message)


class AlreadyVerifiedException(BusinessRuleException):
    """The account has completed verification already."""

    def __init__(self, message: str = "This email is already verified."):
        super().__init__(message)


class AccountNotFoundException(BusinessRuleException):
    """No account record exists for the address."""

    def __init__(self, message: str = "No account found for this email."):
        super().__init__(message)


class ChallengeExpiredException(BusinessRuleException):
    """The one-time code is past its window or was never issued."""

    def __init__(self, message: str = "OTP has expired. Please request a new one."):
        super().__init__(message)


class InvalidCodeException(BusinessRuleException):
    """The submitted one-time code does not match."""

    def __init__(self, message: str = "Invalid OTP."):
        super().__init__(message)


class InvalidCredentialsException(BusinessRuleException):
    """Unknown address or wrong password; deliberately indistinguishable."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class UnverifiedAccountException(BusinessRuleException):
    """The account has not completed email verification."""

    def __init__(self, message: str = "Please verify your email before continuing."):
        super().__init__(message)


class ProviderUnavailableException(BusinessRuleException):
    """The doctor does not exist or is not taking chats."""

    def __init__(self, message: str = "Doctor is not available for chat."):
        super().__init__(message)


# ============================================================================
# Dependency failures (cause is logged, never returned)
# ============================================================================


class DependencyFailureException(AppException):
    """An external collaborator failed."""

    def __init__(self, message: str = "Operation failed. Please try again later."):
        super().__init__(message, status_code=200)


class NotificationFailedException(DependencyFailureException):
    """The email notifier could not deliver a message."""

    def __init__(self, message: str = "Could not send the verification email. Please try again."):
        super().__init__(message)


class BlobStorageFailedException(DependencyFailureException):
    """The blob store rejected an upload."""

    def __init__(self, message: str = "Could not upload the image. Please try again."):
        super().__init__(message)
