"""Exception hierarchy for GymDesk."""


class GymDeskError(Exception):
    """Base exception for all GymDesk errors."""


class ConfigError(GymDeskError):
    """Raised when configuration is invalid."""


class DirectoryError(GymDeskError):
    """Raised when the remote directory service fails or replies malformed."""


class TokenExpiredError(DirectoryError):
    """Raised when an access token is past its expiry."""


class AuthResolutionError(DirectoryError):
    """Raised when a session cannot be resolved to a user."""


class TenantLoadError(DirectoryError):
    """Raised when the gyms of a user cannot be listed."""


class InvalidCredentialsError(DirectoryError):
    """Raised when an email/password pair is rejected."""


class EmailNotConfirmedError(DirectoryError):
    """Raised when a sign-in is attempted before the email is confirmed."""


class UserExistsError(DirectoryError):
    """Raised when signing up with an email that is already registered."""


class ValidationError(GymDeskError):
    """Raised when user input fails validation."""


class NoGymSelectedError(GymDeskError):
    """Raised when tenant-scoped data is requested without a current gym."""


class TierLimitError(GymDeskError):
    """Raised when a subscription tier does not allow another gym."""
