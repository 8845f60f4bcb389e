class LedgerServiceError(Exception):
    pass


class AuthorizationError(LedgerServiceError):
    pass


class AuthenticationError(LedgerServiceError):
    pass


class UserNotFoundError(LedgerServiceError):
    pass


class DuplicateUserError(LedgerServiceError):
    pass


class LedgerValidationError(LedgerServiceError):
    pass


class StorageUnavailableError(LedgerServiceError):
    """The persistent store could not be reached; operations fail closed."""
