class RollcallError(Exception):
    """Base exception for attendance tracker failures."""


class ValidationError(RollcallError):
    """Raised when submitted data is missing or malformed. Nothing is written."""


class NotFoundError(RollcallError):
    """Raised when a referenced member does not exist."""


class StoreError(RollcallError):
    """Raised when a write or batch fails to commit. The whole batch is rolled back."""


class AuthError(RollcallError):
    """Raised when sign-in fails.

    ``code`` is one of the classified failure kinds; ``message`` is the text
    shown to the user.
    """

    INVALID_EMAIL = 'invalid-email'
    USER_NOT_FOUND = 'user-not-found'
    WRONG_PASSWORD = 'wrong-password'
    UNEXPECTED = 'unexpected'

    MESSAGES = {
        INVALID_EMAIL: 'Please enter a valid email address.',
        USER_NOT_FOUND: 'Invalid username or password.',
        WRONG_PASSWORD: 'Invalid username or password.',
        UNEXPECTED: 'An unexpected error occurred. Please try again.',
    }

    def __init__(self, code):
        if code not in self.MESSAGES:
            code = self.UNEXPECTED
        self.code = code
        self.message = self.MESSAGES[code]
        super().__init__(self.message)
