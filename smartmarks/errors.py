"""Error categories shared by the server and the sync client."""

MISSING_TITLE = "missing title"
MISSING_URL = "missing url"
INVALID_URL = "invalid url"

_VALIDATION_MESSAGES = {
    MISSING_TITLE: "Please enter a title.",
    MISSING_URL: "Please enter a URL.",
    INVALID_URL: "Please enter a valid URL.",
}


class SmartmarksError(Exception):
    """Base class for errors raised by smartmarks."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(SmartmarksError):
    """
    Raised when a bookmark title or URL is malformed.

    `reason` is one of MISSING_TITLE, MISSING_URL or INVALID_URL; `message` is
    the human-readable text shown to the user.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(_VALIDATION_MESSAGES.get(reason, reason))


class StoreError(SmartmarksError):
    """Raised when the bookmark store rejects a read or a write."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ChannelError(SmartmarksError):
    """Raised when a change subscription cannot be established."""
