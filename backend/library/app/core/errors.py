class LibraryError(Exception):
    """Base class for library domain errors."""


class ConflictError(LibraryError):
    """A (user, song) entry was created concurrently by another request."""

    def __init__(self, message: str = "Song already in library"):
        super().__init__(message)
        self.message = message


class NotFoundError(LibraryError):
    """A referenced song does not exist."""

    def __init__(self, code: str = "song_not_found"):
        super().__init__(code)
        self.code = code
