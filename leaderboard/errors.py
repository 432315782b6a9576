class LeaderboardError(Exception):
    """Base class for errors reported back to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LeaderboardError):
    """Missing or out-of-range submission fields. Correctable by the caller."""

    status_code = 400


class StorageError(LeaderboardError):
    """The score document could not be read, parsed or written."""

    status_code = 500
