class FeedError(Exception):
    """Base class for price feed failures."""


class FeedConfigurationError(FeedError):
    """The remote feed source cannot be constructed from the current settings."""


class FeedSourceError(FeedError):
    """A feed source could not be listed or read."""


class FeedParseError(FeedError):
    """A feed file failed validation; none of its rows may be applied."""

    def __init__(self, message: str, row: int | None = None) -> None:
        super().__init__(message if row is None else f"row {row}: {message}")
        self.row = row
