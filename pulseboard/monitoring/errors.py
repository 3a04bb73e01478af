class StatsCollectionError(Exception):
    """Raised when a sample could not be collected for a tick."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class CollectorBusyError(Exception):
    """Raised when a collection is requested while one is still in flight."""

    pass
