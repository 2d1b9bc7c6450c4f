class IdentifierError(Exception):
    """Base class for Snowflake identifier failures."""

    pass


class ClockRegressionError(IdentifierError):
    """Raised when the wall clock moves backwards between two generations."""

    def __init__(self, last_timestamp: int, current_timestamp: int):
        self.last_timestamp = last_timestamp
        self.current_timestamp = current_timestamp
        super().__init__(
            f"Clock moved backwards by {last_timestamp - current_timestamp}ms. "
            "Refusing to generate ID."
        )


class MalformedIdentifierError(IdentifierError, ValueError):
    """Raised when a value is not a non-negative decimal identifier."""

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Malformed identifier: {identifier!r}")
