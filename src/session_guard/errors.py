"""Domain-specific exceptions for session-guard."""


class InvalidPolicyError(ValueError):
    """Raised when a rate limit policy value is out of range.

    Configuration problem detected at construction time. The engine
    itself never raises while serving checks.
    """

    def __init__(self, field: str, value: object) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid policy value for {field}: {value!r} (must be > 0)")
