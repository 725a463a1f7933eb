class AngleMeanError(Exception):
    """Base class for circular mean errors."""


class NonFiniteAngleError(AngleMeanError, ValueError):
    """
    Raised when a NaN or infinite angle is accumulated under the REJECT policy.

    The input state is left untouched.
    """

    def __init__(self, value: float) -> None:
        super().__init__(f"non-finite angle: {value!r}")
        self.value = value


class MalformedStateError(AngleMeanError, ValueError):
    """Raised when a serialized state cannot be turned into an AccumulatorState."""


class FrameSchemaError(AngleMeanError, KeyError):
    """Raised when a DataFrame lacks the columns an aggregation needs."""

    def __init__(self, missing) -> None:
        super().__init__(f"missing columns: {sorted(missing)}")
        self.missing = sorted(missing)
