from enum import Enum


class NonFinitePolicy(Enum):
    """
    How accumulate treats NaN and +/-infinity.

    NOTE:
    - REJECT raises NonFiniteAngleError and leaves the state unchanged
    - PROPAGATE counts the observation and poisons both sums with NaN
    """
    REJECT = "reject"
    PROPAGATE = "propagate"


DEFAULT_POLICY = NonFinitePolicy.REJECT
