import json
import math
import hashlib
from datetime import datetime, timezone


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


def stable_hash(obj) -> str:
    """
    Deterministic SHA-256 hash.

    - Sorts keys
    - Uses compact separators
    - Used for audit integrity of exported states
    """
    payload = json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def normalize_degrees(value: float) -> float:
    """
    Wrap an angle in degrees into [0, 360).

    Tiny negative inputs round up to exactly 360.0 under the modulo,
    which is folded back to 0.0. NaN stays NaN.
    """
    wrapped = value % 360.0
    if wrapped >= 360.0:
        return 0.0
    return wrapped


def angular_difference(a_deg: float, b_deg: float) -> float:
    """Signed shortest difference a - b in degrees, in [-180, 180)."""
    return normalize_degrees(a_deg - b_deg + 180.0) - 180.0
