import json
from typing import Dict, List, Optional

from .utils import stable_hash, utc_now_iso


class EventLog:
    """
    Append-only aggregation event log.

    Invariants:
    - Events are added, never mutated
    - Payloads hold plain JSON values (states go in as dicts or triples)
    """

    def __init__(self) -> None:
        self.events: List[dict] = []

    def append(self, event_type: str, payload: dict, step: Optional[int] = None) -> None:
        self.events.append(
            {
                "timestamp_utc": utc_now_iso(),
                "step": step,
                "type": event_type,
                "payload": payload,
            }
        )

    def tail(self, n: int = 50) -> List[dict]:
        return self.events[-n:] if self.events else []

    def filter_by_type(self, event_type: str) -> List[dict]:
        return [e for e in self.events if e["type"] == event_type]

    def count_by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for e in self.events:
            t = e.get("type", "unknown")
            counts[t] = counts.get(t, 0) + 1
        return counts

    def payload_hash(self) -> str:
        """
        Hash over (step, type, payload) only.

        Timestamps are excluded so two replays of the same scenario agree.
        """
        return stable_hash([[e["step"], e["type"], e["payload"]] for e in self.events])

    def export_jsonl(self) -> str:
        """One event per line."""
        return "\n".join(json.dumps(e, separators=(",", ":")) for e in self.events)
