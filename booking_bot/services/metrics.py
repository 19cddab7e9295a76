from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Dict, List

from ..flow import FlowState


@dataclass
class MetricsSnapshot:
    turns_total: int
    slot_accepted: int
    slot_rejected: int
    slot_rejections_by_state: Dict[str, int]
    slot_acceptance_rate: float
    knowledge_base_hits: int
    knowledge_base_misses: int
    knowledge_base_hit_rate: float
    bookings_started: int
    bookings_completed: int
    avg_turn_latency_ms: float = 0.0


class MetricsService:
    def __init__(self) -> None:
        self._lock = Lock()
        self._turns_total = 0
        self._slot_accepted = 0
        self._slot_rejected = 0
        self._slot_rejections_by_state: Dict[str, int] = {}
        self._knowledge_base_hits = 0
        self._knowledge_base_misses = 0
        self._bookings_started = 0
        self._bookings_completed = 0
        self._turn_latencies: List[float] = []
        self._max_latency_samples = 1000

    def record_turn(self) -> None:
        with self._lock:
            self._turns_total += 1

    def record_slot_accepted(self) -> None:
        with self._lock:
            self._slot_accepted += 1

    def record_slot_rejected(self, state: FlowState) -> None:
        with self._lock:
            self._slot_rejected += 1
            key = state.value
            self._slot_rejections_by_state[key] = self._slot_rejections_by_state.get(key, 0) + 1

    def record_knowledge_base_lookup(self, matched: bool) -> None:
        with self._lock:
            if matched:
                self._knowledge_base_hits += 1
            else:
                self._knowledge_base_misses += 1

    def record_booking_started(self) -> None:
        with self._lock:
            self._bookings_started += 1

    def record_booking_completed(self) -> None:
        with self._lock:
            self._bookings_completed += 1

    def record_turn_latency(self, latency_ms: float) -> None:
        """Record turn latency in milliseconds."""
        with self._lock:
            self._turn_latencies.append(latency_ms)
            # Keep only recent samples
            if len(self._turn_latencies) > self._max_latency_samples:
                self._turn_latencies = self._turn_latencies[-self._max_latency_samples:]

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            slot_total = self._slot_accepted + self._slot_rejected
            slot_rate = (self._slot_accepted / slot_total) if slot_total else 0.0
            kb_total = self._knowledge_base_hits + self._knowledge_base_misses
            kb_rate = (self._knowledge_base_hits / kb_total) if kb_total else 0.0
            avg_latency = (
                sum(self._turn_latencies) / len(self._turn_latencies)
                if self._turn_latencies else 0.0
            )
            return MetricsSnapshot(
                turns_total=self._turns_total,
                slot_accepted=self._slot_accepted,
                slot_rejected=self._slot_rejected,
                slot_rejections_by_state=dict(self._slot_rejections_by_state),
                slot_acceptance_rate=slot_rate,
                knowledge_base_hits=self._knowledge_base_hits,
                knowledge_base_misses=self._knowledge_base_misses,
                knowledge_base_hit_rate=kb_rate,
                bookings_started=self._bookings_started,
                bookings_completed=self._bookings_completed,
                avg_turn_latency_ms=avg_latency,
            )


_metrics_service = MetricsService()


def get_metrics_service() -> MetricsService:
    return _metrics_service
