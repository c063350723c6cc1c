from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from time import monotonic

_WINDOW = timedelta(hours=24)


@dataclass
class RequestSample:
  ts: datetime
  status_code: int
  latency_ms: float


class RuntimeMetrics:
  """Process-local request latency window plus suggestion transition counters."""

  def __init__(self) -> None:
    self._started_monotonic = monotonic()
    self._samples: deque[RequestSample] = deque()
    self._transitions: Counter[str] = Counter()
    self._lock = Lock()

  def uptime_seconds(self) -> int:
    return max(0, int(monotonic() - self._started_monotonic))

  def observe_request(self, status_code: int, latency_ms: float) -> None:
    now = datetime.now(timezone.utc)
    with self._lock:
      self._samples.append(RequestSample(ts=now, status_code=status_code, latency_ms=latency_ms))
      while self._samples and self._samples[0].ts < now - _WINDOW:
        self._samples.popleft()

  def observe_transition(self, action: str, outcome: str) -> None:
    # e.g. ("accept", "ok"), ("accept", "failed"), ("batch", "failed")
    with self._lock:
      self._transitions[f"{action}.{outcome}"] += 1

  def snapshot(self) -> dict:
    now = datetime.now(timezone.utc)
    with self._lock:
      samples = [s for s in self._samples if s.ts >= now - _WINDOW]
      transitions = dict(self._transitions)

    recent = [s for s in samples if s.ts >= now - timedelta(minutes=15)]
    errors_15 = sum(1 for s in recent if s.status_code >= 500)
    errors_24h = sum(1 for s in samples if s.status_code >= 500)

    p95_ms = 0.0
    if samples:
      latencies = sorted(s.latency_ms for s in samples)
      p95_ms = latencies[max(0, int(len(latencies) * 0.95) - 1)]

    return {
      "uptimeSeconds": self.uptime_seconds(),
      "p95LatencyMs24h": round(p95_ms, 2),
      "requestCount15m": len(recent),
      "requestCount24h": len(samples),
      "errorCount15m": errors_15,
      "errorCount24h": errors_24h,
      "errorRate24h": round((errors_24h / len(samples)) * 100, 2) if samples else 0.0,
      "suggestionTransitions": transitions,
    }


runtime_metrics = RuntimeMetrics()
