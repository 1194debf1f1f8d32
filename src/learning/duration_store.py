from __future__ import annotations

import logging
import math
import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from dayshift.models import SHORTENABLE_KINDS, LearnStats, ScheduleBlock
from learning.keys import normalize_learn_key
from storage.learn_stats_store import LearnStatsPersistence

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.25
MIN_PREDICTION_MIN = 5
MIN_SUGGEST_DELTA_MIN = 5


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _check_alpha(alpha: float) -> float:
    if not 0.0 < alpha <= 1.0:
        raise ValueError("alpha must be in (0, 1]")
    return alpha


class DurationLearningStore:
    """
    Per-activity duration estimate, learned from completions with an EWMA.

    Keys are normalized with ``normalize_learn_key`` so "Deep Work!" and
    "deep work" share history. The map is loaded from ``persistence`` once and
    written back after every change. A failed write is logged, the in-memory
    map stays authoritative, and the write is retried on the next change or
    ``flush()``.
    """

    def __init__(
        self,
        persistence: Optional[LearnStatsPersistence] = None,
        alpha: float = DEFAULT_ALPHA,
    ):
        self.alpha = _check_alpha(alpha)
        self.persistence = persistence
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        self._dirty = False
        self._stats: Dict[str, LearnStats] = persistence.load() if persistence is not None else {}
        logger.info(f"Duration learning store ready with {len(self._stats)} keys")

    def predict(self, key: str) -> Optional[int]:
        """Predicted minutes for ``key``, or None without recorded completions."""
        with self._lock:
            stats = self._stats.get(normalize_learn_key(key))
        if stats is None or stats.sample_count == 0:
            return None
        return max(MIN_PREDICTION_MIN, _round_half_up(stats.ewma_minutes))

    def record(
        self,
        key: str,
        actual_minutes: int,
        alpha: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> LearnStats:
        a = self.alpha if alpha is None else _check_alpha(alpha)
        norm = normalize_learn_key(key)
        actual = float(max(1, actual_minutes))
        stamp = now or datetime.now(timezone.utc)

        with self._lock:
            prev = self._stats.get(norm)
            if prev is None:
                updated = LearnStats(ewma_minutes=actual, sample_count=1, last_updated=stamp)
            else:
                updated = LearnStats(
                    ewma_minutes=a * actual + (1.0 - a) * prev.ewma_minutes,
                    sample_count=prev.sample_count + 1,
                    last_updated=stamp,
                )
            self._stats[norm] = updated
            self._dirty = True

        logger.debug(
            f"Recorded {actual:.0f} min for '{norm}' -> ewma {updated.ewma_minutes:.1f} "
            f"({updated.sample_count} samples)"
        )
        self.flush()
        return updated

    def seed_if_missing(self, key: str, minutes: int, now: Optional[datetime] = None) -> bool:
        """
        Give ``key`` a starting estimate without counting it as a sample.

        Seeded keys do not produce predictions until a completion is recorded;
        the first completion then blends with the seed. Returns False when the
        key already has history.
        """
        norm = normalize_learn_key(key)
        with self._lock:
            if norm in self._stats:
                return False
            self._stats[norm] = LearnStats(
                ewma_minutes=float(max(1, minutes)),
                sample_count=0,
                last_updated=now or datetime.now(timezone.utc),
            )
            self._dirty = True
        self.flush()
        return True

    def reset(self, key: Optional[str] = None) -> int:
        """Forget one key, or every key when ``key`` is None. Returns how many went."""
        with self._lock:
            if key is None:
                removed = len(self._stats)
                self._stats.clear()
            else:
                removed = 1 if self._stats.pop(normalize_learn_key(key), None) else 0
            if removed:
                self._dirty = True
        self.flush()
        return removed

    def get(self, key: str) -> Optional[LearnStats]:
        with self._lock:
            return self._stats.get(normalize_learn_key(key))

    def snapshot(self) -> Dict[str, LearnStats]:
        with self._lock:
            return dict(self._stats)

    def __len__(self) -> int:
        with self._lock:
            return len(self._stats)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def flush(self) -> bool:
        """Write pending changes. Returns False if the write failed."""
        if self.persistence is None:
            return True

        # saves are serialized so an older snapshot never lands after a newer one
        with self._save_lock:
            with self._lock:
                if not self._dirty:
                    return True
                snapshot = dict(self._stats)
                self._dirty = False

            try:
                self.persistence.save(snapshot)
                return True
            except Exception:
                logger.exception("Failed to save learning stats, keeping in-memory copy")
                self._dirty = True
                return False


def suggested_duration(
    store: DurationLearningStore,
    block: ScheduleBlock,
    min_delta: int = MIN_SUGGEST_DELTA_MIN,
) -> Optional[int]:
    """
    Learned duration worth showing next to ``block``, or None.

    Only task and focus blocks get one, and only when the prediction differs
    from the plan by at least ``min_delta`` minutes.
    """
    if block.kind not in SHORTENABLE_KINDS:
        return None
    predicted = store.predict(block.learn_key)
    if predicted is None:
        return None
    if abs(predicted - block.duration_minutes) < min_delta:
        return None
    return predicted
