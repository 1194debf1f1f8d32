from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict

from pydantic import ValidationError

from dayshift.models import LearnStats

logger = logging.getLogger(__name__)


class LearnStatsPersistence(ABC):
    """Where the learning store keeps its key -> LearnStats map between runs."""

    @abstractmethod
    def load(self) -> Dict[str, LearnStats]:
        raise NotImplementedError

    @abstractmethod
    def save(self, stats: Dict[str, LearnStats]) -> None:
        raise NotImplementedError


class InMemoryLearnStatsStore(LearnStatsPersistence):
    def __init__(self, initial: Dict[str, LearnStats] | None = None):
        self.data: Dict[str, LearnStats] = dict(initial or {})
        self.saves = 0

    def load(self) -> Dict[str, LearnStats]:
        return dict(self.data)

    def save(self, stats: Dict[str, LearnStats]) -> None:
        self.data = dict(stats)
        self.saves += 1


class JsonLearnStatsStore(LearnStatsPersistence):
    """
    JSON file, one object per key:
        {"deep work": {"ewma_minutes": 82.5, "sample_count": 2,
                       "last_updated": "2026-01-10T09:00:00Z"}}
    """

    def __init__(self, path: str = "data/learn_stats.json"):
        self.path = Path(path)

    def load(self) -> Dict[str, LearnStats]:
        """
        Load stats from disk. Returns an empty map if the file is missing or invalid.
        """
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            return {str(k): LearnStats.model_validate(v) for k, v in data.items()}
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable learning stats at {self.path}: {e}")
            return {}

    def save(self, stats: Dict[str, LearnStats]) -> None:
        """
        Write stats to disk. The previous file is only replaced once the new one
        is fully written.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        data = {k: v.model_dump(mode="json") for k, v in sorted(stats.items())}

        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(
            json.dumps(data, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        os.replace(tmp, self.path)
