from typing import Dict, List, Optional

from dayshift.models import ScheduleBlock
from learning.duration_store import DurationLearningStore

# Authoritative block list per day, keyed by YYYY-MM-DD
days: Dict[str, List[ScheduleBlock]] = {}

# Block list before the last committed late shift, per day (one level of undo)
pre_shift_snapshots: Dict[str, List[ScheduleBlock]] = {}

# Created on first use by api.dependencies
learning_store: Optional[DurationLearningStore] = None
