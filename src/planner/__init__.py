"""Goal planning and adaptive execution."""

from .execution import CheckInResult, ExecutionTracker, Resolution
from .goals import GoalTracker
from .models import Adjustment, AdjustmentOption, CheckIn, Goal, Task
from .service import PlannerService, PlanResult
from .store import PlanStore

__all__ = [
    "Adjustment",
    "AdjustmentOption",
    "CheckIn",
    "CheckInResult",
    "ExecutionTracker",
    "Goal",
    "GoalTracker",
    "PlanResult",
    "PlanStore",
    "PlannerService",
    "Resolution",
    "Task",
]
