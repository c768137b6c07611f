"""Period review statistics over check-ins: deterministic, no generation tier."""

from collections import Counter
from dataclasses import dataclass, field

from shared_types import CheckInOutcome, DecisionSource, ReasonCode

REASON_LABELS = {
    ReasonCode.TIME_INSUFFICIENT: "Not enough time",
    ReasonCode.ENERGY_LOW: "Low energy",
    ReasonCode.PRIORITY_CHANGED: "Priorities changed",
    ReasonCode.EXTERNAL_INTERRUPT: "External interruptions",
    ReasonCode.FORGOT: "Forgot",
    ReasonCode.OTHER: "Other",
}

# A reason must recur more than this many times before it drives an action
REASON_ACTION_THRESHOLD = 2


@dataclass
class SuggestedAction:
    type: str
    message: str


@dataclass
class ReflectionReport:
    period: str
    total: int = 0
    completed: int = 0
    not_completed: int = 0
    partial: int = 0
    reason_counts: dict[ReasonCode, int] = field(default_factory=dict)
    insights: list[str] = field(default_factory=list)
    suggested_actions: list[SuggestedAction] = field(default_factory=list)
    memories_by_type: dict[str, int] = field(default_factory=dict)
    source: DecisionSource = DecisionSource.FALLBACK

    @property
    def completion_rate(self) -> int:
        """Whole-number percentage of check-ins marked completed."""
        if not self.total:
            return 0
        return round(self.completed / self.total * 100)

    @property
    def top_reason(self) -> tuple[ReasonCode, int] | None:
        if not self.reason_counts:
            return None
        return max(self.reason_counts.items(), key=lambda item: item[1])

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "stats": {
                "total": self.total,
                "completed": self.completed,
                "not_completed": self.not_completed,
                "partial": self.partial,
                "completion_rate": self.completion_rate,
            },
            "reason_counts": {r.value: n for r, n in self.reason_counts.items()},
            "insights": self.insights,
            "suggested_actions": [{"type": a.type, "message": a.message} for a in self.suggested_actions],
            "memories_by_type": self.memories_by_type,
            "source": self.source.value,
        }


def suggested_actions(report: ReflectionReport) -> list[SuggestedAction]:
    actions = []
    counts = report.reason_counts
    if counts.get(ReasonCode.TIME_INSUFFICIENT, 0) > REASON_ACTION_THRESHOLD:
        actions.append(SuggestedAction("split_tasks", "Break large tasks into smaller pieces."))
    if counts.get(ReasonCode.ENERGY_LOW, 0) > REASON_ACTION_THRESHOLD:
        actions.append(SuggestedAction("reschedule", "Schedule important tasks in your high-energy hours."))
    if report.not_completed > report.completed:
        actions.append(
            SuggestedAction("reduce_load", "Plan fewer tasks per day and focus on finishing them.")
        )
    return actions


def analyze_reflection(checkins, period: str = "weekly", memories_by_type: dict | None = None) -> ReflectionReport:
    """Completion statistics, reason breakdown and follow-up actions for a review period.

    ``checkins`` holds CheckIn objects already limited to the period.
    """
    outcomes = Counter(CheckInOutcome(c.outcome) for c in checkins)
    reasons = Counter(ReasonCode(c.reason_code) for c in checkins if c.reason_code)

    report = ReflectionReport(
        period=period,
        total=sum(outcomes.values()),
        completed=outcomes[CheckInOutcome.COMPLETED],
        not_completed=outcomes[CheckInOutcome.NOT_COMPLETED],
        partial=outcomes[CheckInOutcome.PARTIAL],
        reason_counts=dict(reasons.most_common()),
        memories_by_type=dict(memories_by_type or {}),
    )

    rate = report.completion_rate
    if rate >= 80:
        report.insights.append(f"Completion rate {rate}%. You're keeping it up well!")
    elif rate >= 60:
        report.insights.append(f"Completion rate {rate}%. There's room to improve.")
    else:
        report.insights.append(f"Completion rate {rate}%. Consider adjusting your tasks or expectations.")

    top = report.top_reason
    if top:
        reason, count = top
        report.insights.append(
            f'"{REASON_LABELS[reason]}" was the most common reason for missed tasks '
            f"({count} times). Target it directly."
        )

    report.suggested_actions = suggested_actions(report)
    return report
