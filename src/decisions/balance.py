"""Life-wheel balance analysis: purely deterministic, no generation tier."""

from dataclasses import dataclass, field

from shared_types import DecisionSource, LifeDimension

DIMENSION_LABELS = {
    LifeDimension.HEALTH: "Health",
    LifeDimension.CAREER: "Career",
    LifeDimension.FAMILY: "Family",
    LifeDimension.FINANCE: "Finance",
    LifeDimension.GROWTH: "Personal growth",
    LifeDimension.SOCIAL: "Social",
    LifeDimension.HOBBY: "Hobbies",
    LifeDimension.SELF_REALIZATION: "Self-realization",
}

BALANCED_SUGGESTION = "Your goals are spread evenly. Keep it up!"


@dataclass
class BalanceReport:
    candidate_dimension: LifeDimension
    distribution: dict[LifeDimension, int]
    max_count: int
    min_count: int
    average: float
    neglected: list[LifeDimension] = field(default_factory=list)
    over_focused: list[LifeDimension] = field(default_factory=list)
    is_balanced: bool = True
    suggestion: str = BALANCED_SUGGESTION
    source: DecisionSource = DecisionSource.FALLBACK

    def to_dict(self) -> dict:
        return {
            "candidate_dimension": self.candidate_dimension.value,
            "distribution": {d.value: n for d, n in self.distribution.items()},
            "max": self.max_count,
            "min": self.min_count,
            "average": self.average,
            "neglected": [d.value for d in self.neglected],
            "over_focused": [d.value for d in self.over_focused],
            "is_balanced": self.is_balanced,
            "suggestion": self.suggestion,
            "source": self.source.value,
        }


def _dimension_of(goal) -> str | None:
    if isinstance(goal, (str, LifeDimension)):
        return goal
    if isinstance(goal, dict):
        return goal.get("dimension") or goal.get("life_wheel_dimension")
    return getattr(goal, "dimension", None)


def analyze_balance(goals, candidate_dimension: LifeDimension | str) -> BalanceReport:
    """Distribution of goals over the eight dimensions, counting the candidate goal.

    ``goals`` may hold Goal objects, dicts or bare dimension values. A goal
    without a dimension counts as growth; unknown dimensions are ignored.
    """
    candidate = LifeDimension(candidate_dimension)
    counts = {d: 0 for d in LifeDimension}
    for goal in goals:
        raw = _dimension_of(goal) or LifeDimension.GROWTH
        try:
            counts[LifeDimension(raw)] += 1
        except ValueError:
            continue
    counts[candidate] += 1

    values = list(counts.values())
    max_count, min_count = max(values), min(values)
    average = sum(values) / len(values)
    neglected = [d for d, n in counts.items() if n == 0]
    over_focused = [d for d, n in counts.items() if n >= 2 * average]
    is_balanced = (max_count - min_count) <= 2 and len(neglected) <= 2

    suggestion = ""
    if not is_balanced:
        if neglected:
            names = " and ".join(DIMENSION_LABELS[d] for d in neglected[:2])
            suggestion = f"Consider giving some attention to {names} to keep your life in balance."
        if over_focused:
            names = ", ".join(DIMENSION_LABELS[d] for d in over_focused)
            suggestion += f" {names} already has many goals; watch out for over-investing."
    return BalanceReport(
        candidate_dimension=candidate,
        distribution=counts,
        max_count=max_count,
        min_count=min_count,
        average=average,
        neglected=neglected,
        over_focused=over_focused,
        is_balanced=is_balanced,
        suggestion=suggestion.strip() or BALANCED_SUGGESTION,
    )
