"""Decision engine: generated decisions with deterministic fallbacks."""

from .balance import BalanceReport, analyze_balance
from .engine import Decision, DecisionEngine
from .reflection import ReflectionReport, analyze_reflection

__all__ = [
    "BalanceReport",
    "Decision",
    "DecisionEngine",
    "ReflectionReport",
    "analyze_balance",
    "analyze_reflection",
]
