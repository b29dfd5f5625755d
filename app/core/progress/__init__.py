"""
Progress engine: access resolution, stats, unlocking, daily attempts and mentor test attempts.
"""
from .access_resolver import AccessResolver
from .stats import StatsRecalculator
from .unlock import UnlockAdvancer
from .daily_attempt import DailyAttemptTracker
from .assessment import AssessmentTracker

__all__ = [
    "AccessResolver",
    "StatsRecalculator",
    "UnlockAdvancer",
    "DailyAttemptTracker",
    "AssessmentTracker",
]
