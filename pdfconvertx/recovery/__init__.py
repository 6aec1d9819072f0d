"""Error classification and recovery."""

from .classifier import build_conversion_error, classify
from .engine import ErrorStatistics, RecoveryAction, RecoveryEngine

__all__ = ["ErrorStatistics", "RecoveryAction", "RecoveryEngine", "build_conversion_error", "classify"]
