"""Solvability views over a finished mystery"""

from .solvability import beat_coverage, guilt_matrix, BeatCoverage, GuiltRow, RULE_OF_THREE

__all__ = [
    "beat_coverage",
    "guilt_matrix",
    "BeatCoverage",
    "GuiltRow",
    "RULE_OF_THREE",
]
