"""SPIN discovery completeness scoring for deals."""

from dataclasses import dataclass, field
from typing import Dict, Optional

SPIN_FIELDS = ("spin_situation", "spin_problem", "spin_implication", "spin_need_payoff")

# Length thresholds after trimming: (minimum length, points).
_LENGTH_POINTS = ((150, 25), (50, 15), (1, 5))
_DETAILED_LENGTH = 150

_LABELS = ((75, "Complete"), (50, "Good"), (25, "Partial"))


@dataclass
class SpinScore:
    score: int
    breakdown: Dict[str, int] = field(default_factory=dict)
    completeness: int = 0  # number of fields written out in detail

    @property
    def label(self) -> str:
        return spin_score_label(self.score)


def score_field(text: Optional[str]) -> int:
    """Points for one SPIN field: 0, 5, 15 or 25 by trimmed length."""
    length = len((text or "").strip())
    for minimum, points in _LENGTH_POINTS:
        if length >= minimum:
            return points
    return 0


def calculate_spin_score(
    situation: Optional[str] = None,
    problem: Optional[str] = None,
    implication: Optional[str] = None,
    need_payoff: Optional[str] = None,
) -> SpinScore:
    """Score the four SPIN fields. The total runs from 0 to 100."""
    values = dict(zip(SPIN_FIELDS, (situation, problem, implication, need_payoff)))
    breakdown = {name: score_field(text) for name, text in values.items()}
    completeness = sum(1 for text in values.values() if len((text or "").strip()) >= _DETAILED_LENGTH)
    return SpinScore(score=sum(breakdown.values()), breakdown=breakdown, completeness=completeness)


def spin_score_for_row(row: dict) -> int:
    return calculate_spin_score(*(row.get(name) for name in SPIN_FIELDS)).score


def spin_score_label(score: int) -> str:
    for minimum, label in _LABELS:
        if score >= minimum:
            return label
    return "Needs Work"
