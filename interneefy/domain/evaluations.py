from __future__ import annotations

SCORE_MIN = 1
SCORE_MAX = 10


def overall_score(technical: float, communication: float, teamwork: float) -> float:
    return (technical + communication + teamwork) / 3


def format_score(value: float) -> str:
    return f"{value:.1f}"


def score_in_range(value: int) -> bool:
    return SCORE_MIN <= value <= SCORE_MAX
