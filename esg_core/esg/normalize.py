"""
ESG score normalization.

Providers publish ratings on different scales: most use 0-100 where higher
is better, Sustainalytics publishes a 0-100 *risk* score where lower is
better, and MSCI / S&P style ratings are letter grades. Everything here
converts those into one canonical integer score in [0, 100], higher = better.

This is the single place where out-of-range or missing ratings are
sanitized. Every public function is total: bad input maps to 0 instead
of raising.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Iterable, Optional, Tuple


# Representative midpoints for letter and word grades.
LETTER_GRADE_TO_SCORE: Dict[str, int] = {
    # MSCI (CCC .. AAA)
    "AAA": 95,
    "AA": 85,
    "A": 75,
    "BBB": 65,
    "BB": 55,
    "B": 45,
    "CCC": 35,
    # S&P Global style
    "A+": 90,
    "A-": 70,
    "B+": 60,
    "B-": 40,
    "C+": 30,
    "C-": 20,
    "C": 25,
    "D": 15,
    "F": 5,
    # Word grades
    "EXCELLENT": 95,
    "GOOD": 75,
    "AVERAGE": 55,
    "POOR": 35,
    "VERY_POOR": 15,
}


@dataclass(frozen=True)
class ProviderRange:
    """Native scale of a rating provider."""
    min: float = 0.0
    max: float = 100.0
    lower_is_better: bool = False


PROVIDER_RANGES: Dict[str, ProviderRange] = {
    "FMP": ProviderRange(),
    "SUSTAINALYTICS": ProviderRange(lower_is_better=True),
    "REFINITIV": ProviderRange(),
    "BLOOMBERG": ProviderRange(),
    # MSCI letter grades go through normalize_letter_grade
    "MSCI": ProviderRange(),
    "SP_GLOBAL": ProviderRange(),
}

DEFAULT_PROVIDER = "FMP"

# Leading number of a rating string: "13.5 risk" -> 13.5, "AA" -> no match
_LEADING_NUMBER = re.compile(r"\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")


@dataclass(frozen=True)
class ESGWeights:
    """Pillar weights for the aggregate score. Governance takes the residual."""
    environmental: float = 0.33
    social: float = 0.33
    governance: float = 0.34


DEFAULT_WEIGHTS = ESGWeights()


def _to_number(value: Any) -> Optional[float]:
    """Return value as a float, or None if it is not a usable real number."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    number = float(value)
    if math.isnan(number):
        return None
    return number


def clamp_score(score: Any) -> int:
    """Clamp to [0, 100] and round half up."""
    number = _to_number(score)
    if number is None:
        return 0
    if math.isinf(number):
        return 100 if number > 0 else 0
    return max(0, min(100, math.floor(number + 0.5)))


def _provider_range(provider: Optional[str]) -> Tuple[str, ProviderRange]:
    key = (provider or DEFAULT_PROVIDER).strip().upper()
    if key not in PROVIDER_RANGES:
        key = DEFAULT_PROVIDER
    return key, PROVIDER_RANGES[key]


def normalize_numeric_score(score: Any, provider: str = DEFAULT_PROVIDER) -> int:
    """
    Normalize a numeric provider rating to the canonical 0-100 scale.

    Args:
        score: Raw rating value. None, NaN and non-numbers map to 0.
        provider: Provider id (e.g. "FMP", "SUSTAINALYTICS"). Unknown
            providers are treated like FMP (0-100, higher is better).

    Returns:
        Canonical score in [0, 100]

    Examples:
        >>> normalize_numeric_score(13, "SUSTAINALYTICS")
        87
        >>> normalize_numeric_score(142.7)
        100
    """
    number = _to_number(score)
    if number is None:
        return 0

    _, rng = _provider_range(provider)

    if rng.min != 0 or rng.max != 100:
        span = rng.max - rng.min
        if span <= 0:
            return 0
        number = (number - rng.min) / span * 100

    if rng.lower_is_better:
        # Risk scores: 0 risk is a perfect score
        number = 100 - number

    return clamp_score(number)


def _grade_key(grade: str) -> str:
    return "_".join(grade.upper().split())


def normalize_letter_grade(grade: Any) -> int:
    """
    Convert a letter or word grade ("AA", "B+", "Very Poor") to 0-100.

    Exact matches win; otherwise the first table entry that contains, or is
    contained in, the grade is used. Anything else is 0.
    """
    if not isinstance(grade, str):
        return 0

    key = _grade_key(grade)
    if not key:
        return 0

    score = LETTER_GRADE_TO_SCORE.get(key)
    if score is None:
        # "Very-Poor" style word grades; "A-" already matched above
        key = key.replace("-", "_")
        score = LETTER_GRADE_TO_SCORE.get(key)
    if score is not None:
        return score

    for table_key, value in LETTER_GRADE_TO_SCORE.items():
        if table_key in key or key in table_key:
            return value

    return 0


def normalize_esg_score(score: Any, provider: str = DEFAULT_PROVIDER) -> int:
    """
    Normalize any rating, numeric or letter graded.

    Strings that start with a number ("13", "13.5 risk") are treated as
    numeric ratings for the given provider; other strings are looked up
    as letter grades.
    """
    if score is None:
        return 0

    if isinstance(score, str):
        match = _LEADING_NUMBER.match(score)
        if match is None:
            return normalize_letter_grade(score)
        return normalize_numeric_score(float(match.group(1).replace("Infinity", "inf")), provider)

    return normalize_numeric_score(score, provider)


def _component(score: Any) -> float:
    number = _to_number(score)
    if number is None:
        return 0.0
    return max(0.0, min(100.0, number))


def calculate_weighted_esg_score(scores: Iterable[Tuple[Any, Any]]) -> int:
    """
    Weighted mean of (score, weight) pairs, clamped and rounded.

    Scores are sanitized into [0, 100] before weighting. Unusable weights
    count as 0; a zero total weight yields 0.
    """
    pairs = [(_component(score), _to_number(weight) or 0.0) for score, weight in scores]
    if not pairs:
        return 0

    total_weight = sum(weight for _, weight in pairs)
    if total_weight <= 0 or math.isinf(total_weight):
        return 0

    weighted_sum = sum(score * weight for score, weight in pairs)
    return clamp_score(weighted_sum / total_weight)


def calculate_aggregate_esg_score(
    environmental: Any,
    social: Any,
    governance: Any,
    weights: Optional[ESGWeights] = None,
) -> int:
    """
    Aggregate E, S and G pillar scores into one canonical score.

    Default weights: E=33%, S=33%, G=34%.
    """
    weights = weights or DEFAULT_WEIGHTS
    return calculate_weighted_esg_score([
        (environmental, weights.environmental),
        (social, weights.social),
        (governance, weights.governance),
    ])


def get_esg_rating_label(score: int) -> str:
    """Human label for a canonical score."""
    if score >= 90:
        return "Leader"
    if score >= 80:
        return "Strong"
    if score >= 60:
        return "Average"
    if score >= 40:
        return "Below Average"
    return "Laggard"


def get_esg_color_indicator(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 60:
        return "yellow"
    if score >= 40:
        return "orange"
    return "red"
