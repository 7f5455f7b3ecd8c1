"""
ESG module - rating normalization and the curated ESG dataset.

This module exports:
- normalize_esg_score: Normalize any provider rating (numeric or letter) to 0-100
- normalize_numeric_score: Normalize a numeric provider rating
- normalize_letter_grade: Map a letter/word grade to 0-100
- calculate_aggregate_esg_score: Weighted E/S/G aggregate
- get_curated_esg_data: Offline ESG record lookup
"""

from esg_core.esg.normalize import (
    ESGWeights,
    calculate_aggregate_esg_score,
    calculate_weighted_esg_score,
    get_esg_color_indicator,
    get_esg_rating_label,
    normalize_esg_score,
    normalize_letter_grade,
    normalize_numeric_score,
)
from esg_core.esg.curated_data import (
    CuratedESGData,
    get_available_symbols,
    get_curated_esg_data,
)

__all__ = [
    "ESGWeights",
    "calculate_aggregate_esg_score",
    "calculate_weighted_esg_score",
    "get_esg_color_indicator",
    "get_esg_rating_label",
    "normalize_esg_score",
    "normalize_letter_grade",
    "normalize_numeric_score",
    "CuratedESGData",
    "get_available_symbols",
    "get_curated_esg_data",
]
