"""Min-max normalization, weighting and ranking shared by all scorers."""

from typing import Dict, Iterable, List, Mapping, Sequence, Tuple, Union

import pandas as pd

from ..models.data_models import Scale

TOTAL = "total"

# Totals are compared at this precision so float noise does not break ties
RANK_PRECISION = 12


def normalize(values: Sequence[float], scale: Union[Scale, str] = Scale.HIGHER_BETTER) -> List[float]:
    """Map raw values onto [0, 1] relative to their observed range.

    When every value is identical there is no range to speak of and each
    value maps to 1.0.
    """
    if not values:
        return []

    scale = Scale(scale)
    low = min(values)
    high = max(values)

    if high == low:
        return [1.0 for _ in values]

    span = high - low
    if scale == Scale.HIGHER_BETTER:
        return [(v - low) / span for v in values]
    return [(high - v) / span for v in values]


def weighted_score(normalized: float, weight: float) -> float:
    """Apply a criterion weight to a normalized value."""
    return normalized * weight


def rank(totals: Union[Mapping[str, float], Iterable[Tuple[str, float]]]) -> Dict[str, str]:
    """Order ids by total, highest first.

    The sort is stable, so ids with equal totals keep their input order.

    Returns:
        Mapping of ordinal position ("1".."N") to id
    """
    items = list(totals.items()) if isinstance(totals, Mapping) else list(totals)
    ordered = sorted(items, key=lambda item: round(item[1], RANK_PRECISION), reverse=True)
    return {str(position): item_id for position, (item_id, _) in enumerate(ordered, 1)}


def normalized_frame(
    data: Mapping[str, Mapping[str, float]],
    scales: Mapping[str, Union[Scale, str]],
) -> pd.DataFrame:
    """Normalize every criterion column across alternatives.

    Args:
        data: alternative id -> criterion key -> raw value
        scales: criterion key -> direction

    Returns:
        DataFrame indexed by alternative id with one column per criterion
    """
    criteria = list(scales.keys())
    raw = pd.DataFrame.from_dict(
        {alt_id: {c: float(values[c]) for c in criteria} for alt_id, values in data.items()},
        orient="index",
        columns=criteria,
    )

    frame = pd.DataFrame(index=raw.index)
    for criterion in criteria:
        frame[criterion] = normalize(raw[criterion].tolist(), scales[criterion])
    return frame


def score_frame(
    data: Mapping[str, Mapping[str, float]],
    weights: Mapping[str, float],
    scales: Mapping[str, Union[Scale, str]],
) -> pd.DataFrame:
    """Build the weighted score table with a trailing ``total`` column.

    Args:
        data: alternative id -> criterion key -> raw value
        weights: criterion key -> weight
        scales: criterion key -> direction

    Returns:
        DataFrame indexed by alternative id
    """
    frame = normalized_frame(data, scales)
    for criterion in frame.columns:
        frame[criterion] = frame[criterion].map(lambda v, w=weights[criterion]: weighted_score(v, w))
    frame[TOTAL] = frame.sum(axis=1)
    return frame


def frame_to_scores(frame: pd.DataFrame) -> Dict[str, Dict[str, float]]:
    """Convert a score table into plain nested dictionaries."""
    return {
        str(alt_id): {str(col): float(value) for col, value in row.items()}
        for alt_id, row in frame.iterrows()
    }


def rank_frame(frame: pd.DataFrame) -> Dict[str, str]:
    """Rank a score table by its ``total`` column."""
    return rank([(str(alt_id), float(total)) for alt_id, total in frame[TOTAL].items()])
