#!/usr/bin/env python3
"""
SWGOH Ranking

Turns per-player aggregates from either pipeline into an ordered,
ranked list of records for display.
"""

import locale
import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_SORT_KEY = 'total'


def _text_sort_key(column: pd.Series) -> pd.Series:
    return column.fillna('').astype(str).map(lambda value: locale.strxfrm(value.casefold()))


def finalize(aggregates: Dict[str, Any], active_phases: Iterable[int] = (),
             sort_key: str = DEFAULT_SORT_KEY, ascending: Optional[bool] = None) -> List[Dict[str, Any]]:
    """
    Normalize, sort and rank player aggregates.

    Each aggregate must provide to_record() with at least 'total'. The
    normalized total divides it by the number of active phases, floored at
    one, so a guild with no active phases keeps its raw totals.

    Args:
        aggregates: player id -> aggregate (PlayerAggregate or PlayerEventAggregate)
        active_phases: Guild-wide active phases
        sort_key: Record field to sort by
        ascending: Sort direction; defaults to descending for numeric keys
                   and ascending for text keys

    Returns:
        List of record dictionaries with 'normalized_total' and 1-based 'rank'

    Raises:
        KeyError: If sort_key is not a record field
    """
    records = [aggregate.to_record() for aggregate in aggregates.values()]
    if not records:
        return []

    df = pd.DataFrame(records)
    df['normalized_total'] = df['total'] / max(len(set(active_phases)), 1)

    if sort_key not in df.columns:
        raise KeyError(f"Unknown sort key: {sort_key}")

    numeric = pd.api.types.is_numeric_dtype(df[sort_key]) and not pd.api.types.is_bool_dtype(df[sort_key])
    if ascending is None:
        ascending = not numeric

    # mergesort is stable: exact ties keep their incoming order
    df = df.sort_values(
        sort_key,
        ascending=ascending,
        kind='mergesort',
        na_position='last',
        key=None if numeric else _text_sort_key,
    )
    # Records are copied from to_record() so values keep their original types
    ranked = []
    for rank, (index, normalized) in enumerate(df['normalized_total'].items(), 1):
        record = dict(records[index])
        record['normalized_total'] = float(normalized)
        record['rank'] = rank
        ranked.append(record)

    logger.debug(f"Ranked {len(ranked)} players by {sort_key} ({'asc' if ascending else 'desc'})")
    return ranked
