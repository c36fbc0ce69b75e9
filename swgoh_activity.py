#!/usr/bin/env python3
"""
SWGOH Activity Histogram

Counts how many attacks were in progress during each fixed-width interval
of the Territory War attack phase.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

HOUR_MS = 3600 * 1000
BUCKET_WIDTH_MS = 5 * 60 * 1000

# The TW attack phase lasts 24 hours. The last event can land slightly
# before or after the real end, so the window starts a full 24 hours before
# the hour of the last event.
ATTACK_PHASE_MS = 24 * HOUR_MS


@dataclass
class ActivityHistogram:
    """Active attack counts per bucket over [window_start, window_end)."""
    counts: List[int] = field(default_factory=list)
    window_start: Optional[int] = None
    window_end: Optional[int] = None
    bucket_width: int = BUCKET_WIDTH_MS

    @property
    def max_activity(self) -> int:
        return max(self.counts, default=0)

    @property
    def has_activity(self) -> bool:
        return self.max_activity > 0

    def bucket_bounds(self, index: int) -> Tuple[int, int]:
        start = self.window_start + index * self.bucket_width
        return start, start + self.bucket_width

    def to_frame(self) -> pd.DataFrame:
        """Buckets as a DataFrame with UTC start/end timestamps."""
        starts = [self.window_start + i * self.bucket_width for i in range(len(self.counts))]
        return pd.DataFrame({
            'start': pd.to_datetime(starts, unit='ms', utc=True),
            'end': pd.to_datetime([s + self.bucket_width for s in starts], unit='ms', utc=True),
            'active': self.counts,
        })


def floor_to_hour(timestamp_ms: int) -> int:
    """Round a millisecond timestamp down to the start of its (UTC) hour."""
    return timestamp_ms - timestamp_ms % HOUR_MS


def compute_window(start: Optional[int], end: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
    """
    Compute the display window for the attack phase.

    With a known end time the window is the 24 hours leading up to the hour
    of the last event, ending at the last event. Without one, the start is
    rounded down to the hour and the end stays unknown.

    The end is the raw last-event time, not rounded to the hour, so attacks
    in the final partial hour still fall inside the window.
    """
    if end is not None:
        return floor_to_hour(end) - ATTACK_PHASE_MS, end
    if start is not None:
        return floor_to_hour(start), None
    return None, None


def build_activity(sessions: Iterable, window_start: Optional[int], window_end: Optional[int],
                   bucket_width: int = BUCKET_WIDTH_MS) -> ActivityHistogram:
    """
    Build the activity histogram for a set of attack sessions.

    Every bucket overlapping [session.start_time, session.end_time) is
    incremented. Sessions outside the window are clipped.

    Args:
        sessions: Objects with start_time and end_time in milliseconds
        window_start: Earliest observed event timestamp
        window_end: Latest observed event timestamp
        bucket_width: Bucket width in milliseconds

    Returns:
        ActivityHistogram; counts are all zero when nothing falls in range
    """
    sessions = list(sessions)
    start, end = compute_window(window_start, window_end)

    if start is None:
        return ActivityHistogram(bucket_width=bucket_width)
    if end is None:
        end = max((s.end_time for s in sessions), default=start)

    num_buckets = max(math.ceil((end - start) / bucket_width), 0)
    counts = [0] * num_buckets

    for session in sessions:
        first = (session.start_time - start) // bucket_width
        last = math.ceil((session.end_time - start) / bucket_width)
        for i in range(max(first, 0), min(last, num_buckets)):
            counts[i] += 1

    histogram = ActivityHistogram(counts=counts, window_start=start, window_end=end, bucket_width=bucket_width)
    if not histogram.has_activity:
        logger.info("No attack activity in the display window")
    return histogram
