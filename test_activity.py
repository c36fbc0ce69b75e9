"""Activity histogram over the Territory War attack window."""

from swgoh_activity import (
    ATTACK_PHASE_MS,
    BUCKET_WIDTH_MS,
    HOUR_MS,
    build_activity,
    compute_window,
    floor_to_hour,
)
from swgoh_tw_stats import AttackSession, Outcome

# 2025-07-06 12:34:56 UTC
END = 1751805296000
WINDOW_START = floor_to_hour(END) - ATTACK_PHASE_MS


def session(start, end):
    return AttackSession(start_time=start, end_time=end, outcome=Outcome.WIN)


class TestWindow:

    def test_floor_to_hour(self):
        assert floor_to_hour(END) % HOUR_MS == 0
        assert END - floor_to_hour(END) < HOUR_MS

    def test_lookback_from_end(self):
        start, end = compute_window(END - 1000, END)
        assert start == WINDOW_START
        assert end == END

    def test_start_only(self):
        start, end = compute_window(END, None)
        assert start == floor_to_hour(END)
        assert end is None

    def test_nothing_known(self):
        assert compute_window(None, None) == (None, None)


class TestBuckets:

    def test_bucket_count_covers_window(self):
        histogram = build_activity([], END - 1000, END)
        assert len(histogram.counts) == -(-(END - WINDOW_START) // BUCKET_WIDTH_MS)
        assert histogram.window_start == WINDOW_START

    def test_session_increments_overlapping_buckets(self):
        start = WINDOW_START + 2 * BUCKET_WIDTH_MS + 1000
        histogram = build_activity([session(start, start + BUCKET_WIDTH_MS)], start, END)
        assert histogram.counts[2] == 1
        assert histogram.counts[3] == 1
        assert sum(histogram.counts) == 2
        assert histogram.max_activity == 1

    def test_concurrent_sessions(self):
        start = WINDOW_START + 10 * BUCKET_WIDTH_MS
        histogram = build_activity([
            session(start, start + 60000),
            session(start + 30000, start + 90000),
        ], start, END)
        assert histogram.counts[10] == 2

    def test_sessions_outside_window_clipped(self):
        histogram = build_activity([
            session(WINDOW_START - 3 * HOUR_MS, WINDOW_START - 2 * HOUR_MS),
            session(END + HOUR_MS, END + 2 * HOUR_MS),
        ], WINDOW_START, END)
        assert not histogram.has_activity
        assert set(histogram.counts) == {0}

    def test_no_sessions_is_all_zero(self):
        histogram = build_activity([], END - 1000, END)
        assert histogram.max_activity == 0
        assert histogram.counts

    def test_no_timestamps(self):
        histogram = build_activity([], None, None)
        assert histogram.counts == []
        assert histogram.window_start is None

    def test_open_ended_window_uses_last_session(self):
        start = floor_to_hour(END)
        histogram = build_activity([session(start, start + 2 * BUCKET_WIDTH_MS)], start + 10, None)
        assert histogram.window_start == start
        assert histogram.counts == [1, 1]

    def test_frame(self):
        start = WINDOW_START + BUCKET_WIDTH_MS
        histogram = build_activity([session(start, start + 1000)], start, END)
        frame = histogram.to_frame()
        assert len(frame) == len(histogram.counts)
        assert frame['active'].iloc[1] == 1
        assert frame['start'].iloc[0].value // 10**6 == WINDOW_START
