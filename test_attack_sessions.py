"""Attack session reconstruction from a player's event sequence."""

from swgoh_tw_stats import (
    UNRESOLVED_ATTACK_MS,
    EventInfo,
    Outcome,
    SquadStatus,
    reconstruct_attacks,
)


def lock(ts, zone=None, lead=None):
    return EventInfo(ts, outcome=Outcome.ATTACKING, squad_status=SquadStatus.LOCKED,
                     zone_id=zone, defender_lead=lead, is_attack=True)


def defeated(ts, score=None, zone=None, lead=None):
    return EventInfo(ts, score=score, outcome=Outcome.WIN, squad_status=SquadStatus.DEFEATED,
                     zone_id=zone, defender_lead=lead, is_attack=True)


def held(ts, zone=None):
    return EventInfo(ts, outcome=Outcome.FAIL, squad_status=SquadStatus.AVAILABLE, zone_id=zone, is_attack=True)


class TestPairing:

    def test_lock_then_defeat(self):
        attacks = reconstruct_attacks([lock(0), defeated(120000, score=15)])
        assert len(attacks) == 1
        attack = attacks[0]
        assert (attack.start_time, attack.end_time) == (0, 120000)
        assert attack.outcome is Outcome.WIN
        assert attack.score == 15

    def test_lock_then_hold(self):
        attacks = reconstruct_attacks([lock(0), held(30000)])
        assert attacks[0].outcome is Outcome.FAIL
        assert attacks[0].duration_ms == 30000

    def test_unsorted_input(self):
        attacks = reconstruct_attacks([defeated(5000, score=10), lock(1000)])
        assert len(attacks) == 1
        assert attacks[0].start_time == 1000

    def test_zone_and_lead_prefer_terminal_event(self):
        attacks = reconstruct_attacks([
            lock(0, zone='z-lock', lead='Glrey'),
            defeated(1000, zone='z-end'),
        ])
        assert attacks[0].zone_id == 'z-end'
        assert attacks[0].defender_lead == 'Glrey'


class TestUnresolved:

    def test_single_lock(self):
        attacks = reconstruct_attacks([lock(0)], 'Player P1')
        assert len(attacks) == 1
        attack = attacks[0]
        assert (attack.start_time, attack.end_time) == (0, 180000)
        assert attack.end_time - attack.start_time == UNRESOLVED_ATTACK_MS
        assert attack.outcome is Outcome.UNRESOLVED
        assert attack.score is None

    def test_lock_followed_by_non_terminal_event(self):
        events = [lock(0), EventInfo(1000), defeated(2000)]
        attacks = reconstruct_attacks(events)
        assert [a.outcome for a in attacks] == [Outcome.UNRESOLVED]

    def test_consecutive_locks_overlap(self):
        attacks = reconstruct_attacks([lock(0), lock(60000), defeated(90000, score=12)])
        assert len(attacks) == 2
        first, second = attacks
        assert first.outcome is Outcome.UNRESOLVED
        assert first.end_time == 180000
        assert (second.start_time, second.end_time) == (60000, 90000)
        assert first.end_time > second.start_time


class TestIgnored:

    def test_terminal_without_lock(self):
        assert reconstruct_attacks([defeated(0, score=20), held(1000)]) == []

    def test_no_events(self):
        assert reconstruct_attacks([]) == []

    def test_end_never_before_start(self):
        events = [lock(0), defeated(0), lock(5000), lock(5000), held(7000)]
        for attack in reconstruct_attacks(events):
            assert attack.end_time >= attack.start_time

    def test_ties_keep_arrival_order(self):
        # A terminal event sharing the lock's timestamp only pairs if it arrived later
        assert reconstruct_attacks([lock(0), defeated(0)])[0].outcome is Outcome.WIN
        assert reconstruct_attacks([defeated(0), lock(0)])[0].outcome is Outcome.UNRESOLVED
