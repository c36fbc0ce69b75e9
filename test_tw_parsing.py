"""Territory War log parsing: deduplication, event projection and aggregation."""

import pytest

from swgoh_tw_stats import (
    Decision,
    EventDeduplicator,
    Outcome,
    SquadStatus,
    TWLoadSession,
    aggregate_tw_logs,
    get_defender_lead,
    get_score_from_activity_log,
    parse_tw_results,
    project_event,
)


class TestDeduplicator:

    def test_first_occurrence_is_new(self):
        dedup = EventDeduplicator()
        assert dedup.accept('e1', 100, 'P1') is Decision.NEW
        assert len(dedup) == 1

    def test_repeats_are_duplicates(self):
        dedup = EventDeduplicator()
        decisions = [dedup.accept('e1', 100, 'P1') for _ in range(4)]
        assert decisions.count(Decision.NEW) == 1
        assert decisions.count(Decision.DUPLICATE_IGNORED) == 3
        assert dedup.duplicate_count == 3

    def test_conflicting_identity(self):
        dedup = EventDeduplicator()
        dedup.accept('e1', 100, 'P1')
        assert dedup.accept('e1', 200, 'P1') is Decision.IDENTITY_CONFLICT
        assert dedup.accept('e1', 100, 'P2') is Decision.IDENTITY_CONFLICT
        assert dedup.conflict_count == 2
        assert dedup.duplicate_count == 0


class TestProjection:

    def test_score_from_first_parseable_param(self):
        message = {'param': [{'paramValue': []}, {'paramValue': ['abc']}, {'paramValue': ['12']}]}
        assert get_score_from_activity_log(message) == 12
        assert get_score_from_activity_log({}) is None
        assert get_score_from_activity_log(None) is None

    def test_locked_event(self, tw_event):
        info = project_event(tw_event('e1', status='SQUAD_LOCKED', leader='GLREY'), 1000)
        assert info.timestamp == 1000
        assert info.squad_status is SquadStatus.LOCKED
        assert info.outcome is Outcome.ATTACKING
        assert info.is_attack
        assert info.defender_lead == 'Glrey'
        assert info.zone_id == 'tw_jakku01_phase01_conflict01'

    def test_defeated_event_with_score(self, tw_event):
        info = project_event(tw_event('e1', status='SQUAD_DEFEATED', score=20), 1000)
        assert info.outcome is Outcome.WIN
        assert info.score == 20

    def test_score_above_battle_maximum_ignored(self, tw_event):
        info = project_event(tw_event('e1', status='SQUAD_DEFEATED', score=230), 1000)
        assert info.score is None

    def test_numeric_squad_status(self, tw_event):
        assert project_event(tw_event('e1', status=2), 0).squad_status is SquadStatus.LOCKED
        assert project_event(tw_event('e1', status=3), 0).outcome is Outcome.WIN
        assert project_event(tw_event('e1', status=1), 0).outcome is Outcome.FAIL

    def test_missing_payload_yields_empty_fields(self):
        info = project_event({'id': 'e1', 'data': [{}]}, 5)
        assert info.score is None
        assert info.outcome is None
        assert info.squad_status is None
        assert info.zone_id is None
        assert not info.is_attack

    def test_capital_ship_commander(self):
        war_squad = {'squad': {'cell': [
            {'unitDefId': 'CAPITALEXECUTOR:SEVEN_STAR', 'squadUnitType': 'UNITTYPE_COMMANDER'},
        ]}}
        assert get_defender_lead(war_squad) == 'Executor'

    def test_leader_from_cell_index_without_unit_types(self):
        war_squad = {'squad': {'cell': [
            {'unitDefId': 'HANSOLO:SEVEN_STAR', 'cellIndex': 1},
            {'unitDefId': 'CHIEFCHIRPA:SEVEN_STAR', 'cellIndex': 0},
        ]}}
        assert get_defender_lead(war_squad) == 'Chiefchirpa'
        assert get_defender_lead({}) is None
        assert get_defender_lead({'squad': {'cell': [None, 'x']}}) is None


class TestAggregation:

    def test_counts_per_player(self, tw_event):
        report = aggregate_tw_logs([{'event': [
            tw_event('e1', 'P1', 0, status='SQUAD_LOCKED'),
            tw_event('e2', 'P1', 60000, status='SQUAD_DEFEATED', score=20),
            tw_event('e3', 'P1', 120000, status='SQUAD_LOCKED'),
            tw_event('e4', 'P1', 180000, status='SQUAD_AVAILABLE'),
            tw_event('e5', 'P2', 50000, status='SQUAD_LOCKED'),
        ]}])
        p1 = report.players['P1']
        assert (p1.attempts, p1.wins, p1.losses) == (2, 1, 1)
        assert p1.events_score == 20
        assert len(p1.attacks) == 2
        assert report.players['P2'].attempts == 1
        assert report.players['P2'].attacks[0].outcome is Outcome.UNRESOLVED

    def test_duplicates_across_files_counted_once(self, tw_event):
        event = tw_event('e1', 'P1', 1000, status='SQUAD_DEFEATED', score=18)
        report = aggregate_tw_logs([{'event': [event]}, {'event': [event]}, {'event': [event]}])
        player = report.players['P1']
        assert len(player.events) == 1
        assert player.wins == 1
        assert player.events_score == 18
        assert report.duplicate_count == 2

    def test_conflicting_event_dropped(self, tw_event):
        report = aggregate_tw_logs([{'event': [
            tw_event('e1', 'P1', 1000, status='SQUAD_DEFEATED', score=18),
            tw_event('e1', 'P2', 1000, status='SQUAD_DEFEATED', score=18),
        ]}])
        assert 'P2' not in report.players
        assert report.conflict_count == 1
        assert report.duplicate_count == 0

    def test_file_order_does_not_change_aggregates(self, tw_event):
        first = {'event': [tw_event('e1', 'P1', 0, status='SQUAD_LOCKED')]}
        second = {'event': [
            tw_event('e2', 'P1', 90000, status='SQUAD_DEFEATED', score=15),
            tw_event('e1', 'P1', 0, status='SQUAD_LOCKED'),
        ]}
        forward = aggregate_tw_logs([first, second]).players['P1']
        backward = aggregate_tw_logs([second, first]).players['P1']
        assert forward.to_record() == backward.to_record()

    def test_time_range_from_accepted_events(self, tw_event):
        session = TWLoadSession()
        session.process_log_data({'event': [
            tw_event('e1', 'P1', 5000),
            tw_event('e2', 'P1', 2000),
            tw_event('e1', 'P9', 99999),
        ]})
        assert (session.start_time, session.end_time) == (2000, 5000)

    def test_invalid_timestamp_skipped(self, tw_event):
        session = TWLoadSession()
        event = tw_event('e1', 'P1')
        event['timestamp'] = 'soon'
        session.process_log_data({'event': [event]})
        assert session.players == {}
        assert session.invalid_count == 1

    def test_document_without_events(self):
        session = TWLoadSession()
        assert session.process_log_data({'data': []}) is False

    def test_non_object_documents_rejected(self):
        session = TWLoadSession()
        assert session.process_log_data([1, 2]) is False
        assert session.process_log_data(None) is False
        assert session.process_log_data({'event': 'e1'}) is False
        assert session.players == {}

    def test_malformed_event_entries_skipped(self, tw_event):
        session = TWLoadSession()
        assert session.process_log_data({'event': [
            None,
            5,
            ['e1'],
            tw_event('e2', 'P1', 1000, status='SQUAD_DEFEATED', score=15),
        ]})
        assert list(session.players) == ['P1']
        assert session.invalid_count == 3
        assert session.players['P1'].events_score == 15

    def test_malformed_payloads_project_to_empty_fields(self):
        event = {'id': 'e1', 'data': [
            None,
            {'payload': 'oops'},
            {'payload': {'zoneData': [], 'warSquad': 7}},
            {'payload': {'zoneData': {'activityLogMessage': {'param': [None, {'paramValue': 'x'}]}}}},
        ]}
        info = project_event(event, 5)
        assert info.score is None
        assert info.outcome is None
        assert not info.is_attack
        assert project_event({'id': 'e2', 'data': 42}, 5).outcome is None

    def test_authoritative_total_preferred(self, tw_event):
        report = aggregate_tw_logs([{'event': [
            tw_event('e1', 'P1', 0, status='SQUAD_DEFEATED', score=20),
            tw_event('e2', 'P2', 0, status='SQUAD_DEFEATED', score=10),
        ]}], results={'P2': 150})
        assert report.players['P1'].total == 20
        assert report.players['P1'].total_attack_score is None
        assert report.players['P2'].total == 150
        assert report.players['P2'].events_score == 10

    def test_summary(self, tw_event):
        report = aggregate_tw_logs([{'event': [
            tw_event('e1', 'P1', 0, status='SQUAD_DEFEATED', score=20),
            tw_event('e2', 'P2', 0, status='SQUAD_DEFEATED', score=10),
        ]}])
        summary = report.summary()
        assert summary['total_players'] == 2
        assert summary['total_events'] == 2
        assert summary['total_score'] == 30
        assert summary['avg_score'] == pytest.approx(15.0)
        assert summary['max_player_score'] == 20


class TestResults:

    def test_reads_attack_stars(self):
        data = {'currentStat': [
            {'mapStatId': 'defense_stars', 'playerStat': [{'memberId': 'P1', 'score': '5'}]},
            {'mapStatId': 'attack_stars', 'playerStat': [
                {'memberId': 'P1', 'score': '120'},
                {'memberId': 'P2', 'score': 'x'},
                {'score': '3'},
            ]},
        ]}
        assert parse_tw_results(data) == {'P1': 120}

    def test_missing_attack_stars(self):
        assert parse_tw_results({'currentStat': []}) == {}
        assert parse_tw_results({}) == {}

    def test_malformed_results(self):
        assert parse_tw_results([1, 2]) == {}
        assert parse_tw_results({'currentStat': 'attack_stars'}) == {}
        assert parse_tw_results({'currentStat': [None, {'mapStatId': 'attack_stars', 'playerStat': [3, {'memberId': 'P1', 'score': 9}]}]}) == {'P1': 9}
