"""Pytest conftest: path setup and shared factories for raw SWGOH documents."""

import sys
from pathlib import Path

import pytest

# Add the repository root to sys.path so `from swgoh_tw_stats import ...` works
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


def make_tw_event(event_id, author_id='P1', timestamp=0, status=None, score=None,
                  zone_id='tw_jakku01_phase01_conflict01', leader=None, author_name=None):
    """Build a raw TW log event. Override any field via kwargs."""
    payload = {}
    if zone_id is not None or score is not None:
        zone_data = {'zoneId': zone_id}
        if score is not None:
            zone_data['activityLogMessage'] = {'param': [{'paramValue': [str(score)]}]}
        payload['zoneData'] = zone_data
    if status is not None or leader is not None:
        war_squad = {'playerId': 'DEF1', 'playerName': 'Defender'}
        if status is not None:
            war_squad['squadStatus'] = status
        if leader is not None:
            war_squad['squad'] = {'cell': [
                {'unitDefId': 'JEDIKNIGHTLUKE:SEVEN_STAR', 'squadUnitType': 'UNITTYPE_DEFAULT', 'cellIndex': 1},
                {'unitDefId': f'{leader}:SEVEN_STAR', 'squadUnitType': 'UNITTYPE_LEADER', 'cellIndex': 0},
            ]}
        payload['warSquad'] = war_squad

    return {
        'id': event_id,
        'authorId': author_id,
        'authorName': author_name or f'Player {author_id}',
        'timestamp': str(timestamp),
        'data': [{'payload': payload}],
    }


def make_stat(map_stat_id, scores):
    """Build a TB currentStat record from {memberId: score}."""
    return {
        'mapStatId': map_stat_id,
        'playerStat': [{'memberId': member_id, 'score': str(score)} for member_id, score in scores.items()],
    }


def make_snapshot(stats, members=('A', 'B', 'C')):
    """Build a TB snapshot document for the given roster ids."""
    return {
        'member': [
            {'playerId': member_id, 'playerName': f'Player {member_id}', 'galacticPower': '5000000'}
            for member_id in members
        ],
        'currentStat': list(stats),
    }


@pytest.fixture
def tw_event():
    return make_tw_event


@pytest.fixture
def tb_stat():
    return make_stat


@pytest.fixture
def tb_snapshot():
    return make_snapshot
