#!/usr/bin/env python3
"""
SWGOH Zone Names

Turns opaque Territory Battle counter identifiers such as
``strike_encounter_round_1_tb3_mixed_phase01_conflict01`` into readable zone
names (``strike_encounter_round_1_p1_right``) and classifies each counter
into the kind of statistic it carries.
"""

import re
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

# Applied in order, one pass. Later rules rely on earlier rewrites
# (e.g. "phase0" only becomes "p" once the "tb3_mixed_" prefix is gone).
ZONE_ALIASES: List[Tuple[str, str]] = [
    ('tb3_mixed_', ''),
    ('phase0', 'p'),
    ('conflict01', 'right'),
    ('conflict02', 'left'),
    ('conflict03', 'middle'),
    ('strike0', 'm'),
    ('covert0', 'sm'),
]

PHASE_COUNT = 6
PHASES = range(1, PHASE_COUNT + 1)

ZONE_CATEGORIES = ('left', 'middle', 'right', 'right_bonus', 'middle_bonus')

ATTEMPTED_MISSION_PREFIX = 'covert_round_attempted_mission'
COMPLETED_MISSION_PREFIX = 'covert_complete_mission'

_ZONE_PATTERN = re.compile(r'p(\d+)_(right_bonus|middle_bonus|left|right|middle)')
_MISSION_PATTERN = re.compile(r'p(\d+).*_(sm\d+)')
_ROUND_PATTERN = re.compile(r'round_(\d+)')


class StatKind(Enum):
    """Kinds of Territory Battle counters."""
    WAVE = "wave"
    UNIT = "unit"
    SCORE = "score"
    POWER = "power"
    MISSION_ATTEMPT = "mission_attempt"
    MISSION_COMPLETE = "mission_complete"
    UNRECOGNIZED = "unrecognized"


class StatId(NamedTuple):
    """A classified counter identifier."""
    kind: StatKind
    raw_id: str
    name: str
    phase: Optional[int] = None
    category: Optional[str] = None


def zone_id_to_name(zone_id: str) -> str:
    """
    Normalize a raw zone/counter id by applying ZONE_ALIASES in order.

    Each rule replaces every literal occurrence of its pattern in the
    current string. Ids that match no rule are returned unchanged.
    """
    name = zone_id
    for text, alias in ZONE_ALIASES:
        name = name.replace(text, alias)
    return name


def complete_mission_id(attempt_id: str) -> str:
    """Return the id of the completed-mission counter paired with an attempt counter."""
    return attempt_id.replace(ATTEMPTED_MISSION_PREFIX, COMPLETED_MISSION_PREFIX)


def _valid_phase(value: str) -> Optional[int]:
    phase = int(value)
    return phase if phase in PHASES else None


def classify_stat_id(raw_id: str) -> StatId:
    """
    Classify a counter id into a StatKind with its phase and category.

    Args:
        raw_id: mapStatId as found in the snapshot

    Returns:
        StatId; kind is UNRECOGNIZED when the id does not carry a usable
        phase (and zone, where one is required)
    """
    raw_id = raw_id or ''
    name = zone_id_to_name(raw_id)
    unrecognized = StatId(StatKind.UNRECOGNIZED, raw_id, name)

    if raw_id.startswith(ATTEMPTED_MISSION_PREFIX) or raw_id.startswith(COMPLETED_MISSION_PREFIX):
        match = _MISSION_PATTERN.search(name)
        if not match:
            return unrecognized
        phase = _valid_phase(match.group(1))
        if phase is None:
            return unrecognized
        kind = (StatKind.MISSION_ATTEMPT if raw_id.startswith(ATTEMPTED_MISSION_PREFIX)
                else StatKind.MISSION_COMPLETE)
        mission_name = f"p{phase}_{match.group(2)}"
        zone = _ZONE_PATTERN.search(name)
        if zone:
            mission_name = f"{zone.group(0)}_{match.group(2)}"
        return StatId(kind, raw_id, name, phase, mission_name)

    if raw_id.startswith('strike_encounter') or raw_id.startswith('unit_donated'):
        match = _ZONE_PATTERN.search(name)
        if not match:
            return unrecognized
        phase = _valid_phase(match.group(1))
        if phase is None:
            return unrecognized
        kind = StatKind.WAVE if raw_id.startswith('strike_encounter') else StatKind.UNIT
        return StatId(kind, raw_id, name, phase, match.group(2))

    if raw_id.startswith('summary_round') or raw_id.startswith('power_round') \
            or raw_id.startswith('undeployed_power_round'):
        match = _ROUND_PATTERN.search(name)
        if not match:
            return unrecognized
        phase = _valid_phase(match.group(1))
        if phase is None:
            return unrecognized
        if raw_id.startswith('summary_round'):
            return StatId(StatKind.SCORE, raw_id, name, phase)
        category = 'undeployed' if raw_id.startswith('undeployed') else 'deployed'
        return StatId(StatKind.POWER, raw_id, name, phase, category)

    return unrecognized
