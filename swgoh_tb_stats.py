#!/usr/bin/env python3
"""
SWGOH Territory Battle Stats

Aggregates a Territory Battle snapshot (guild roster plus cumulative
per-player counters) into one record per player with a breakdown per phase:
waves cleared per zone, units donated, score, deployed power and special
mission outcomes.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from swgoh_parsing import parse_int
from swgoh_zone_names import (
    PHASES,
    ZONE_CATEGORIES,
    StatKind,
    classify_stat_id,
    complete_mission_id,
)

logger = logging.getLogger(__name__)


class MissionStatus(Enum):
    """Special mission outcome for one player."""
    WIN = "win"
    FAIL = "fail"
    UNATTEMPTED = "unattempted"


def _zone_counters() -> Dict[str, int]:
    return {category: 0 for category in ZONE_CATEGORIES}


@dataclass
class PhaseAggregate:
    """Counters for one player in one phase."""
    waves: Dict[str, int] = field(default_factory=_zone_counters)
    units_donated: Dict[str, int] = field(default_factory=_zone_counters)
    score: int = 0
    power_deployed: int = 0
    power_undeployed: int = 0
    mission: MissionStatus = MissionStatus.UNATTEMPTED

    @property
    def total(self) -> int:
        # Recomputed on every read so it always matches the wave counters
        return sum(self.waves.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'waves': dict(self.waves),
            'units_donated': dict(self.units_donated),
            'score': self.score,
            'power_deployed': self.power_deployed,
            'power_undeployed': self.power_undeployed,
            'mission': self.mission.value,
            'total': self.total,
        }


@dataclass
class PlayerAggregate:
    """Territory Battle totals for one roster member."""
    player_id: str
    name: str
    galactic_power: Optional[int] = None
    phases: Dict[int, PhaseAggregate] = field(
        default_factory=lambda: {phase: PhaseAggregate() for phase in PHASES})
    missions: Dict[str, MissionStatus] = field(default_factory=dict)
    total_waves: int = 0
    normalized_total: float = 0.0

    @property
    def total(self) -> int:
        return self.total_waves

    def to_record(self) -> Dict[str, Any]:
        """Flat record used for ranking and output."""
        return {
            'player_id': self.player_id,
            'name': self.name,
            'galactic_power': self.galactic_power,
            'total': self.total_waves,
            'units_donated': sum(sum(p.units_donated.values()) for p in self.phases.values()),
            'score': sum(p.score for p in self.phases.values()),
            'missions_won': sum(1 for s in self.missions.values() if s is MissionStatus.WIN),
            'phases': {phase: agg.to_dict() for phase, agg in self.phases.items()},
            'missions': {name: status.value for name, status in self.missions.items()},
        }


@dataclass
class PhaseTotals:
    """Guild-wide sums for one phase (the dashboard's totals row)."""
    waves: Dict[str, int] = field(default_factory=_zone_counters)
    total: int = 0
    wins: int = 0
    fails: int = 0


@dataclass
class TBSnapshot:
    """Result of aggregating one Territory Battle snapshot."""
    players: Dict[str, PlayerAggregate] = field(default_factory=dict)
    active_phases: Set[int] = field(default_factory=set)
    phase_totals: Dict[int, PhaseTotals] = field(default_factory=dict)
    total_waves: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def average_per_phase(self) -> float:
        """Average waves per player per active phase."""
        divisor = max(len(self.active_phases), 1) * max(len(self.players), 1)
        return self.total_waves / divisor


def get_roster(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Index the snapshot's member list by player id.

    Args:
        data: Snapshot document

    Returns:
        Dictionary of playerId -> member entry (empty if no roster)
    """
    players = {}
    members = data.get('member') if isinstance(data, dict) else None
    if isinstance(members, list):
        for member in members:
            if not isinstance(member, dict):
                continue
            player_id = member.get('playerId')
            if player_id and isinstance(player_id, str):
                players[player_id] = member
    return players


def _player_stats(stat_record: Dict[str, Any]) -> List[Dict[str, Any]]:
    entries = stat_record.get('playerStat')
    if not isinstance(entries, list):
        return []
    return [p for p in entries if isinstance(p, dict) and isinstance(p.get('memberId'), str)]


def _player_ids(stat_record: Dict[str, Any]) -> Set[str]:
    return {p.get('memberId') for p in _player_stats(stat_record)}


def _apply_counter(phase_agg: PhaseAggregate, kind: StatKind, category: Optional[str], value: int):
    if kind is StatKind.WAVE:
        phase_agg.waves[category] = value
    elif kind is StatKind.UNIT:
        phase_agg.units_donated[category] = value
    elif kind is StatKind.SCORE:
        phase_agg.score = value
    elif kind is StatKind.POWER:
        if category == 'undeployed':
            phase_agg.power_undeployed = value
        else:
            phase_agg.power_deployed = value


def _apply_missions(players: Dict[str, PlayerAggregate], stat_records: List[Dict[str, Any]], classified):
    """Mark special mission outcomes from attempted/completed counter pairs."""
    by_id = {}
    for record, stat_id in zip(stat_records, classified):
        if stat_id.kind is StatKind.MISSION_COMPLETE:
            by_id[stat_id.raw_id] = record

    for record, stat_id in zip(stat_records, classified):
        if stat_id.kind is not StatKind.MISSION_ATTEMPT:
            continue

        completed = by_id.get(complete_mission_id(stat_id.raw_id))
        if completed is None:
            logger.debug(f"No completed-mission counter for {stat_id.raw_id}, skipping")
            continue

        attempted_ids = _player_ids(record)
        completed_ids = _player_ids(completed)

        for player_id, player in players.items():
            if player_id in completed_ids:
                status = MissionStatus.WIN
            elif player_id in attempted_ids:
                status = MissionStatus.FAIL
            else:
                continue
            player.phases[stat_id.phase].mission = status
            player.missions[stat_id.category] = status


def aggregate_snapshot(data: Dict[str, Any]) -> TBSnapshot:
    """
    Aggregate a Territory Battle snapshot into per-player phase records.

    Args:
        data: Snapshot document with 'member' and 'currentStat' sections

    Returns:
        TBSnapshot. If 'currentStat' is missing the players map is empty and
        the condition is listed in warnings.
    """
    snapshot = TBSnapshot()
    if not isinstance(data, dict):
        message = f"Snapshot is a {type(data).__name__}, not an object"
        logger.error(message)
        snapshot.warnings.append(message)
        return snapshot

    roster = get_roster(data)

    players = {}
    for player_id, member in roster.items():
        players[player_id] = PlayerAggregate(
            player_id=player_id,
            name=member.get('playerName', ''),
            galactic_power=parse_int(member.get('galacticPower')),
        )

    stat_records = data.get('currentStat')
    if not isinstance(stat_records, list):
        message = "Snapshot has no currentStat section"
        logger.error(message)
        snapshot.warnings.append(message)
        return snapshot

    stat_records = [record for record in stat_records if isinstance(record, dict)]
    classified = [classify_stat_id(str(record.get('mapStatId') or '')) for record in stat_records]

    for record, stat_id in zip(stat_records, classified):
        if stat_id.kind not in (StatKind.WAVE, StatKind.UNIT, StatKind.SCORE, StatKind.POWER):
            continue
        for player_stat in _player_stats(record):
            player = players.get(player_stat.get('memberId'))
            if player is None:
                continue
            value = parse_int(player_stat.get('score')) or 0
            _apply_counter(player.phases[stat_id.phase], stat_id.kind, stat_id.category, value)

    _apply_missions(players, stat_records, classified)

    snapshot.players = players
    _finalize(snapshot)

    logger.info(f"Aggregated {len(stat_records)} counters for {len(players)} players, "
                f"active phases: {sorted(snapshot.active_phases)}")
    return snapshot


def _finalize(snapshot: TBSnapshot):
    """Compute player totals, guild totals and the active phase set."""
    phase_totals = {phase: PhaseTotals() for phase in PHASES}

    for player in snapshot.players.values():
        grand_total = 0
        for phase, phase_agg in player.phases.items():
            totals = phase_totals[phase]
            for category, value in phase_agg.waves.items():
                totals.waves[category] += value
            totals.total += phase_agg.total
            if phase_agg.mission is MissionStatus.WIN:
                totals.wins += 1
            elif phase_agg.mission is MissionStatus.FAIL:
                totals.fails += 1
            grand_total += phase_agg.total
        player.total_waves = grand_total
        snapshot.total_waves += grand_total

    snapshot.phase_totals = phase_totals
    snapshot.active_phases = {phase for phase, totals in phase_totals.items() if totals.total > 0}

    divisor = max(len(snapshot.active_phases), 1)
    for player in snapshot.players.values():
        player.normalized_total = player.total_waves / divisor
