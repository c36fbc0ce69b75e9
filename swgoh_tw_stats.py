#!/usr/bin/env python3
"""
SWGOH Territory War Stats

Processes Territory War event logs. Each log document holds a list of
timestamped events per author; the same event can appear in several
documents. Events are deduplicated by id, projected into EventInfo records,
and each player's lock/resolution events are paired into attack sessions.

IMPORTANT: authorId/authorName is the ATTACKER. warSquad.playerId is the
DEFENDER whose squad was locked, defeated or held.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from swgoh_activity import ActivityHistogram, BUCKET_WIDTH_MS, build_activity
from swgoh_parsing import parse_int

logger = logging.getLogger(__name__)

MAX_BATTLE_SCORE = 22

# Display duration of a lock with no resolution event
UNRESOLVED_ATTACK_MS = 3 * 60 * 1000

RESULTS_STAT_ID = 'attack_stars'


class SquadStatus(Enum):
    """Defending squad state reported by an event."""
    AVAILABLE = "SQUAD_AVAILABLE"
    LOCKED = "SQUAD_LOCKED"
    DEFEATED = "SQUAD_DEFEATED"

    @classmethod
    def parse(cls, value: Any) -> Optional['SquadStatus']:
        """Parse the string enum form or the numeric form (1, 2, 3) sent without enums."""
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        return _NUMERIC_SQUAD_STATUS.get(parse_int(value))

    @property
    def is_terminal(self) -> bool:
        return self in (SquadStatus.DEFEATED, SquadStatus.AVAILABLE)


# squadStatus: 1 = defense held, 2 = locked by an attacker, 3 = defeated
_NUMERIC_SQUAD_STATUS = {
    1: SquadStatus.AVAILABLE,
    2: SquadStatus.LOCKED,
    3: SquadStatus.DEFEATED,
}


class Outcome(Enum):
    """Outcome of an event or attack from the attacker's point of view."""
    WIN = "win"
    FAIL = "fail"
    ATTACKING = "attacking"
    UNRESOLVED = "unresolved"


_STATUS_OUTCOME = {
    SquadStatus.DEFEATED: Outcome.WIN,
    SquadStatus.AVAILABLE: Outcome.FAIL,
    SquadStatus.LOCKED: Outcome.ATTACKING,
}


class Decision(Enum):
    """Deduplicator verdict for an incoming event."""
    NEW = "new"
    DUPLICATE_IGNORED = "duplicate_ignored"
    IDENTITY_CONFLICT = "identity_conflict"


@dataclass
class EventInfo:
    """Projection of one accepted raw event."""
    timestamp: int
    score: Optional[int] = None
    outcome: Optional[Outcome] = None
    squad_status: Optional[SquadStatus] = None
    defender_lead: Optional[str] = None
    zone_id: Optional[str] = None
    is_attack: bool = False


@dataclass
class AttackSession:
    """One reconstructed attack: a lock event and the event that resolved it."""
    start_time: int
    end_time: int
    outcome: Outcome
    score: Optional[int] = None
    zone_id: Optional[str] = None
    defender_lead: Optional[str] = None

    @property
    def duration_ms(self) -> int:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_time': self.start_time,
            'end_time': self.end_time,
            'outcome': self.outcome.value,
            'score': self.score,
            'zone_id': self.zone_id,
            'defender_lead': self.defender_lead,
        }


class EventDeduplicator:
    """
    Tracks event ids seen during one load.

    The first occurrence of an id records its (timestamp, author) key. A
    later event with the same id and key is a duplicate; a later event with
    the same id and a different key is an identity conflict.
    """

    def __init__(self):
        self._seen: Dict[str, Tuple[Optional[int], Optional[str]]] = {}
        self.duplicate_count = 0
        self.conflict_count = 0

    def accept(self, event_id: str, timestamp: Optional[int], author_id: Optional[str]) -> Decision:
        key = (timestamp, author_id)
        existing = self._seen.get(event_id)

        if existing is None:
            self._seen[event_id] = key
            return Decision.NEW

        if existing != key:
            self.conflict_count += 1
            logger.error(f"Events with the same id {event_id} have different timestamp or author: "
                         f"{existing} vs {key}")
            return Decision.IDENTITY_CONFLICT

        self.duplicate_count += 1
        return Decision.DUPLICATE_IGNORED

    def __len__(self) -> int:
        return len(self._seen)


def get_score_from_activity_log(message: Optional[Dict[str, Any]]) -> Optional[int]:
    """
    Extract the battle score from an activityLogMessage.

    Returns the first paramValue that parses as an integer, or None.
    """
    params = message.get('param') if isinstance(message, dict) else None
    if not isinstance(params, list):
        return None

    for param in params:
        values = param.get('paramValue') if isinstance(param, dict) else None
        if not isinstance(values, list) or not values:
            continue
        score = parse_int(values[0])
        if score is not None:
            return score

    return None


def get_defender_lead(war_squad: Dict[str, Any]) -> Optional[str]:
    """
    Get the display name of the defending squad's leader (or fleet commander).

    "CAPITALEXECUTOR:SEVEN_STAR" -> "Executor", "GLREY:SEVEN_STAR" -> "Glrey".
    """
    squad = war_squad.get('squad')
    cells = squad.get('cell') if isinstance(squad, dict) else None
    if not isinstance(cells, list):
        return None
    cells = [cell for cell in cells if isinstance(cell, dict)]

    leader_cell = None
    for cell in cells:
        if cell.get('squadUnitType') in ('UNITTYPE_LEADER', 'UNITTYPE_COMMANDER') and cell.get('unitDefId'):
            leader_cell = cell
            break
    if leader_cell is None:
        # Unit types are missing when fetched without enums; leader sits in cell 0
        for cell in cells:
            if cell.get('cellIndex') == 0 and cell.get('unitDefId'):
                leader_cell = cell
                break
    if leader_cell is None:
        return None

    name = str(leader_cell['unitDefId']).split(':')[0]
    if name.startswith('CAPITAL'):
        name = name[len('CAPITAL'):]
    return name.capitalize() if name else None


def project_event(event: Dict[str, Any], timestamp: int) -> EventInfo:
    """
    Project a raw event's nested payloads into an EventInfo.

    Missing or ambiguous payloads leave the corresponding fields as None.
    """
    info = EventInfo(timestamp=timestamp)

    items = event.get('data')
    for item in items if isinstance(items, list) else []:
        payload = item.get('payload') if isinstance(item, dict) else None
        if not isinstance(payload, dict):
            continue
        zone_data = payload.get('zoneData')

        if not info.score and isinstance(zone_data, dict):
            info.zone_id = zone_data.get('zoneId')
            score = get_score_from_activity_log(zone_data.get('activityLogMessage'))
            if score and score <= MAX_BATTLE_SCORE:
                info.score = score

        war_squad = payload.get('warSquad')
        if isinstance(war_squad, dict):
            status = SquadStatus.parse(war_squad.get('squadStatus'))
            if status is not None:
                info.squad_status = status
                info.outcome = _STATUS_OUTCOME[status]
                info.is_attack = True

            lead = get_defender_lead(war_squad)
            if lead:
                info.defender_lead = lead

    return info


def reconstruct_attacks(events: List[EventInfo], player_name: str = '') -> List[AttackSession]:
    """
    Pair each lock event with the event that follows it.

    Events are sorted by timestamp (stable, so ties keep arrival order). A
    lock followed by a defeated/available event becomes a resolved session;
    any other lock becomes an unresolved session of UNRESOLVED_ATTACK_MS.
    Terminal events without a preceding lock do not produce sessions.

    The pairing ignores squad identity, so consecutive locks on different
    squads may produce overlapping sessions.

    Args:
        events: The player's accepted events
        player_name: Used in diagnostics only

    Returns:
        List of AttackSession in start time order
    """
    sorted_events = sorted(events, key=lambda e: e.timestamp)
    attacks = []

    for i, current in enumerate(sorted_events):
        if current.squad_status is not SquadStatus.LOCKED:
            continue

        end_event = sorted_events[i + 1] if i + 1 < len(sorted_events) else None
        if end_event is not None and end_event.squad_status is not None and end_event.squad_status.is_terminal:
            attacks.append(AttackSession(
                start_time=current.timestamp,
                end_time=end_event.timestamp,
                outcome=end_event.outcome,
                score=end_event.score,
                zone_id=end_event.zone_id or current.zone_id,
                defender_lead=end_event.defender_lead or current.defender_lead,
            ))
        else:
            attacks.append(AttackSession(
                start_time=current.timestamp,
                end_time=current.timestamp + UNRESOLVED_ATTACK_MS,
                outcome=Outcome.UNRESOLVED,
                zone_id=current.zone_id,
                defender_lead=current.defender_lead,
            ))
            logger.info(f"Missing ending event for player {player_name} timestamp={current.timestamp}")

    return attacks


@dataclass
class PlayerEventAggregate:
    """Territory War totals for one attacker."""
    player_id: str
    name: str
    events: List[EventInfo] = field(default_factory=list)
    attacks: List[AttackSession] = field(default_factory=list)
    scores: List[int] = field(default_factory=list)
    attempts: int = 0
    wins: int = 0
    losses: int = 0
    total_attack_score: Optional[int] = None

    @property
    def events_score(self) -> int:
        return sum(self.scores)

    @property
    def total(self) -> int:
        """Score used for ranking: authoritative total when known."""
        if self.total_attack_score is not None:
            return self.total_attack_score
        return self.events_score

    def add_event(self, info: EventInfo):
        self.events.append(info)

        if info.score:
            self.scores.append(info.score)

        if info.is_attack:
            if info.squad_status is SquadStatus.LOCKED:
                self.attempts += 1
            elif info.squad_status is SquadStatus.DEFEATED:
                self.wins += 1
            elif info.squad_status is SquadStatus.AVAILABLE:
                self.losses += 1

    def to_record(self) -> Dict[str, Any]:
        return {
            'player_id': self.player_id,
            'name': self.name,
            'total': self.total,
            'events_score': self.events_score,
            'total_attack_score': self.total_attack_score,
            'attempts': self.attempts,
            'wins': self.wins,
            'losses': self.losses,
            'attack_count': len(self.attacks),
            'attacks': [attack.to_dict() for attack in self.attacks],
        }


@dataclass
class TWReport:
    """Finalized result of one Territory War load."""
    players: Dict[str, PlayerEventAggregate]
    activity: ActivityHistogram
    window_start: Optional[int]
    window_end: Optional[int]
    duplicate_count: int = 0
    conflict_count: int = 0
    invalid_count: int = 0

    def summary(self) -> Dict[str, Any]:
        """Guild-wide statistics."""
        total_players = len(self.players)
        total_events = sum(len(p.events) for p in self.players.values())
        total_score = sum(p.events_score for p in self.players.values())
        return {
            'total_players': total_players,
            'total_events': total_events,
            'total_score': total_score,
            'avg_score': total_score / total_players if total_players else 0.0,
            'max_player_score': max((p.total for p in self.players.values()), default=0),
            'total_attacks': sum(len(p.attacks) for p in self.players.values()),
            'duplicate_events': self.duplicate_count,
            'conflicting_events': self.conflict_count,
            'invalid_events': self.invalid_count,
        }


def parse_tw_results(data: Dict[str, Any]) -> Dict[str, int]:
    """
    Read authoritative per-player attack totals from a TW results document.

    Args:
        data: Results document with a 'currentStat' list

    Returns:
        Dictionary of memberId -> total attack score (empty if not found)
    """
    results = {}
    stats = data.get('currentStat') if isinstance(data, dict) else None
    if not isinstance(stats, list):
        stats = []
    attack_stats = next((s for s in stats if isinstance(s, dict) and s.get('mapStatId') == RESULTS_STAT_ID), None)

    if not attack_stats or not attack_stats.get('playerStat'):
        logger.warning(f"Could not find '{RESULTS_STAT_ID}' stats in the results file")
        return results

    for player_stat in attack_stats['playerStat']:
        if not isinstance(player_stat, dict):
            continue
        member_id = player_stat.get('memberId')
        score = parse_int(player_stat.get('score'))
        if member_id and score is not None:
            results[member_id] = score

    logger.info(f"Loaded TW results for {len(results)} players")
    return results


class TWLoadSession:
    """
    State for a single Territory War load.

    A new session is created for every load; nothing carries over between
    loads.
    """

    def __init__(self):
        self.deduplicator = EventDeduplicator()
        self.players: Dict[str, PlayerEventAggregate] = {}
        self.start_time: Optional[int] = None
        self.end_time: Optional[int] = None
        self.invalid_count = 0

    @property
    def duplicate_count(self) -> int:
        return self.deduplicator.duplicate_count

    def process_log_data(self, data: Dict[str, Any]) -> bool:
        """
        Add one log document's events to the session.

        Args:
            data: Log document with an 'event' list

        Returns:
            True if the document had an event section, False otherwise
        """
        if not isinstance(data, dict):
            logger.warning(f"Log document is a {type(data).__name__}, not an object")
            return False

        events = data.get('event')
        if not isinstance(events, list):
            logger.warning("Log document has no event section")
            return False

        for event in events:
            if not isinstance(event, dict):
                self.invalid_count += 1
                logger.warning(f"Skipping malformed event entry {event!r}")
                continue
            self._process_event(event)

        return True

    def _process_event(self, event: Dict[str, Any]):
        author_id = event.get('authorId')
        timestamp = parse_int(event.get('timestamp'))

        if timestamp is None:
            self.invalid_count += 1
            logger.warning(f"Skipping event {event.get('id')} with invalid timestamp {event.get('timestamp')!r}")
            return
        if isinstance(author_id, (list, dict)) or isinstance(event.get('id'), (list, dict)):
            self.invalid_count += 1
            logger.warning(f"Skipping event with malformed id or author: {event.get('id')!r}")
            return

        decision = self.deduplicator.accept(event.get('id'), timestamp, author_id)
        if decision is not Decision.NEW:
            return

        if self.start_time is None or timestamp < self.start_time:
            self.start_time = timestamp
        if self.end_time is None or timestamp > self.end_time:
            self.end_time = timestamp

        player = self.players.get(author_id)
        if player is None:
            player = PlayerEventAggregate(player_id=author_id, name=event.get('authorName', ''))
            self.players[author_id] = player

        player.add_event(project_event(event, timestamp))

    def finalize(self, results: Optional[Dict[str, int]] = None,
                 bucket_width: int = BUCKET_WIDTH_MS) -> TWReport:
        """
        Reconstruct attack sessions and build the activity histogram.

        Args:
            results: Optional memberId -> authoritative total attack score
            bucket_width: Histogram bucket width in milliseconds

        Returns:
            TWReport for this load
        """
        results = results or {}

        for player in self.players.values():
            player.attacks = reconstruct_attacks(player.events, player.name)
            player.total_attack_score = results.get(player.player_id)

        logger.info(f"Found and skipped {self.duplicate_count} duplicate events")

        sessions = [attack for player in self.players.values() for attack in player.attacks]
        activity = build_activity(sessions, self.start_time, self.end_time, bucket_width)

        return TWReport(
            players=self.players,
            activity=activity,
            window_start=activity.window_start,
            window_end=activity.window_end,
            duplicate_count=self.duplicate_count,
            conflict_count=self.deduplicator.conflict_count,
            invalid_count=self.invalid_count,
        )


def aggregate_tw_logs(documents: Iterable[Dict[str, Any]],
                      results: Optional[Dict[str, int]] = None) -> TWReport:
    """Aggregate already-parsed log documents in a fresh session."""
    session = TWLoadSession()
    for data in documents:
        session.process_log_data(data)
    return session.finalize(results)
