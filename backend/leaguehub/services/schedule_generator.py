"""
Round Robin Schedule Generator

Deterministic fixture generation (circle method) plus date/kickoff packing.
Pure functions: no session, no side effects.

Rotation:
- Odd team counts get one BYE slot so the rotation has even size
- Round r pairs position i with position (size - 1 - i)
- After each round the last slot moves to index 1; index 0 (the anchor) never moves
- Any pairing involving BYE is dropped

Packing:
- Fixtures are walked in emission order (round, then pairing)
- Fixture i lands on calendar day i // matches_per_day
- Within a day the k-th fixture kicks off at start_time + k * slot_interval minutes
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Sequence, Union

from leaguehub.errors import ValidationFailure

MIN_TEAMS = 2


@dataclass(frozen=True)
class RealTeam:
    team_id: int


class Bye:
    """Placeholder opponent for odd team counts. Never appears in a fixture."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "BYE"


BYE = Bye()

RotationSlot = Union[RealTeam, Bye]


@dataclass(frozen=True)
class Pairing:
    round_number: int  # 1-based
    sequence_in_round: int  # 1-based, counts real fixtures only
    home_team_id: int
    away_team_id: int


@dataclass(frozen=True)
class Fixture:
    round_number: int
    sequence_in_round: int
    home_team_id: int
    away_team_id: int
    date: date
    time: time


def build_rotation(team_ids: Sequence[int]) -> List[RotationSlot]:
    """Wrap team ids as rotation slots, padding odd counts with BYE."""
    slots: List[RotationSlot] = [RealTeam(team_id) for team_id in team_ids]
    if len(slots) % 2 == 1:
        slots.append(BYE)
    return slots


def round_robin_pairings(team_ids: Sequence[int]) -> List[Pairing]:
    """
    Generate every pairing of a single round robin.

    Args:
        team_ids: team ids in registration order (order decides the rotation)

    Returns:
        N*(N-1)/2 pairings in round order, then pairing order

    Raises:
        ValidationFailure: fewer than two teams, or duplicate ids
    """
    if len(team_ids) < MIN_TEAMS:
        raise ValidationFailure(
            f"Not enough teams to generate a schedule. Need at least {MIN_TEAMS}, have {len(team_ids)}."
        )
    if len(set(team_ids)) != len(team_ids):
        raise ValidationFailure("Team list contains duplicates")

    slots = build_rotation(team_ids)
    size = len(slots)
    rounds = size - 1
    matches_per_round = size // 2

    pairings: List[Pairing] = []
    for round_index in range(rounds):
        seq = 0
        for i in range(matches_per_round):
            home = slots[i]
            away = slots[size - 1 - i]
            if isinstance(home, Bye) or isinstance(away, Bye):
                continue
            seq += 1
            pairings.append(
                Pairing(
                    round_number=round_index + 1,
                    sequence_in_round=seq,
                    home_team_id=home.team_id,
                    away_team_id=away.team_id,
                )
            )
        # Rotate: last slot moves behind the anchor
        slots.insert(1, slots.pop())

    return pairings


def _validate_packing(matches_per_day: int, slot_interval: int) -> None:
    if matches_per_day < 1:
        raise ValidationFailure(f"matches_per_day must be >= 1, got {matches_per_day}")
    if slot_interval < 1:
        raise ValidationFailure(f"time_slot_interval must be >= 1 minute, got {slot_interval}")


def assign_kickoffs(
    pairings: Sequence[Pairing],
    start_date: date,
    matches_per_day: int,
    slot_interval: int,
    start_time: time = time(0, 0),
) -> List[Fixture]:
    """Give every pairing a calendar date and kickoff time."""
    _validate_packing(matches_per_day, slot_interval)

    fixtures: List[Fixture] = []
    for index, pairing in enumerate(pairings):
        day_offset, slot = divmod(index, matches_per_day)
        match_date = start_date + timedelta(days=day_offset)
        # Clock time may wrap past midnight; the calendar day follows the per-day cap only
        kickoff = (datetime.combine(match_date, start_time) + timedelta(minutes=slot * slot_interval)).time()
        fixtures.append(
            Fixture(
                round_number=pairing.round_number,
                sequence_in_round=pairing.sequence_in_round,
                home_team_id=pairing.home_team_id,
                away_team_id=pairing.away_team_id,
                date=match_date,
                time=kickoff,
            )
        )
    return fixtures


def generate_fixtures(
    team_ids: Sequence[int],
    start_date: date,
    matches_per_day: int,
    slot_interval: int,
    start_time: time = time(0, 0),
) -> List[Fixture]:
    """Full round robin with dates and kickoff times."""
    _validate_packing(matches_per_day, slot_interval)
    return assign_kickoffs(round_robin_pairings(team_ids), start_date, matches_per_day, slot_interval, start_time)
