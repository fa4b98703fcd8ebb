"""
Stage progression: advancing a tournament from one round to the next.

`progress` is the only transition function. It is pure: it reads the tournament
and its matches and returns a `ProgressionResult` describing the next round (or
completion) without touching either input. Persisting the result is the
caller's job, and happens all at once or not at all.

States:
    round_active -> round_complete -> next_round_generated | tournament_complete
"""
import logging
from typing import Dict, List, Optional, Sequence

from .elimination import (
    advancing_teams,
    create_knockout_round,
    next_knockout_round,
    seed_teams_from_groups,
)
from .errors import AlreadyComplete, ConfigurationError, IncompleteRound, InvalidTransition
from .formats import validate_fixtures
from .models import COMPLETED, IN_PROGRESS
from .rounds import GroupRound, KnockoutRound, LeagueRound, SwissRound
from .standings import LEAGUE_TABLE, compute_group_standings, compute_standings
from .swiss import generate_swiss_round, rank_swiss_teams

logger = logging.getLogger(__name__)

ROUND_ACTIVE = 'round_active'
ROUND_COMPLETE = 'round_complete'
NEXT_ROUND_GENERATED = 'next_round_generated'
TOURNAMENT_COMPLETE = 'tournament_complete'


class ProgressionResult:
    def __init__(self, state, status, fixtures=None, round_ref=None, byes=None, champion_id=None):
        self.state = state
        self.status = status
        self.fixtures = fixtures if fixtures else []
        self.round_ref = round_ref
        self.byes = byes if byes else {}
        self.champion_id = champion_id
        self.warnings = []  # scheduling warnings, filled in when the round is persisted

    @property
    def progressed(self):
        return self.state == NEXT_ROUND_GENERATED

    @property
    def round_label(self):
        return self.round_ref.label if self.round_ref else None

    @property
    def match_count(self):
        return len(self.fixtures)

    @property
    def message(self):
        if self.progressed:
            return f"Progressed to {self.round_label}: {self.match_count} match(es) created."
        return f"Tournament completed. Champion: {self.champion_id}"

    def to_dict(self):
        return {
            'progressed': self.progressed,
            'state': self.state,
            'status': self.status,
            'round': self.round_label,
            'match_count': self.match_count,
            'champion_id': self.champion_id,
            'message': self.message,
            'warnings': list(self.warnings),
        }

    def __repr__(self):
        return f"ProgressionResult(state={self.state}, round={self.round_label}, matches={self.match_count})"


def current_stage_matches(matches: Sequence) -> List:
    """Matches of the latest stage. All groups together form one stage, as does a league."""
    if not matches:
        return []
    latest = max(match.round.stage_key() for match in matches)
    return [match for match in matches if match.round.stage_key() == latest]


def outstanding_matches(stage_matches: Sequence) -> List:
    return [match for match in stage_matches if not match.is_approved]


def assert_round_completed(stage_matches: Sequence):
    pending = outstanding_matches(stage_matches)
    if pending:
        raise IncompleteRound(len(pending), stage_matches[0].round.label)


def round_state(tournament, matches: Sequence) -> str:
    """Where the tournament sits in the progression state machine."""
    if tournament.status == COMPLETED:
        return TOURNAMENT_COMPLETE
    stage = current_stage_matches(matches)
    if not stage or outstanding_matches(stage):
        return ROUND_ACTIVE
    return ROUND_COMPLETE


def _setting(tournament, key):
    value = tournament.settings.get(key)
    if value is None:
        raise ConfigurationError(f"Tournament {tournament.tournament_id} is missing the '{key}' setting")
    return value


def _complete(champion_id: Optional[str]) -> ProgressionResult:
    return ProgressionResult(TOURNAMENT_COMPLETE, COMPLETED, champion_id=champion_id)


def _next_round(fixtures: List[Dict], byes: Optional[Dict[int, str]] = None) -> ProgressionResult:
    return ProgressionResult(NEXT_ROUND_GENERATED, IN_PROGRESS, fixtures=fixtures,
                             round_ref=fixtures[0]['round'], byes=byes)


def _progress_league(tournament, matches) -> ProgressionResult:
    table = compute_standings(tournament.team_ids, matches, group=LEAGUE_TABLE)
    return _complete(table[0].team_id)


def _progress_groups(tournament, matches) -> ProgressionResult:
    tables = compute_group_standings(matches, tournament.team_ids)
    advance = _setting(tournament, 'advance_per_group')
    seeded = seed_teams_from_groups(tables, advance)
    fixtures, byes = create_knockout_round(seeded)
    return _next_round(fixtures, byes)


def _progress_knockout(tournament, stage) -> ProgressionResult:
    round_ref = stage[0].round
    byes = tournament.byes if round_ref.opening else {}
    advancing = advancing_teams(round_ref, stage, byes)
    if len(advancing) == 1:
        return _complete(advancing[0])
    return _next_round(next_knockout_round(advancing))


def _progress_swiss(tournament, matches, stage) -> ProgressionResult:
    played = stage[0].round.number
    total_rounds = _setting(tournament, 'swiss_rounds')
    roster = tournament.team_ids
    if played < total_rounds:
        return _next_round(generate_swiss_round(roster, played + 1, matches))

    ranked = rank_swiss_teams(roster, matches)
    playoff = tournament.settings.get('playoff_teams') or 0
    if not playoff:
        return _complete(ranked[0])
    if playoff > len(ranked):
        raise ConfigurationError(f"Cannot take {playoff} teams into the playoff from {len(ranked)}")
    fixtures, byes = create_knockout_round(ranked[:playoff])
    return _next_round(fixtures, byes)


def progress(tournament, matches: Sequence) -> ProgressionResult:
    """
    Advance the tournament by one stage.

    Raises AlreadyComplete for a finished tournament, IncompleteRound while any
    match of the current stage is not approved, and ConfigurationError when the
    stored data does not allow the next stage to be built.
    """
    if tournament.status == COMPLETED:
        raise AlreadyComplete(tournament.tournament_id)
    if tournament.status != IN_PROGRESS:
        raise InvalidTransition(f"Tournament is not in progress (status: {tournament.status}).")

    stage = current_stage_matches(matches)
    if not stage:
        raise ConfigurationError("Tournament has no fixtures to progress from.")
    assert_round_completed(stage)

    current = stage[0].round
    if isinstance(current, LeagueRound):
        result = _progress_league(tournament, stage)
    elif isinstance(current, GroupRound):
        result = _progress_groups(tournament, stage)
    elif isinstance(current, KnockoutRound):
        result = _progress_knockout(tournament, stage)
    elif isinstance(current, SwissRound):
        result = _progress_swiss(tournament, matches, stage)
    else:
        raise ConfigurationError(f"Unsupported round: {current!r}")

    if result.progressed:
        if result.round_ref.stage_key() <= current.stage_key():
            raise ConfigurationError(f"{result.round_label} would not advance past {current.label}")
        validate_fixtures(result.fixtures, tournament.team_ids)
        logger.info("%s: %s -> %s (%d matches)", tournament.tournament_id,
                    current.label, result.round_label, result.match_count)
    else:
        logger.info("%s: completed after %s, champion %s",
                    tournament.tournament_id, current.label, result.champion_id)
    return result
