"""
Tournament lifecycle on top of the store.

Every mutating operation is a read-check-write performed while holding the
tournament's file lock, and a round change is committed with a revision
compare-and-swap. Two concurrent progression requests therefore produce exactly
one new round: the second one sees the round already advanced.
"""
import datetime
import logging

from .elimination import is_decisive
from .errors import ConfigurationError, InsufficientTeams, InvalidTransition, SeedingError
from .formats import generate_initial_fixtures, shuffle_teams
from .models import (
    APPROVED, COMPLETED, FORMATS, IN_PROGRESS, MATCH_STATUSES, OPEN_FOR_REGISTRATION,
    READY_TO_START, SWISS, Match, Team, Tournament,
)
from .progression import current_stage_matches, progress
from .rounds import KnockoutRound
from .scheduling import FixtureScheduler
from .settings import get_start_date, merge_settings
from .standings import compute_tournament_standings
from .storage import slugify

logger = logging.getLogger(__name__)


def build_matches(tournament_id, fixtures, first_number=1):
    """Turn generated fixtures into Match objects with sequential ids."""
    matches = []
    for offset, item in enumerate(fixtures):
        matches.append(Match(
            match_id=f"M{first_number + offset:03d}",
            tournament_id=tournament_id,
            round=item['round'],
            home_team_id=item['home'],
            away_team_id=item['away'],
            scheduled_at=item.get('scheduled_at'),
            match_number=item.get('match_number', offset + 1),
            matchday=item.get('matchday'),
        ))
    return matches


def _validate_score(value, label):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(f"{label} must be a non-negative whole number, got {value!r}")
    return value


class TournamentService:
    def __init__(self, store):
        self.store = store

    # Registration

    def create_tournament(self, name, format, settings=None):
        if not name or not str(name).strip():
            raise ConfigurationError("Tournament name is required.")
        if format not in FORMATS:
            raise ConfigurationError(f"Unknown tournament format: {format}. Expected one of {', '.join(FORMATS)}")
        tournament = Tournament(
            tournament_id=self.store.new_tournament_id(name),
            name=str(name).strip(),
            format=format,
            settings=merge_settings(settings),
            status=OPEN_FOR_REGISTRATION,
        )
        self.store.create(tournament)
        return tournament

    def register_team(self, tournament_id, name, captain_id=None, pot=None):
        if not name or not str(name).strip():
            raise ConfigurationError("Team name is required.")
        with self.store.lock(tournament_id):
            tournament, matches = self.store.load(tournament_id)
            if tournament.status not in (OPEN_FOR_REGISTRATION, READY_TO_START):
                raise InvalidTransition("Registration is closed for this tournament.")

            if pot is not None and (isinstance(pot, bool) or not isinstance(pot, (int, str))):
                raise ConfigurationError(f"Pot must be a number or a name, got {pot!r}")
            if pot is not None and any(t.pot is not None and type(t.pot) is not type(pot) for t in tournament.teams):
                raise SeedingError("Pots must all be numbers or all be names, not a mix of both.")

            team_id = slugify(name)
            if tournament.get_team(team_id) is not None:
                raise ConfigurationError(f"A team named '{name}' is already registered.")
            attributes = {'pot': pot} if pot is not None else {}
            team = Team(team_id, str(name).strip(), captain_id, attributes)
            tournament.teams.append(team)
            if len(tournament.teams) >= 2:
                tournament.status = READY_TO_START
            self.store.save(tournament, matches)
        logger.info("Registered %s in %s", team_id, tournament_id)
        return team

    # Lifecycle

    def _check_swiss_settings(self, tournament):
        count = len(tournament.teams)
        rounds = tournament.settings.get('swiss_rounds')
        if rounds is None or rounds < 1 or rounds > count - 1:
            raise ConfigurationError(
                f"Swiss round count must be between 1 and {count - 1} for {count} teams, got {rounds}."
            )
        playoff = tournament.settings.get('playoff_teams') or 0
        if playoff > count:
            raise ConfigurationError(f"Cannot take {playoff} teams into the playoff from {count}.")

    def _schedule(self, tournament, fixtures, existing):
        settings = tournament.settings
        start = get_start_date(settings)
        kickoffs = [m.scheduled_at for m in existing if m.scheduled_at is not None]
        if kickoffs:
            start = max(start, max(kickoffs).date() + datetime.timedelta(days=1))
        scheduler = FixtureScheduler(start, settings.get('days', 7), settings['time_slots'])
        return scheduler.schedule(fixtures)

    def start_tournament(self, tournament_id):
        """Draw the opening fixtures and put the tournament in progress."""
        with self.store.lock(tournament_id):
            tournament, matches = self.store.load(tournament_id)
            if tournament.status == COMPLETED or tournament.status == IN_PROGRESS:
                raise InvalidTransition(f"Tournament has already started (status: {tournament.status}).")
            if len(tournament.teams) < 2:
                raise InsufficientTeams(len(tournament.teams))
            if tournament.format == SWISS:
                self._check_swiss_settings(tournament)

            order = shuffle_teams(tournament.team_ids, tournament.settings.get('seed'))
            fixtures, byes = generate_initial_fixtures(tournament, order)
            fixtures, warnings = self._schedule(tournament, fixtures, [])

            new_matches = build_matches(tournament_id, fixtures)
            tournament.status = IN_PROGRESS
            tournament.byes = byes
            self.store.commit_round(tournament, new_matches, tournament.revision)

        logger.info("Started %s with %d fixtures", tournament_id, len(new_matches))
        return {
            'status': tournament.status,
            'match_count': len(new_matches),
            'rounds': sorted({m.round.label for m in new_matches}),
            'warnings': warnings,
        }

    def record_result(self, tournament_id, match_id, home_score, away_score,
                      pk_home_score=None, pk_away_score=None, status=APPROVED, notes=None):
        """
        Store a match result and its verification status.

        Standings are recomputed from scratch whenever a match enters or leaves
        the approved state.
        """
        if status not in MATCH_STATUSES:
            raise ConfigurationError(f"Unknown match status: {status}")
        home_score = _validate_score(home_score, 'Home score')
        away_score = _validate_score(away_score, 'Away score')
        pk_home_score = _validate_score(pk_home_score, 'Home penalty score')
        pk_away_score = _validate_score(pk_away_score, 'Away penalty score')

        with self.store.lock(tournament_id):
            tournament, matches = self.store.load(tournament_id)
            if tournament.status != IN_PROGRESS:
                raise InvalidTransition(f"Results can only be recorded while in progress (status: {tournament.status}).")
            match = next((m for m in matches if m.match_id == match_id), None)
            if match is None:
                raise ConfigurationError(f"Match not found: {match_id}")
            if match not in current_stage_matches(matches):
                raise InvalidTransition(f"{match.round.label} is closed; its results can no longer change.")

            if status == APPROVED:
                if home_score is None or away_score is None:
                    raise ConfigurationError("An approved match needs both scores.")
                if isinstance(match.round, KnockoutRound) and not is_decisive(
                        home_score, away_score, pk_home_score, pk_away_score):
                    raise ConfigurationError(
                        "A drawn knockout match needs a penalty shootout with a winner."
                    )

            was_approved = match.is_approved
            match.home_score = home_score
            match.away_score = away_score
            match.pk_home_score = pk_home_score
            match.pk_away_score = pk_away_score
            match.status = status
            if notes is not None:
                match.resolution_notes = notes
            self.store.save(tournament, matches)

            if was_approved or match.is_approved:
                self.store.save_standings(tournament_id, compute_tournament_standings(tournament, matches))
        logger.info("Recorded %s %s-%s (%s) in %s", match_id, home_score, away_score, status, tournament_id)
        return match

    def progress_tournament(self, tournament_id):
        """
        Move the tournament to its next stage, or complete it.

        The whole round is built and validated in memory before a single
        compare-and-swap write; any failure leaves the stored tournament unchanged.
        """
        with self.store.lock(tournament_id):
            tournament, matches = self.store.load(tournament_id)
            expected_revision = tournament.revision
            result = progress(tournament, matches)

            if result.progressed:
                fixtures, warnings = self._schedule(tournament, result.fixtures, matches)
                new_matches = build_matches(tournament_id, fixtures, len(matches) + 1)
                if isinstance(result.round_ref, KnockoutRound) and result.round_ref.opening:
                    tournament.byes = result.byes
                matches = matches + new_matches
                result.warnings = warnings
            else:
                tournament.status = COMPLETED
                tournament.champion_id = result.champion_id
            self.store.commit_round(tournament, matches, expected_revision)
        logger.info("%s: %s", tournament_id, result.message)
        return result

    # Queries

    def get_tournament(self, tournament_id):
        return self.store.load_tournament(tournament_id)

    def get_fixtures(self, tournament_id):
        matches = self.store.load_matches(tournament_id)
        return sorted(matches, key=lambda m: (m.round.sort_key(), m.matchday or 0, m.match_number))

    def get_standings(self, tournament_id):
        tournament, matches = self.store.load(tournament_id)
        return compute_tournament_standings(tournament, matches)
