"""
Tests for the tournament lifecycle, including concurrent progression.
"""
import pytest
import sys
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from fixture_engine.errors import (
    AlreadyComplete,
    ConfigurationError,
    IncompleteRound,
    InsufficientTeams,
    InvalidTransition,
    SeedingError,
    TournamentNotFound,
)
from fixture_engine.models import (
    AWAITING_CONFIRMATION, COMPLETED, IN_PROGRESS, OPEN_FOR_REGISTRATION, READY_TO_START,
)
from fixture_engine.progression import current_stage_matches
from fixture_engine.service import TournamentService, build_matches


def approve_current_round(service, tournament_id):
    matches = service.store.load_matches(tournament_id)
    for match in current_stage_matches(matches):
        if not match.is_approved:
            service.record_result(tournament_id, match.match_id, 1, 0)


class TestRegistration:
    def test_create_tournament(self, service):
        tournament = service.create_tournament('Weekend Cup', 'cup')
        assert tournament.tournament_id == 'weekend-cup'
        assert tournament.status == OPEN_FOR_REGISTRATION
        assert tournament.settings['group_size'] == 4

    def test_unknown_format(self, service):
        with pytest.raises(ConfigurationError):
            service.create_tournament('Weekend Cup', 'ladder')

    def test_unknown_setting(self, service):
        with pytest.raises(ConfigurationError):
            service.create_tournament('Weekend Cup', 'cup', {'extra_time': True})

    def test_ready_after_two_teams(self, service):
        tournament = service.create_tournament('Weekend Cup', 'league')
        service.register_team(tournament.tournament_id, 'Red Lions')
        assert service.get_tournament(tournament.tournament_id).status == OPEN_FOR_REGISTRATION
        team = service.register_team(tournament.tournament_id, 'Blue Sharks', captain_id='cap-2')
        assert team.team_id == 'blue-sharks'
        assert service.get_tournament(tournament.tournament_id).status == READY_TO_START

    def test_duplicate_team(self, service):
        tournament = service.create_tournament('Weekend Cup', 'league')
        service.register_team(tournament.tournament_id, 'Red Lions')
        with pytest.raises(ConfigurationError):
            service.register_team(tournament.tournament_id, 'red lions')

    def test_pot_stored(self, service):
        tournament = service.create_tournament('Elite Cup', 'champions-league')
        team = service.register_team(tournament.tournament_id, 'Red Lions', pot=1)
        assert service.get_tournament(tournament.tournament_id).get_team(team.team_id).pot == 1

    def test_unknown_tournament(self, service):
        with pytest.raises(TournamentNotFound):
            service.register_team('missing', 'Red Lions')

    def test_invalid_time_slot(self, service):
        with pytest.raises(ConfigurationError):
            service.create_tournament('Weekend Cup', 'league', {'time_slots': ['20:00', '25:99']})
        assert service.store.list_tournaments() == []

    def test_invalid_seed(self, service):
        with pytest.raises(ConfigurationError):
            service.create_tournament('Weekend Cup', 'league', {'seed': [1, 2]})

    def test_invalid_pot(self, service):
        tournament = service.create_tournament('Elite Cup', 'champions-league')
        with pytest.raises(ConfigurationError):
            service.register_team(tournament.tournament_id, 'Red Lions', pot=[1])

    def test_mixed_pot_kinds_rejected(self, service):
        tournament = service.create_tournament('Elite Cup', 'champions-league')
        service.register_team(tournament.tournament_id, 'Red Lions', pot='A')
        with pytest.raises(SeedingError):
            service.register_team(tournament.tournament_id, 'Blue Sharks', pot=1)
        assert service.get_tournament(tournament.tournament_id).team_ids == ['red-lions']


class TestStart:
    def test_start_generates_and_schedules(self, service, started_tournament):
        tournament_id = started_tournament('cup', 16)
        tournament = service.get_tournament(tournament_id)
        assert tournament.status == IN_PROGRESS
        assert tournament.revision == 1

        fixtures = service.get_fixtures(tournament_id)
        assert len(fixtures) == 24
        assert [m.match_id for m in sorted(fixtures, key=lambda m: m.match_id)][0] == 'M001'
        assert all(m.scheduled_at >= datetime(2026, 3, 2) for m in fixtures)
        assert [m.round.label for m in fixtures][0] == "Group A"

    def test_start_is_repeatable_with_seed(self, service, started_tournament):
        first = started_tournament('cup', 8, {'group_stage': False}, name='Cup One')
        second = started_tournament('cup', 8, {'group_stage': False}, name='Cup Two')
        pairs = lambda tid: [(m.home_team_id, m.away_team_id) for m in service.get_fixtures(tid)]
        assert pairs(first) == pairs(second)

    def test_cannot_start_twice(self, service, started_tournament):
        tournament_id = started_tournament('league', 4)
        with pytest.raises(InvalidTransition):
            service.start_tournament(tournament_id)

    def test_needs_two_teams(self, service):
        tournament = service.create_tournament('Weekend Cup', 'league')
        service.register_team(tournament.tournament_id, 'Red Lions')
        with pytest.raises(InsufficientTeams):
            service.start_tournament(tournament.tournament_id)

    def test_swiss_round_count_checked(self, service):
        tournament = service.create_tournament('Swiss Night', 'swiss', {'swiss_rounds': 5})
        for name in ('a', 'b', 'c', 'd'):
            service.register_team(tournament.tournament_id, name)
        with pytest.raises(ConfigurationError):
            service.start_tournament(tournament.tournament_id)
        assert service.get_tournament(tournament.tournament_id).status == READY_TO_START

    def test_registration_closed_after_start(self, service, started_tournament):
        tournament_id = started_tournament('league', 4)
        with pytest.raises(InvalidTransition):
            service.register_team(tournament_id, 'Late Comers')


class TestRecordResult:
    def test_standings_recomputed_on_approval(self, service, started_tournament):
        tournament_id = started_tournament('league', 4)
        match = service.get_fixtures(tournament_id)[0]
        service.record_result(tournament_id, match.match_id, 3, 0)

        stored = service.store.load_standings(tournament_id)
        leader = stored['League'][0]
        assert leader['team_id'] == match.home_team_id
        assert leader['points'] == 3
        assert service.get_standings(tournament_id)['League'][0].team_id == match.home_team_id

    def test_pending_result_does_not_count(self, service, started_tournament):
        tournament_id = started_tournament('league', 4)
        match = service.get_fixtures(tournament_id)[0]
        service.record_result(tournament_id, match.match_id, 3, 0, status=AWAITING_CONFIRMATION)
        assert service.store.load_standings(tournament_id) == {}
        assert all(s.points == 0 for s in service.get_standings(tournament_id)['League'])

    def test_knockout_draw_needs_penalties(self, service, started_tournament):
        tournament_id = started_tournament('cup', 8, {'group_stage': False})
        match = service.get_fixtures(tournament_id)[0]
        with pytest.raises(ConfigurationError):
            service.record_result(tournament_id, match.match_id, 1, 1)
        approved = service.record_result(tournament_id, match.match_id, 1, 1, 5, 4)
        assert approved.is_approved

    def test_invalid_score(self, service, started_tournament):
        tournament_id = started_tournament('league', 4)
        with pytest.raises(ConfigurationError):
            service.record_result(tournament_id, 'M001', -1, 0)

    def test_unknown_match(self, service, started_tournament):
        tournament_id = started_tournament('league', 4)
        with pytest.raises(ConfigurationError):
            service.record_result(tournament_id, 'M999', 1, 0)

    def test_closed_round(self, service, started_tournament):
        tournament_id = started_tournament('cup', 4, {'group_stage': False})
        approve_current_round(service, tournament_id)
        service.progress_tournament(tournament_id)
        with pytest.raises(InvalidTransition):
            service.record_result(tournament_id, 'M001', 0, 1)


class TestProgressTournament:
    def test_blocked_leaves_tournament_unchanged(self, service, started_tournament):
        tournament_id = started_tournament('cup', 8, {'group_stage': False})
        service.record_result(tournament_id, 'M001', 1, 0)
        with pytest.raises(IncompleteRound) as exc:
            service.progress_tournament(tournament_id)
        assert exc.value.outstanding == 3
        assert service.get_tournament(tournament_id).revision == 1
        assert len(service.get_fixtures(tournament_id)) == 4

    def test_knockout_to_champion(self, service, started_tournament):
        tournament_id = started_tournament('cup', 8, {'group_stage': False})
        labels = []
        while True:
            approve_current_round(service, tournament_id)
            result = service.progress_tournament(tournament_id)
            if not result.progressed:
                break
            labels.append(result.round_label)

        assert labels == ["Semi-Final", "Final"]
        tournament = service.get_tournament(tournament_id)
        assert tournament.status == COMPLETED
        assert tournament.champion_id == result.champion_id
        assert len(service.get_fixtures(tournament_id)) == 7
        with pytest.raises(AlreadyComplete):
            service.progress_tournament(tournament_id)

    def test_new_round_scheduled_after_previous(self, service, started_tournament):
        tournament_id = started_tournament('cup', 8, {'group_stage': False})
        approve_current_round(service, tournament_id)
        service.progress_tournament(tournament_id)
        fixtures = service.get_fixtures(tournament_id)
        last_opening = max(m.scheduled_at for m in fixtures[:4])
        assert all(m.scheduled_at.date() > last_opening.date() for m in fixtures[4:])
        assert [m.match_id for m in fixtures[4:]] == ['M005', 'M006']

    def test_groups_then_knockout(self, service, started_tournament):
        tournament_id = started_tournament('cup', 16)
        approve_current_round(service, tournament_id)
        result = service.progress_tournament(tournament_id)
        assert result.round_label == "Round of 8"
        assert result.to_dict()['match_count'] == 4
        assert service.get_tournament(tournament_id).revision == 2

    def test_sequential_double_progress(self, service, started_tournament):
        tournament_id = started_tournament('cup', 8, {'group_stage': False})
        approve_current_round(service, tournament_id)
        service.progress_tournament(tournament_id)
        with pytest.raises(IncompleteRound):
            service.progress_tournament(tournament_id)
        assert len(service.get_fixtures(tournament_id)) == 6

    def test_concurrent_progress_creates_one_round(self, store, started_tournament):
        tournament_id = started_tournament('cup', 8, {'group_stage': False})
        approve_current_round(TournamentService(store), tournament_id)

        def attempt():
            try:
                return TournamentService(store).progress_tournament(tournament_id)
            except IncompleteRound as e:
                return e

        with ThreadPoolExecutor(max_workers=2) as executor:
            outcomes = list(executor.map(lambda _: attempt(), range(2)))

        successes = [o for o in outcomes if not isinstance(o, IncompleteRound)]
        blocked = [o for o in outcomes if isinstance(o, IncompleteRound)]
        assert len(successes) == 1
        assert len(blocked) == 1
        assert successes[0].round_label == "Semi-Final"

        fixtures = TournamentService(store).get_fixtures(tournament_id)
        assert [m.round.label for m in fixtures].count("Semi-Final") == 2
        assert store.load_tournament(tournament_id).revision == 2

    def test_swiss_lifecycle(self, service, started_tournament):
        tournament_id = started_tournament('swiss', 4, {'swiss_rounds': 3})
        for _ in range(2):
            approve_current_round(service, tournament_id)
            assert service.progress_tournament(tournament_id).progressed
        approve_current_round(service, tournament_id)
        result = service.progress_tournament(tournament_id)
        assert not result.progressed
        assert service.get_standings(tournament_id)['Swiss'][0].team_id == result.champion_id


class TestBuildMatches:
    def test_sequential_ids(self):
        from fixture_engine.rounds import LeagueRound
        fixtures = [
            {'home': 'a', 'away': 'b', 'round': LeagueRound(1), 'match_number': 1, 'matchday': 1},
            {'home': 'c', 'away': 'd', 'round': LeagueRound(1), 'match_number': 2, 'matchday': 1},
        ]
        matches = build_matches('t', fixtures, first_number=9)
        assert [m.match_id for m in matches] == ['M009', 'M010']
        assert matches[1].match_number == 2
