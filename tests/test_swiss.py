"""
Tests for Swiss system pairing.
"""
import logging
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import approve, home_wins, matches_from_fixtures, team_ids
from fixture_engine.errors import ConfigurationError, InsufficientTeams
from fixture_engine.models import Match
from fixture_engine.rounds import LeagueRound, SwissRound
from fixture_engine.swiss import (
    build_opponent_map,
    pair_swiss_teams,
    rank_swiss_teams,
    generate_swiss_round,
)


def play_rounds(roster, rounds):
    matches = []
    for number in range(1, rounds + 1):
        fixtures = generate_swiss_round(roster, number, matches)
        matches += home_wins(matches_from_fixtures(fixtures, len(matches) + 1))
    return matches


class TestPairing:
    """Rematch avoidance."""

    def test_no_rematches_over_four_rounds(self, eight_teams):
        matches = play_rounds(eight_teams, 4)
        pairs = [frozenset(m.teams) for m in matches]
        assert len(pairs) == 16
        assert len(set(pairs)) == 16

    def test_every_team_plays_once_per_round(self, eight_teams):
        matches = play_rounds(eight_teams, 3)
        for number in (1, 2, 3):
            teams = [t for m in matches if m.round == SwissRound(number) for t in m.teams]
            assert sorted(teams) == sorted(eight_teams)

    def test_backtracks_when_nearest_choice_dead_ends(self):
        opponents = {'a': {'b'}, 'b': {'a', 'd'}, 'd': {'b'}}
        assert pair_swiss_teams(['a', 'b', 'c', 'd'], opponents) == [('a', 'd'), ('b', 'c')]

    def test_forced_rematch_logged(self, caplog):
        roster = ['a', 'b', 'c', 'd']
        opponents = {team: set(roster) - {team} for team in roster}
        with caplog.at_level(logging.WARNING, logger='fixture_engine.swiss'):
            pairs = pair_swiss_teams(roster, opponents)
        assert len(pairs) == 2
        assert sorted(t for pair in pairs for t in pair) == roster
        assert 'rematch' in caplog.text

    def test_opponent_map(self):
        matches = [Match('M1', 't', SwissRound(1), 'a', 'b'), Match('M2', 't', SwissRound(2), 'a', 'c')]
        assert build_opponent_map(matches) == {'a': {'b', 'c'}, 'b': {'a'}, 'c': {'a'}}


class TestRanking:
    def test_leaders_meet_in_round_two(self, eight_teams):
        matches = play_rounds(eight_teams, 1)
        assert rank_swiss_teams(eight_teams, matches)[:4] == ['team-01', 'team-04', 'team-05', 'team-08']
        round_two = generate_swiss_round(eight_teams, 2, matches)
        assert {round_two[0]['home'], round_two[0]['away']} == {'team-01', 'team-04'}
        assert all(f['round'] == SwissRound(2) for f in round_two)
        assert all(f['matchday'] == 2 for f in round_two)

    def test_only_swiss_matches_count(self):
        other = approve(Match('M1', 't', LeagueRound(1), 'b', 'a'), 5, 0)
        assert rank_swiss_teams(['a', 'b'], [other]) == ['a', 'b']


class TestRoundValidation:
    def test_odd_roster(self):
        with pytest.raises(ConfigurationError):
            generate_swiss_round(team_ids(5), 1, [])

    def test_too_few_teams(self):
        with pytest.raises(InsufficientTeams):
            generate_swiss_round(['a'], 1, [])

    def test_round_number(self):
        with pytest.raises(ConfigurationError):
            generate_swiss_round(team_ids(4), 0, [])
