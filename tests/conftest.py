"""
Shared pytest fixtures for fixture engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from fixture_engine.models import APPROVED, IN_PROGRESS, Match, Team, Tournament
from fixture_engine.service import TournamentService
from fixture_engine.settings import merge_settings
from fixture_engine.storage import TournamentStore


def team_ids(count):
    return [f"team-{i:02d}" for i in range(1, count + 1)]


def make_tournament(fmt, count=8, settings=None, status=IN_PROGRESS, tournament_id='test-cup'):
    teams = [Team(team_id) for team_id in team_ids(count)]
    return Tournament(tournament_id, 'Test Cup', fmt, teams=teams,
                      settings=merge_settings(settings), status=status)


def approve(match, home_score, away_score, pk_home=None, pk_away=None):
    match.home_score = home_score
    match.away_score = away_score
    match.pk_home_score = pk_home
    match.pk_away_score = pk_away
    match.status = APPROVED
    return match


def matches_from_fixtures(fixtures, first_number=1, tournament_id='test-cup'):
    return [
        Match(f"M{first_number + i:03d}", tournament_id, item['round'], item['home'], item['away'],
              match_number=item['match_number'], matchday=item['matchday'])
        for i, item in enumerate(fixtures)
    ]


def home_wins(matches):
    """Approve every match as a 1-0 home win."""
    for match in matches:
        approve(match, 1, 0)
    return matches


@pytest.fixture
def eight_teams():
    return team_ids(8)


@pytest.fixture
def sixteen_teams():
    return team_ids(16)


@pytest.fixture
def store(tmp_path):
    return TournamentStore(str(tmp_path / 'data'), lock_timeout=5)


@pytest.fixture
def service(store):
    return TournamentService(store)


@pytest.fixture
def started_tournament(service):
    """Factory: create, register `count` teams and start a tournament."""
    def _create(fmt, count=8, settings=None, name='Weekend Cup'):
        merged = {'seed': 42, 'start_date': '2026-03-02'}
        merged.update(settings or {})
        tournament = service.create_tournament(name, fmt, merged)
        for team_id in team_ids(count):
            service.register_team(tournament.tournament_id, team_id)
        service.start_tournament(tournament.tournament_id)
        return tournament.tournament_id
    return _create


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the Flask app at a temporary data directory."""
    import app as app_module

    data_dir = tmp_path / 'data'
    data_dir.mkdir()
    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    return data_dir


@pytest.fixture
def client(temp_data_dir):
    """Create a test client bound to the temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
