"""
Flask JSON API for the eFootball fixture engine.

Organizers create a tournament, register teams, start it, record results and
trigger stage progression. All state lives in YAML files under DATA_DIR.
"""
from filelock import Timeout
from flask import Flask, request, jsonify

from fixture_engine.errors import (
    AlreadyComplete,
    IncompleteRound,
    InvalidTransition,
    RoundConflict,
    TournamentError,
    TournamentNotFound,
)
from fixture_engine.models import APPROVED
from fixture_engine.service import TournamentService
from fixture_engine.settings import DATA_DIR, get_default_settings
from fixture_engine.storage import TournamentStore

app = Flask(__name__)

CONFLICT_ERRORS = (IncompleteRound, AlreadyComplete, RoundConflict, InvalidTransition)


def get_service():
    """Service bound to the current DATA_DIR."""
    store = TournamentStore(DATA_DIR, lock_timeout=get_default_settings()['lock_timeout'])
    return TournamentService(store)


def _json_body():
    return request.get_json(silent=True) or {}


@app.errorhandler(TournamentError)
def handle_tournament_error(error):
    if isinstance(error, TournamentNotFound):
        status = 404
    elif isinstance(error, CONFLICT_ERRORS):
        status = 409
    else:
        status = 400
    app.logger.warning(f'{request.method} {request.path} failed: {error}')

    body = {'error': str(error)}
    if isinstance(error, IncompleteRound):
        body['outstanding'] = error.outstanding
        body['round'] = error.round_label
    return jsonify(body), status


@app.errorhandler(Timeout)
def handle_lock_timeout(error):
    app.logger.error(f'Lock timeout on {request.path}: {error}')
    return jsonify({'error': 'Tournament is busy, please try again.'}), 503


@app.route('/api/tournaments', methods=['GET'])
def api_list_tournaments():
    return jsonify({'tournaments': get_service().store.list_tournaments()})


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    data = _json_body()
    tournament = get_service().create_tournament(
        data.get('name', ''), data.get('format'), data.get('settings')
    )
    app.logger.info(f'Created tournament {tournament.tournament_id}')
    return jsonify(tournament.to_dict()), 201


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
def api_get_tournament(tournament_id):
    return jsonify(get_service().get_tournament(tournament_id).to_dict())


@app.route('/api/tournaments/<tournament_id>/teams', methods=['POST'])
def api_register_team(tournament_id):
    data = _json_body()
    team = get_service().register_team(
        tournament_id,
        data.get('name', ''),
        captain_id=data.get('captain_id'),
        pot=data.get('pot'),
    )
    return jsonify(team.to_dict()), 201


@app.route('/api/tournaments/<tournament_id>/start', methods=['POST'])
def api_start_tournament(tournament_id):
    return jsonify(get_service().start_tournament(tournament_id))


@app.route('/api/tournaments/<tournament_id>/fixtures', methods=['GET'])
def api_get_fixtures(tournament_id):
    matches = get_service().get_fixtures(tournament_id)
    round_filter = request.args.get('round')
    if round_filter:
        matches = [m for m in matches if m.round.label == round_filter]
    return jsonify({'fixtures': [m.to_dict() for m in matches]})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/result', methods=['POST'])
def api_record_result(tournament_id, match_id):
    data = _json_body()
    match = get_service().record_result(
        tournament_id,
        match_id,
        data.get('home_score'),
        data.get('away_score'),
        pk_home_score=data.get('pk_home_score'),
        pk_away_score=data.get('pk_away_score'),
        status=data.get('status', APPROVED),
        notes=data.get('notes'),
    )
    return jsonify(match.to_dict())


@app.route('/api/tournaments/<tournament_id>/standings', methods=['GET'])
def api_get_standings(tournament_id):
    tables = get_service().get_standings(tournament_id)
    return jsonify({name: [s.to_dict() for s in table] for name, table in tables.items()})


@app.route('/api/tournaments/<tournament_id>/progress', methods=['POST'])
def api_progress_tournament(tournament_id):
    result = get_service().progress_tournament(tournament_id)
    app.logger.info(f'{tournament_id}: {result.message}')
    return jsonify(result.to_dict())


if __name__ == '__main__':
    app.run(debug=True, port=5000)
