"""
Flask web application for Playoff Picks.
"""
import os
import hmac
import logging
from datetime import datetime
from functools import wraps
from filelock import Timeout
from flask import Flask, request, jsonify
from playoffs import contests as contest_ops
from playoffs import season as season_ops
from playoffs.errors import ConsistencyError, LimitError, NotFoundError, ValidationError
from playoffs.scores import DEFAULT_SCOREBOARD_URL, list_playoff_events, sync_season_scores
from playoffs.scoring import calculate_leaderboard, leaderboard_stats, participant_bracket
from playoffs.settings import load_settings
from playoffs.storage import ContestRepository, SeasonRepository

app = Flask(__name__)
app.logger.setLevel(logging.INFO)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('PLAYOFF_DATA_DIR', os.path.join(BASE_DIR, 'data'))
SCOREBOARD_URL = os.environ.get('SCOREBOARD_URL', DEFAULT_SCOREBOARD_URL)
ADMIN_KEY_ENV = 'ADMIN_API_KEY'


def _settings() -> dict:
    return load_settings(DATA_DIR)


def _season_repo(settings=None) -> SeasonRepository:
    settings = settings or _settings()
    return SeasonRepository(DATA_DIR, lock_timeout=settings['lock_timeout_seconds'])


def _contest_repo(settings=None) -> ContestRepository:
    settings = settings or _settings()
    return ContestRepository(DATA_DIR, lock_timeout=settings['lock_timeout_seconds'])


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON object body')
    return data


def _admin_key():
    return os.environ.get(ADMIN_KEY_ENV)


def _bearer_token():
    auth = request.authorization
    if auth is None or auth.type != 'bearer':
        return None
    return auth.token


def require_admin_key(f):
    """Season and contest management: Authorization: Bearer <ADMIN_API_KEY>."""
    @wraps(f)
    def admin_only(*args, **kwargs):
        admin_key = _admin_key()
        if not admin_key:
            app.logger.error(f'{ADMIN_KEY_ENV} is not set; refusing {request.method} {request.path}')
            return jsonify({'error': 'Admin operations are disabled on this server'}), 500

        token = _bearer_token()
        if not token or not hmac.compare_digest(admin_key, token):
            app.logger.warning(f'Rejected admin request {request.method} {request.path}')
            return jsonify({'error': 'Admin key required'}), 401
        return f(*args, **kwargs)
    return admin_only


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({'error': str(e)}), 400


@app.errorhandler(NotFoundError)
def handle_not_found(e):
    return jsonify({'error': str(e)}), 404


@app.errorhandler(LimitError)
def handle_limit_error(e):
    return jsonify({'error': str(e)}), 429


@app.errorhandler(ConsistencyError)
def handle_consistency_error(e):
    app.logger.error(f'Bracket consistency error on {request.path}: {e}')
    return jsonify({'error': 'Bracket data is inconsistent; regenerate the bracket'}), 500


@app.errorhandler(Timeout)
def handle_lock_timeout(e):
    app.logger.warning(f'Lock timeout on {request.path}: {e}')
    return jsonify({'error': 'Another update is in progress, try again'}), 503


# ---------------------------------------------------------------------------
# Seasons
# ---------------------------------------------------------------------------

@app.route('/api/seasons', methods=['GET'])
def api_list_seasons():
    """List seasons, optionally filtered by ?status=active|archived."""
    seasons = season_ops.list_seasons(_season_repo(), request.args.get('status'))
    return jsonify([s.to_dict() for s in seasons])


@app.route('/api/seasons', methods=['POST'])
@require_admin_key
def api_create_season():
    data = _json_body()
    season = season_ops.create_season(_season_repo(), data.get('name'), data.get('year'))
    app.logger.info(f'Season {season.id} created')
    return jsonify(season.to_dict()), 201


@app.route('/api/seasons/<season_id>/status', methods=['PATCH'])
@require_admin_key
def api_set_season_status(season_id):
    data = _json_body()
    season = season_ops.set_season_status(_season_repo(), season_id, data.get('status'))
    return jsonify(season.to_dict())


@app.route('/api/seasons/<season_id>/seeds', methods=['GET'])
def api_get_seeds(season_id):
    return jsonify(season_ops.get_seeds(_season_repo(), season_id))


@app.route('/api/seasons/<season_id>/seeds', methods=['POST'])
@require_admin_key
def api_set_seeds(season_id):
    """Set all 14 seeds and regenerate the bracket."""
    data = _json_body()
    bracket = season_ops.set_seeds(_season_repo(), season_id, data.get('seeds'))
    app.logger.info(f'Season {season_id}: seeds set, {len(bracket["games"])} games generated')
    return jsonify({'seeds': bracket['seeds'], 'games': bracket['games']})


@app.route('/api/seasons/<season_id>/seeds/<conference>/<int:rank>', methods=['PUT'])
@require_admin_key
def api_set_seed(season_id, conference, rank):
    """Replace the team holding one seed; an existing bracket is regenerated."""
    data = _json_body()
    seed = season_ops.set_seed(_season_repo(), season_id, conference, rank, data.get('team'))
    return jsonify(seed)


@app.route('/api/seasons/<season_id>/bracket', methods=['GET'])
def api_get_bracket(season_id):
    settings = _settings()
    games = season_ops.get_bracket(_season_repo(settings), season_id)
    return jsonify({
        'season': season_id,
        'conference_labels': settings['conference_labels'],
        'games': games,
    })


@app.route('/api/seasons/<season_id>/bracket', methods=['POST'])
@require_admin_key
def api_generate_bracket(season_id):
    games = season_ops.generate_bracket(_season_repo(), season_id)
    app.logger.info(f'Season {season_id}: bracket regenerated')
    return jsonify({'success': True, 'games': games})


@app.route('/api/seasons/<season_id>/games', methods=['DELETE'])
@require_admin_key
def api_reset_games(season_id):
    deleted = season_ops.reset_games(_season_repo(), season_id)
    return jsonify({'success': True, 'deleted_count': deleted})


@app.route('/api/seasons/<season_id>/games/<int:game_id>/winner', methods=['POST'])
@require_admin_key
def api_record_winner(season_id, game_id):
    """Record a game winner; later rounds are re-seeded before the response."""
    data = _json_body()
    winner = data.get('winner')
    if not winner:
        return jsonify({'error': 'Winner required'}), 400

    settings = _settings()
    result = season_ops.record_winner(_season_repo(settings), season_id, game_id, winner,
                                      settings['completion_gate'])
    return jsonify({'success': True, **result})


@app.route('/api/seasons/<season_id>/games/<int:game_id>', methods=['PATCH'])
@require_admin_key
def api_link_external_event(season_id, game_id):
    data = _json_body()
    game = season_ops.link_external_event(_season_repo(), season_id, game_id, data.get('external_id'))
    return jsonify(game)


@app.route('/api/seasons/<season_id>/sync-scores', methods=['POST'])
@require_admin_key
def api_sync_scores(season_id):
    settings = _settings()
    updated = sync_season_scores(
        _season_repo(settings), season_id,
        completion_gate=settings['completion_gate'],
        url=SCOREBOARD_URL,
        timeout=settings['scoreboard_timeout_seconds'],
    )
    return jsonify({'success': True, 'updated_count': updated})


@app.route('/api/scoreboard/events', methods=['GET'])
@require_admin_key
def api_scoreboard_events():
    """Postseason scoreboard events, to find the external id of each game."""
    try:
        year = int(request.args.get('year', datetime.now().year))
    except ValueError:
        return jsonify({'error': 'year must be a number'}), 400
    events = list_playoff_events(year, url=SCOREBOARD_URL, timeout=_settings()['scoreboard_timeout_seconds'])
    for event in events:
        event['winner'] = sorted(event['winner']) if event['winner'] else None
        event['teams'] = [sorted(t) for t in event['teams']]
    return jsonify(events)


# ---------------------------------------------------------------------------
# Contests
# ---------------------------------------------------------------------------

@app.route('/api/contests', methods=['GET'])
def api_list_contests():
    contests = _contest_repo().list_contests(request.args.get('season'))
    return jsonify([c.to_dict(include_participants=False) for c in contests])


@app.route('/api/contests', methods=['POST'])
@require_admin_key
def api_create_contest():
    data = _json_body()
    settings = _settings()
    contest = contest_ops.create_contest(
        _contest_repo(settings), _season_repo(settings),
        data.get('season'), data.get('name'), data.get('scoring', 'simple'),
    )
    return jsonify(contest.to_dict(include_participants=False)), 201


@app.route('/api/contests/<contest_id>', methods=['GET'])
def api_get_contest(contest_id):
    contest = _contest_repo().load(contest_id)
    data = contest.to_dict(include_participants=False)
    data['participants'] = [
        {'id': p.id, 'name': p.name, 'submitted_at': p.submitted_at} for p in contest.participants
    ]
    return jsonify(data)


@app.route('/api/contests/<contest_id>/status', methods=['PATCH'])
@require_admin_key
def api_set_contest_status(contest_id):
    data = _json_body()
    contest = contest_ops.set_contest_status(_contest_repo(), contest_id, data.get('status'))
    return jsonify(contest.to_dict(include_participants=False))


@app.route('/api/contests/<contest_id>', methods=['DELETE'])
@require_admin_key
def api_delete_contest(contest_id):
    contest_ops.delete_contest(_contest_repo(), contest_id)
    return jsonify({'success': True})


@app.route('/api/contests/<contest_id>/games', methods=['GET'])
def api_contest_games(contest_id):
    settings = _settings()
    contest = _contest_repo(settings).load(contest_id)
    return jsonify(season_ops.get_bracket(_season_repo(settings), contest.season))


@app.route('/api/contests/<contest_id>/participants', methods=['POST'])
def api_submit_predictions(contest_id):
    """Register a participant with picks for every game of the season."""
    data = _json_body()
    settings = _settings()
    contests = _contest_repo(settings)
    contest = contests.load(contest_id)
    bracket = _season_repo(settings).load(contest.season)
    participant = contest_ops.submit_predictions(
        contests, contest_id, data.get('name'), data.get('predictions'), bracket,
        max_participants=settings['max_participants_per_contest'],
    )
    return jsonify({'success': True, 'participant': participant.to_dict()}), 201


@app.route('/api/contests/<contest_id>/participants/<int:participant_id>/bracket', methods=['GET'])
def api_participant_bracket(contest_id, participant_id):
    settings = _settings()
    contest = _contest_repo(settings).load(contest_id)
    games = _season_repo(settings).load(contest.season).get_games_for_season()
    return jsonify(participant_bracket(contest, participant_id, games, settings))


@app.route('/api/contests/<contest_id>/participants/<int:participant_id>', methods=['DELETE'])
@require_admin_key
def api_delete_participant(contest_id, participant_id):
    contest_ops.delete_participant(_contest_repo(), contest_id, participant_id)
    return jsonify({'success': True})


@app.route('/api/contests/<contest_id>/leaderboard', methods=['GET'])
def api_leaderboard(contest_id):
    settings = _settings()
    contest = _contest_repo(settings).load(contest_id)
    games = _season_repo(settings).load(contest.season).get_games_for_season()
    return jsonify({
        'contest': contest.to_dict(include_participants=False),
        'leaderboard': calculate_leaderboard(contest, games, settings),
        'stats': leaderboard_stats(games),
    })


if __name__ == '__main__':
    app.run(debug=True, port=5000)
