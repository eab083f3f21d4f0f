"""
Tests for the Flask JSON API.
"""
import pytest
import sys
import os
from unittest.mock import patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import make_picks, make_seeds


@pytest.fixture
def season(client, admin_headers):
    """A season created over the API with seeds set."""
    response = client.post('/api/seasons', json={'name': 'Playoffs 2025', 'year': 2025}, headers=admin_headers)
    assert response.status_code == 201
    season_id = response.get_json()['id']
    response = client.post(f'/api/seasons/{season_id}/seeds', json={'seeds': make_seeds()}, headers=admin_headers)
    assert response.status_code == 200
    return season_id


@pytest.fixture
def contest_id(client, admin_headers, season):
    response = client.post('/api/contests', json={'season': season, 'name': 'Office Pool', 'scoring': 'weighted'},
                           headers=admin_headers)
    assert response.status_code == 201
    return response.get_json()['id']


def submit(client, contest_id, name, overrides=None):
    games = client.get(f'/api/contests/{contest_id}/games').get_json()
    return client.post(f'/api/contests/{contest_id}/participants',
                       json={'name': name, 'predictions': make_picks(games, overrides)})


class TestAdminKey:
    """Admin endpoints require the bearer key."""

    def test_missing_header(self, client):
        response = client.post('/api/seasons', json={'name': 'X', 'year': 2025})
        assert response.status_code == 401

    def test_wrong_key(self, client):
        response = client.post('/api/seasons', json={'name': 'X', 'year': 2025},
                               headers={'Authorization': 'Bearer wrong'})
        assert response.status_code == 401

    def test_key_not_configured(self, client, admin_headers, monkeypatch):
        monkeypatch.delenv('ADMIN_API_KEY')
        response = client.post('/api/seasons', json={'name': 'X', 'year': 2025}, headers=admin_headers)
        assert response.status_code == 500

    def test_basic_auth_rejected(self, client):
        response = client.post('/api/seasons', json={'name': 'X', 'year': 2025},
                               headers={'Authorization': 'Basic dGVzdDp0ZXN0'})
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Admin key required'

    def test_key_read_per_request(self, client, monkeypatch):
        monkeypatch.setenv('ADMIN_API_KEY', 'rotated')
        response = client.post('/api/seasons', json={'name': 'X', 'year': 2025},
                               headers={'Authorization': 'Bearer rotated'})
        assert response.status_code == 201

    def test_public_reads_need_no_key(self, client, season):
        assert client.get('/api/seasons').status_code == 200
        assert client.get(f'/api/seasons/{season}/bracket').status_code == 200


class TestSeasonsApi:

    def test_list_seasons(self, client, season):
        data = client.get('/api/seasons').get_json()
        assert [s['id'] for s in data] == [season]

    def test_duplicate_season(self, client, admin_headers, season):
        response = client.post('/api/seasons', json={'name': 'Playoffs 2025', 'year': 2025}, headers=admin_headers)
        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_non_json_body(self, client, admin_headers):
        response = client.post('/api/seasons', data='nope', headers=admin_headers)
        assert response.status_code == 400

    def test_bracket(self, client, season):
        data = client.get(f'/api/seasons/{season}/bracket').get_json()
        assert data['conference_labels'] == {'A': 'AFC', 'B': 'NFC'}
        assert len(data['games']) == 13
        assert data['games'][0]['home'] == 'Bills'

    def test_unknown_season(self, client):
        assert client.get('/api/seasons/missing/bracket').status_code == 404

    def test_get_seeds(self, client, season):
        seeds = client.get(f'/api/seasons/{season}/seeds').get_json()
        assert len(seeds) == 14

    def test_incomplete_seeds(self, client, admin_headers, season):
        response = client.post(f'/api/seasons/{season}/seeds', json={'seeds': make_seeds()[:10]},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_set_single_seed_regenerates(self, client, admin_headers, season):
        response = client.put(f'/api/seasons/{season}/seeds/A/7', json={'team': 'Jaguars'}, headers=admin_headers)
        assert response.get_json() == {'conference': 'A', 'rank': 7, 'team': 'Jaguars'}
        games = client.get(f'/api/seasons/{season}/bracket').get_json()['games']
        assert games[0]['away'] == 'Jaguars'

        response = client.post(f'/api/seasons/{season}/games/1/winner', json={'winner': 'Jaguars'},
                               headers=admin_headers)
        assert response.status_code == 200

    def test_reset_games(self, client, admin_headers, season):
        response = client.delete(f'/api/seasons/{season}/games', headers=admin_headers)
        assert response.get_json() == {'success': True, 'deleted_count': 13}

    def test_archive_season(self, client, admin_headers, season):
        response = client.patch(f'/api/seasons/{season}/status', json={'status': 'archived'}, headers=admin_headers)
        assert response.get_json()['status'] == 'archived'
        assert client.get('/api/seasons?status=active').get_json() == []


class TestRecordWinnerApi:

    def test_winner_required(self, client, admin_headers, season):
        response = client.post(f'/api/seasons/{season}/games/1/winner', json={}, headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Winner required'

    def test_invalid_winner(self, client, admin_headers, season):
        response = client.post(f'/api/seasons/{season}/games/1/winner', json={'winner': 'Chiefs'},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_unknown_game(self, client, admin_headers, season):
        response = client.post(f'/api/seasons/{season}/games/99/winner', json={'winner': 'Bills'},
                               headers=admin_headers)
        assert response.status_code == 404

    def test_round_completion_reseeds(self, client, admin_headers, season):
        winners = ['Steelers', 'Ravens', 'Texans', 'Cowboys', 'Lions', 'Buccaneers']
        for game_id, winner in enumerate(winners, start=1):
            response = client.post(f'/api/seasons/{season}/games/{game_id}/winner', json={'winner': winner},
                                   headers=admin_headers)
            assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['champion'] is None
        assert len(data['changes']) == 4

        games = client.get(f'/api/seasons/{season}/bracket').get_json()['games']
        assert (games[6]['home'], games[6]['away']) == ('Chiefs', 'Steelers')

    def test_link_external_event(self, client, admin_headers, season):
        response = client.patch(f'/api/seasons/{season}/games/1', json={'external_id': '401'}, headers=admin_headers)
        assert response.get_json()['external_id'] == '401'

    def test_sync_scores(self, client, admin_headers, season):
        with patch('app.sync_season_scores', return_value=2) as sync:
            response = client.post(f'/api/seasons/{season}/sync-scores', headers=admin_headers)
        assert response.get_json() == {'success': True, 'updated_count': 2}
        assert sync.call_args[0][1] == season

    def test_scoreboard_events(self, client, admin_headers):
        events = [{'id': '401', 'name': 'x', 'completed': True, 'winner': {'BUF', 'Bills'},
                   'teams': [{'BUF', 'Bills'}, {'PIT', 'Steelers'}]}]
        with patch('app.list_playoff_events', return_value=events):
            response = client.get('/api/scoreboard/events?year=2025', headers=admin_headers)
        assert response.get_json()[0]['winner'] == ['BUF', 'Bills']

    def test_scoreboard_events_bad_year(self, client, admin_headers):
        assert client.get('/api/scoreboard/events?year=soon', headers=admin_headers).status_code == 400


class TestContestsApi:

    def test_list_contests(self, client, season, contest_id):
        data = client.get(f'/api/contests?season={season}').get_json()
        assert [c['id'] for c in data] == [contest_id]
        assert 'participants' not in data[0]

    def test_invalid_scoring(self, client, admin_headers, season):
        response = client.post('/api/contests', json={'season': season, 'name': 'P', 'scoring': 'x'},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_submit_predictions(self, client, contest_id):
        response = submit(client, contest_id, 'Alice')
        assert response.status_code == 201
        assert response.get_json()['participant']['id'] == 1

        contest = client.get(f'/api/contests/{contest_id}').get_json()
        assert contest['participants'][0]['name'] == 'Alice'
        assert 'predictions' not in contest['participants'][0]

    def test_duplicate_name(self, client, contest_id):
        submit(client, contest_id, 'Alice')
        response = submit(client, contest_id, 'Alice')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Name already taken in this contest'

    def test_incomplete_picks(self, client, contest_id):
        response = client.post(f'/api/contests/{contest_id}/participants',
                               json={'name': 'Alice', 'predictions': []})
        assert response.status_code == 400

    def test_capacity(self, client, contest_id, temp_data_dir):
        (temp_data_dir / 'settings.yaml').write_text('max_participants_per_contest: 1\n')
        submit(client, contest_id, 'Alice')
        assert submit(client, contest_id, 'Bob').status_code == 429

    def test_leaderboard(self, client, admin_headers, season, contest_id):
        submit(client, contest_id, 'Alice')
        submit(client, contest_id, 'Bob', {1: 'Steelers'})
        client.post(f'/api/seasons/{season}/games/1/winner', json={'winner': 'Steelers'}, headers=admin_headers)

        data = client.get(f'/api/contests/{contest_id}/leaderboard').get_json()
        assert data['contest']['scoring'] == 'weighted'
        assert [(e['name'], e['score'], e['rank']) for e in data['leaderboard']] == [('Bob', 1, 1), ('Alice', 0, 2)]
        assert data['stats']['completed_games'] == 1

    def test_participant_bracket(self, client, contest_id):
        submit(client, contest_id, 'Alice')
        data = client.get(f'/api/contests/{contest_id}/participants/1/bracket').get_json()
        assert len(data['games']) == 13
        assert client.get(f'/api/contests/{contest_id}/participants/9/bracket').status_code == 404

    def test_delete_participant(self, client, admin_headers, contest_id):
        submit(client, contest_id, 'Alice')
        response = client.delete(f'/api/contests/{contest_id}/participants/1', headers=admin_headers)
        assert response.status_code == 200
        assert client.get(f'/api/contests/{contest_id}').get_json()['participants'] == []

    def test_contest_status_and_delete(self, client, admin_headers, contest_id):
        response = client.patch(f'/api/contests/{contest_id}/status', json={'status': 'completed'},
                                headers=admin_headers)
        assert response.get_json()['status'] == 'completed'
        assert client.delete(f'/api/contests/{contest_id}', headers=admin_headers).status_code == 200
        assert client.get(f'/api/contests/{contest_id}').status_code == 404
