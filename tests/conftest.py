"""
Shared pytest fixtures for playoff picks tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from playoffs.bracket import SeasonBracket
from playoffs.seeding import set_seeds
from playoffs.storage import ContestRepository, SeasonRepository

ADMIN_KEY = 'test-admin-key'

CONFERENCE_A_TEAMS = ['Chiefs', 'Bills', 'Ravens', 'Texans', 'Browns', 'Dolphins', 'Steelers']
CONFERENCE_B_TEAMS = ['49ers', 'Cowboys', 'Lions', 'Buccaneers', 'Eagles', 'Rams', 'Packers']


def make_seeds():
    seeds = []
    for conference, teams in (('A', CONFERENCE_A_TEAMS), ('B', CONFERENCE_B_TEAMS)):
        for rank, team in enumerate(teams, start=1):
            seeds.append({'conference': conference, 'rank': rank, 'team': team})
    return seeds


CHALK_PICKS = {
    'wildcard': ['Bills', 'Ravens', 'Texans', 'Cowboys', 'Lions', 'Buccaneers'],
    'divisional': ['Chiefs', 'Bills', '49ers', 'Cowboys'],
    'conference': ['Chiefs', '49ers'],
    'final': ['Chiefs'],
}


def make_picks(games, overrides=None):
    """One pick per game, favourites everywhere unless overridden by game id.

    games may be Game objects or game dicts.
    """
    overrides = overrides or {}
    picks = []
    for game in games:
        data = game if isinstance(game, dict) else game.to_dict()
        winner = overrides.get(data['id'], CHALK_PICKS[data['round']][data['slot'] - 1])
        picks.append({'game_id': data['id'], 'predicted_winner': winner})
    return picks


def winners_by_slot(bracket, round_name, winners):
    """Record winners for a round, one per slot in order. Returns the engine results."""
    from playoffs.reseeding import record_winner
    results = []
    for slot, winner in enumerate(winners, start=1):
        game = bracket.get_game_by_slot(round_name, slot)
        results.append(record_winner(bracket, game.id, winner))
    return results


@pytest.fixture
def seeds():
    """All 14 seeds of the test season."""
    return make_seeds()


@pytest.fixture
def bracket():
    """An in-memory season bracket generated from the test seeds."""
    season_bracket = SeasonBracket('test-season-2025')
    set_seeds(season_bracket, make_seeds())
    return season_bracket


@pytest.fixture
def season_repo(tmp_path):
    return SeasonRepository(str(tmp_path), lock_timeout=2)


@pytest.fixture
def contest_repo(tmp_path):
    return ContestRepository(str(tmp_path), lock_timeout=2)


@pytest.fixture
def season_id(season_repo):
    """A stored season with seeds set and the bracket generated."""
    from playoffs import season as season_ops
    season = season_ops.create_season(season_repo, 'Test Season 2025', 2025)
    season_ops.set_seeds(season_repo, season.id, make_seeds())
    return season.id


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the Flask app at a temporary data directory and configure the admin key."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    monkeypatch.setenv('ADMIN_API_KEY', ADMIN_KEY)
    return tmp_path


@pytest.fixture
def client(temp_data_dir):
    """Create a test client bound to the temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def admin_headers():
    return {'Authorization': f'Bearer {ADMIN_KEY}'}
