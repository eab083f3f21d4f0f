"""
Season operations: the entry points for every change to a season's bracket.

Each mutation runs inside SeasonRepository.transaction, so recording a winner
and the re-seeding cascade it triggers are saved together or not at all.
"""
import logging
from typing import Dict, List

from playoffs import reseeding, seeding
from playoffs.errors import ValidationError
from playoffs.models import SEASON_STATUSES
from playoffs.storage import SeasonRepository

logger = logging.getLogger(__name__)


def create_season(repo: SeasonRepository, name, year):
    return repo.create_season(name, year)


def list_seasons(repo: SeasonRepository, status=None):
    seasons = repo.list_seasons()
    if status:
        seasons = [s for s in seasons if s.status == status]
    return seasons


def set_season_status(repo: SeasonRepository, season_id, status):
    if status not in SEASON_STATUSES:
        raise ValidationError(f'Invalid status {status!r}')
    return repo.set_season_status(season_id, status)


def get_seeds(repo: SeasonRepository, season_id) -> List[Dict]:
    return [s.to_dict() for s in seeding.get_seeds(repo.load(season_id))]


def set_seeds(repo: SeasonRepository, season_id, seeds) -> Dict:
    """Replace the season's seeds and regenerate its bracket."""
    with repo.transaction(season_id) as bracket:
        seeding.set_seeds(bracket, seeds)
    return bracket.to_dict()


def set_seed(repo: SeasonRepository, season_id, conference, rank, team) -> Dict:
    with repo.transaction(season_id) as bracket:
        seed = seeding.set_seed(bracket, conference, rank, team)
    return seed.to_dict()


def generate_bracket(repo: SeasonRepository, season_id) -> List[Dict]:
    """Delete the season's games and rebuild them from its seeds."""
    with repo.transaction(season_id) as bracket:
        seeding.generate_bracket(bracket)
    return [g.to_dict() for g in bracket.get_games_for_season()]


def get_bracket(repo: SeasonRepository, season_id) -> List[Dict]:
    """All games of a season in round/slot order."""
    bracket = repo.load(season_id)
    return [g.to_dict() for g in bracket.get_games_for_season()]


def reset_games(repo: SeasonRepository, season_id) -> int:
    with repo.transaction(season_id) as bracket:
        deleted = bracket.delete_games()
    logger.info(f'Season {season_id}: deleted all {deleted} games')
    return deleted


def record_winner(repo: SeasonRepository, season_id, game_id, winner, completion_gate='round') -> Dict:
    """Record a winner and re-seed the season's later rounds.

    Raises NotFoundError for an unknown season or game and ValidationError if
    winner is not one of the game's teams; in both cases nothing is saved.
    """
    with repo.transaction(season_id) as bracket:
        result = reseeding.record_winner(bracket, game_id, winner, completion_gate)
    result['champion'] = bracket.champion()
    return result


def link_external_event(repo: SeasonRepository, season_id, game_id, external_id) -> Dict:
    """Attach a scoreboard event id to a game so score sync can find it."""
    if external_id is not None and (not isinstance(external_id, str) or not external_id.strip()):
        raise ValidationError('external_id must be a non-empty string or null')
    with repo.transaction(season_id) as bracket:
        game = bracket.get_game(game_id)
        game.external_id = external_id.strip() if external_id else None
    return game.to_dict()
