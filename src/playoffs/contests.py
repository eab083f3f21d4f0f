"""
Contests ("lobbies"): an admin-created pool of participants predicting one season.
"""
import logging
import secrets
from datetime import datetime
from typing import List

from playoffs.bracket import SeasonBracket
from playoffs.errors import LimitError, NotFoundError, ValidationError
from playoffs.models import CONTEST_STATUSES, SCORING_POLICIES, Contest, Participant, Prediction
from playoffs.storage import ContestRepository, SeasonRepository

logger = logging.getLogger(__name__)


def _new_contest_id() -> str:
    return secrets.token_hex(5)


def create_contest(contests: ContestRepository, seasons: SeasonRepository, season_id, name,
                   scoring='simple') -> Contest:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Contest name is required')
    if scoring not in SCORING_POLICIES:
        raise ValidationError(f'Invalid scoring policy {scoring!r}; expected one of {", ".join(SCORING_POLICIES)}')
    season = seasons.get_season(season_id)
    if season.status != 'active':
        raise ValidationError(f'Season {season_id} is archived')

    contest_id = _new_contest_id()
    while contests.exists(contest_id):
        contest_id = _new_contest_id()
    contest = Contest(contest_id, season.id, name.strip(), scoring, 'open', datetime.now().isoformat())
    contests.create(contest)
    logger.info(f'Created contest {contest_id} for season {season.id} ({scoring} scoring)')
    return contest


def set_contest_status(contests: ContestRepository, contest_id, status) -> Contest:
    if status not in CONTEST_STATUSES:
        raise ValidationError(f'Invalid status {status!r}')
    with contests.transaction(contest_id) as contest:
        contest.status = status
    return contest


def _parse_predictions(picks, bracket: SeasonBracket) -> List[Prediction]:
    """Validate a full set of picks against the season's games."""
    games = {g.id: g for g in bracket.get_games_for_season()}
    if not games:
        raise ValidationError('The season has no games to predict yet')
    if not isinstance(picks, list):
        raise ValidationError('predictions must be a list')
    if len(picks) != len(games):
        raise ValidationError(f'Must predict all {len(games)} games')

    seeded = set(bracket.seeded_teams())
    predictions = []
    seen = set()
    for pick in picks:
        if not isinstance(pick, dict):
            raise ValidationError('Each prediction needs game_id and predicted_winner')
        game_id = pick.get('game_id')
        winner = pick.get('predicted_winner')
        opponent = pick.get('predicted_opponent') or None
        if not isinstance(game_id, int) or game_id not in games:
            raise ValidationError(f'Unknown game {game_id!r}')
        if game_id in seen:
            raise ValidationError(f'Game {game_id} predicted more than once')
        if not isinstance(winner, str) or winner not in seeded:
            raise ValidationError(f'{winner!r} is not a playoff team this season')
        game = games[game_id]
        if game.is_actual_matchup and winner not in game.teams:
            raise ValidationError(f'{winner} is not playing in game {game_id}')
        if opponent is not None and (opponent not in seeded or opponent == winner):
            raise ValidationError(f'Invalid predicted opponent {opponent!r} for game {game_id}')
        seen.add(game_id)
        predictions.append(Prediction(game_id, winner, opponent))
    return predictions


def submit_predictions(contests: ContestRepository, contest_id, name, picks, bracket: SeasonBracket,
                       max_participants=50) -> Participant:
    """Register a participant with one pick for every game of the contest's season."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Participant name is required')
    name = name.strip()

    with contests.transaction(contest_id) as contest:
        if contest.season != bracket.season:
            raise ValidationError(f'Contest {contest_id} does not belong to season {bracket.season}')
        if contest.status == 'completed':
            raise ValidationError('Contest is already completed')
        if len(contest.participants) >= max_participants:
            raise LimitError(f'This contest has reached its maximum capacity ({max_participants} participants)')
        if any(p.name == name for p in contest.participants):
            raise ValidationError('Name already taken in this contest')

        predictions = _parse_predictions(picks, bracket)
        participant = Participant(contest.next_participant_id(), name, datetime.now().isoformat(), predictions)
        contest.participants.append(participant)
    logger.info(f'Contest {contest_id}: {name} submitted {len(predictions)} picks')
    return participant


def delete_participant(contests: ContestRepository, contest_id, participant_id) -> Participant:
    with contests.transaction(contest_id) as contest:
        participant = contest.get_participant(participant_id)
        if participant is None:
            raise NotFoundError(f'Participant {participant_id} not found in contest {contest_id}')
        contest.participants.remove(participant)
    return participant


def delete_contest(contests: ContestRepository, contest_id):
    contests.delete(contest_id)
    logger.info(f'Deleted contest {contest_id}')
