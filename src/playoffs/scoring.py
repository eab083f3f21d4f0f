"""
Contest scoring and leaderboards.

A pick is correct when the game is completed and its winner equals the
predicted winner. Picks on games that are undecided, or whose result was
cleared by a re-seeding cascade, or that no longer exist, are pending: they
score 0 and are not counted as wrong.

Scoring policies (chosen per contest):

    simple         1 point per correct pick
    weighted       round weight per correct pick (1/2/3/5 by default)
    both           simple and weighted totals, ranked by simple then weighted
    matchup_bonus  weighted points x1.5 when the predicted opponent was also
                   right, x0.75 when only the winner was right
"""
from typing import Dict, List, Optional

from playoffs.errors import NotFoundError, ValidationError
from playoffs.models import Contest, Game, Prediction
from playoffs.settings import get_default_settings

PENDING = 'pending'
CORRECT = 'correct'
INCORRECT = 'incorrect'

POLICY_SORT_KEYS = {
    'simple': lambda e: (e['simple_score'],),
    'weighted': lambda e: (e['weighted_score'],),
    'both': lambda e: (e['simple_score'], e['weighted_score']),
    'matchup_bonus': lambda e: (e['bonus_score'],),
}

POLICY_SCORE_FIELD = {
    'simple': 'simple_score',
    'weighted': 'weighted_score',
    'both': 'simple_score',
    'matchup_bonus': 'bonus_score',
}


def score_prediction(game: Optional[Game], prediction: Prediction, settings: Optional[Dict] = None) -> Dict:
    """Points one prediction earns under every policy."""
    settings = settings or get_default_settings()
    if game is None or not game.is_decided:
        return {'status': PENDING, 'simple': 0, 'weighted': 0, 'bonus': 0}
    if game.winner != prediction.predicted_winner:
        return {'status': INCORRECT, 'simple': 0, 'weighted': 0, 'bonus': 0}

    weighted = settings['round_weights'].get(game.round, 0)
    multipliers = settings['matchup_bonus']
    if prediction.predicted_opponent and prediction.predicted_opponent == game.loser():
        bonus = weighted * multipliers['correct_opponent']
    else:
        bonus = weighted * multipliers['wrong_opponent']
    return {'status': CORRECT, 'simple': 1, 'weighted': weighted, 'bonus': bonus}


def _empty_entry(participant) -> Dict:
    return {
        'participant_id': participant.id,
        'name': participant.name,
        'score': 0,
        'simple_score': 0,
        'weighted_score': 0,
        'bonus_score': 0,
        'correct_picks': 0,
        'total_picks': 0,
        'pending_picks': 0,
    }


def _tally(entry, points):
    entry['total_picks'] += 1
    if points['status'] == PENDING:
        entry['pending_picks'] += 1
    elif points['status'] == CORRECT:
        entry['correct_picks'] += 1
        entry['simple_score'] += points['simple']
        entry['weighted_score'] += points['weighted']
        entry['bonus_score'] += points['bonus']


def calculate_leaderboard(contest: Contest, games: List[Game], settings: Optional[Dict] = None,
                          policy: Optional[str] = None) -> List[Dict]:
    """Rank a contest's participants against the current state of the bracket.

    Entries are sorted by the policy's keys (highest first), then by name.
    Participants with equal keys share a rank.
    """
    policy = policy or contest.scoring
    if policy not in POLICY_SORT_KEYS:
        raise ValidationError(f'Unknown scoring policy {policy!r}')
    games_by_id = {g.id: g for g in games}

    entries = []
    for participant in contest.participants:
        entry = _empty_entry(participant)
        for prediction in participant.predictions:
            _tally(entry, score_prediction(games_by_id.get(prediction.game_id), prediction, settings))
        entry['score'] = entry[POLICY_SCORE_FIELD[policy]]
        entries.append(entry)

    sort_key = POLICY_SORT_KEYS[policy]
    entries.sort(key=lambda e: e['name'])
    entries.sort(key=sort_key, reverse=True)

    previous_key = None
    for position, entry in enumerate(entries, start=1):
        key = sort_key(entry)
        if key != previous_key:
            rank = position
            previous_key = key
        entry['rank'] = rank
    return entries


def participant_bracket(contest: Contest, participant_id, games: List[Game],
                        settings: Optional[Dict] = None) -> Dict:
    """One participant's picks laid over the season's games.

    is_correct is None while a game is pending.
    """
    participant = contest.get_participant(participant_id)
    if participant is None:
        raise NotFoundError(f'Participant {participant_id} not found in contest {contest.id}')

    entry = _empty_entry(participant)
    bracket_games = []
    for game in games:
        prediction = participant.prediction_for(game.id)
        is_correct = None
        if prediction:
            points = score_prediction(game, prediction, settings)
            _tally(entry, points)
            if points['status'] != PENDING:
                is_correct = points['status'] == CORRECT
        game_data = game.to_dict()
        game_data['prediction'] = prediction.to_dict() if prediction else None
        game_data['is_correct'] = is_correct
        bracket_games.append(game_data)

    # Picks on games that no longer exist are still pending picks.
    known = {g.id for g in games}
    for prediction in participant.predictions:
        if prediction.game_id not in known:
            _tally(entry, score_prediction(None, prediction, settings))

    entry['score'] = entry[POLICY_SCORE_FIELD.get(contest.scoring, 'simple_score')]
    return {
        'participant': {'id': participant.id, 'name': participant.name},
        'stats': entry,
        'games': bracket_games,
    }


def leaderboard_stats(games: List[Game]) -> Dict:
    total = len(games)
    completed = sum(1 for g in games if g.is_decided)
    return {
        'completed_games': completed,
        'total_games': total,
        'progress': (completed / total) * 100 if total else 0,
    }
