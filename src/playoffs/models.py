"""
Data models for seasons, playoff seeds, games and contests.
"""
from typing import Dict, List, Optional

CONFERENCES = ('A', 'B')
SEEDS_PER_CONFERENCE = 7

WILDCARD = 'wildcard'
DIVISIONAL = 'divisional'
CONFERENCE = 'conference'
FINAL = 'final'
ROUNDS = (WILDCARD, DIVISIONAL, CONFERENCE, FINAL)

# Games per round; the first half of each conference-split round belongs to conference A.
SLOTS_PER_ROUND = {
    WILDCARD: 6,
    DIVISIONAL: 4,
    CONFERENCE: 2,
    FINAL: 1,
}

TBD = 'TBD'

SCORING_POLICIES = ('simple', 'weighted', 'both', 'matchup_bonus')
CONTEST_STATUSES = ('open', 'in_progress', 'completed')
SEASON_STATUSES = ('active', 'archived')


def round_index(round_name: str) -> int:
    """Position of a round in bracket order (wildcard is 0)."""
    return ROUNDS.index(round_name)


def downstream_rounds(round_name: str) -> List[str]:
    """Rounds played strictly after the given one."""
    return list(ROUNDS[round_index(round_name) + 1:])


def conference_for_slot(round_name: str, slot: int) -> Optional[str]:
    """Conference owning a slot, or None for the final."""
    if round_name == FINAL:
        return None
    per_conference = SLOTS_PER_ROUND[round_name] // len(CONFERENCES)
    return CONFERENCES[(slot - 1) // per_conference]


class Seed:
    def __init__(self, season, conference, rank, team):
        self.season = season
        self.conference = conference
        self.rank = rank
        self.team = team

    def to_dict(self) -> Dict:
        return {
            'conference': self.conference,
            'rank': self.rank,
            'team': self.team,
        }

    @classmethod
    def from_dict(cls, season, data: Dict) -> 'Seed':
        return cls(season, data['conference'], int(data['rank']), data['team'])

    def __repr__(self):
        return f"Seed(season={self.season}, conference={self.conference}, rank={self.rank}, team={self.team})"


class Game:
    def __init__(self, id, season, round, slot, home=TBD, away=TBD, home_seed=None, away_seed=None,
                 winner=None, completed=False, is_actual_matchup=False, external_id=None):
        self.id = id
        self.season = season
        self.round = round
        self.slot = slot
        self.home = home
        self.away = away
        self.home_seed = home_seed
        self.away_seed = away_seed
        self.winner = winner
        self.completed = completed
        self.is_actual_matchup = is_actual_matchup
        self.external_id = external_id  # scoreboard event id, set by an admin

    @property
    def conference(self) -> Optional[str]:
        return conference_for_slot(self.round, self.slot)

    @property
    def is_decided(self) -> bool:
        return bool(self.completed and self.winner)

    @property
    def teams(self):
        return (self.home, self.away)

    def loser(self) -> Optional[str]:
        if not self.is_decided:
            return None
        return self.away if self.winner == self.home else self.home

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'round': self.round,
            'slot': self.slot,
            'home': self.home,
            'away': self.away,
            'home_seed': self.home_seed,
            'away_seed': self.away_seed,
            'winner': self.winner,
            'completed': self.completed,
            'is_actual_matchup': self.is_actual_matchup,
            'external_id': self.external_id,
        }

    @classmethod
    def from_dict(cls, season, data: Dict) -> 'Game':
        return cls(
            id=int(data['id']),
            season=season,
            round=data['round'],
            slot=int(data['slot']),
            home=data.get('home', TBD),
            away=data.get('away', TBD),
            home_seed=data.get('home_seed'),
            away_seed=data.get('away_seed'),
            winner=data.get('winner'),
            completed=bool(data.get('completed', False)),
            is_actual_matchup=bool(data.get('is_actual_matchup', False)),
            external_id=data.get('external_id'),
        )

    def __repr__(self):
        return (f"Game(id={self.id}, round={self.round}, slot={self.slot}, "
                f"home={self.home}, away={self.away}, winner={self.winner})")


class Prediction:
    def __init__(self, game_id, predicted_winner, predicted_opponent=None):
        self.game_id = game_id
        self.predicted_winner = predicted_winner
        self.predicted_opponent = predicted_opponent

    def to_dict(self) -> Dict:
        return {
            'game_id': self.game_id,
            'predicted_winner': self.predicted_winner,
            'predicted_opponent': self.predicted_opponent,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Prediction':
        return cls(int(data['game_id']), data['predicted_winner'], data.get('predicted_opponent'))

    def __repr__(self):
        return f"Prediction(game_id={self.game_id}, predicted_winner={self.predicted_winner})"


class Participant:
    def __init__(self, id, name, submitted_at=None, predictions=None):
        self.id = id
        self.name = name
        self.submitted_at = submitted_at
        self.predictions = predictions if predictions else []

    def prediction_for(self, game_id) -> Optional[Prediction]:
        for prediction in self.predictions:
            if prediction.game_id == game_id:
                return prediction
        return None

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'submitted_at': self.submitted_at,
            'predictions': [p.to_dict() for p in self.predictions],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Participant':
        return cls(
            int(data['id']),
            data['name'],
            data.get('submitted_at'),
            [Prediction.from_dict(p) for p in data.get('predictions') or []],
        )

    def __repr__(self):
        return f"Participant(id={self.id}, name={self.name}, predictions={len(self.predictions)})"


class Contest:
    def __init__(self, id, season, name, scoring='simple', status='open', created=None, participants=None):
        self.id = id
        self.season = season
        self.name = name
        self.scoring = scoring
        self.status = status
        self.created = created
        self.participants = participants if participants else []

    def get_participant(self, participant_id) -> Optional[Participant]:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def next_participant_id(self) -> int:
        return max((p.id for p in self.participants), default=0) + 1

    def to_dict(self, include_participants=True) -> Dict:
        data = {
            'id': self.id,
            'season': self.season,
            'name': self.name,
            'scoring': self.scoring,
            'status': self.status,
            'created': self.created,
        }
        if include_participants:
            data['participants'] = [p.to_dict() for p in self.participants]
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Contest':
        return cls(
            data['id'],
            data['season'],
            data['name'],
            data.get('scoring', 'simple'),
            data.get('status', 'open'),
            data.get('created'),
            [Participant.from_dict(p) for p in data.get('participants') or []],
        )

    def __repr__(self):
        return f"Contest(id={self.id}, season={self.season}, name={self.name}, scoring={self.scoring})"


class Season:
    def __init__(self, id, name, year, status='active', created=None):
        self.id = id
        self.name = name
        self.year = year
        self.status = status
        self.created = created

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'year': self.year,
            'status': self.status,
            'created': self.created,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Season':
        return cls(data['id'], data['name'], int(data['year']), data.get('status', 'active'), data.get('created'))

    def __repr__(self):
        return f"Season(id={self.id}, name={self.name}, year={self.year}, status={self.status})"
