"""
Per-season bracket aggregate: the seeds and games of one season.

All reads and writes of a season's games go through SeasonBracket. The
storage layer loads and saves whole aggregates, so every method here is an
in-memory mutation that only becomes visible once the surrounding
transaction saves the aggregate.
"""
import logging
from typing import Dict, List, Optional

from playoffs.errors import ConsistencyError, NotFoundError, ValidationError
from playoffs.models import (
    CONFERENCES, ROUNDS, SLOTS_PER_ROUND, TBD,
    Game, Seed, downstream_rounds, round_index,
)

logger = logging.getLogger(__name__)


class SeasonBracket:
    def __init__(self, season, seeds=None, games=None, version=0):
        self.season = season
        self.seeds = seeds if seeds else []
        self.games = games if games else []
        self.version = version

    # -- seeds -------------------------------------------------------------

    def get_seeds(self) -> List[Seed]:
        """All seeds ordered by conference then rank."""
        return sorted(self.seeds, key=lambda s: (CONFERENCES.index(s.conference), s.rank))

    def seeds_for_conference(self, conference) -> List[Seed]:
        return [s for s in self.get_seeds() if s.conference == conference]

    def find_seed(self, conference, rank) -> Optional[Seed]:
        for seed in self.seeds:
            if seed.conference == conference and seed.rank == rank:
                return seed
        return None

    def seed_for_team(self, team) -> Optional[Seed]:
        for seed in self.seeds:
            if seed.team == team:
                return seed
        return None

    def seeded_teams(self) -> List[str]:
        return [s.team for s in self.get_seeds()]

    # -- games -------------------------------------------------------------

    def get_games_for_season(self) -> List[Game]:
        """All games in bracket order (round, then slot)."""
        return sorted(self.games, key=lambda g: (round_index(g.round), g.slot))

    def games_in_round(self, round_name) -> List[Game]:
        return sorted((g for g in self.games if g.round == round_name), key=lambda g: g.slot)

    def get_game(self, game_id) -> Game:
        for game in self.games:
            if game.id == game_id:
                return game
        raise NotFoundError(f'Game {game_id} not found in season {self.season}')

    def get_game_by_slot(self, round_name, slot) -> Game:
        for game in self.games:
            if game.round == round_name and game.slot == slot:
                return game
        raise NotFoundError(f'No {round_name} game in slot {slot} for season {self.season}')

    def add_game(self, round_name, slot, home=TBD, away=TBD, home_seed=None, away_seed=None,
                 is_actual_matchup=False) -> Game:
        if round_name not in ROUNDS:
            raise ValidationError(f'Unknown round: {round_name}')
        if any(g.round == round_name and g.slot == slot for g in self.games):
            raise ConsistencyError(f'Slot {slot} of {round_name} already exists in season {self.season}')
        game_id = max((g.id for g in self.games), default=0) + 1
        game = Game(game_id, self.season, round_name, slot, home, away, home_seed, away_seed,
                    is_actual_matchup=is_actual_matchup)
        self.games.append(game)
        return game

    def delete_games(self) -> int:
        count = len(self.games)
        self.games = []
        return count

    def update_game_matchup(self, game, home, away, home_seed, away_seed, clear_result=False):
        """Write a computed matchup into a game and mark it as the real matchup."""
        game.home = home
        game.away = away
        game.home_seed = home_seed
        game.away_seed = away_seed
        game.is_actual_matchup = True
        if clear_result:
            game.winner = None
            game.completed = False

    def record_result(self, game_id, winner) -> Game:
        """Set the winner of a game. The winner must be one of its two teams."""
        game = self.get_game(game_id)
        if not game.is_actual_matchup:
            raise ValidationError(f'Game {game_id} is a placeholder; its matchup is not decided yet')
        if winner not in game.teams:
            raise ValidationError(f'{winner!r} is not playing in game {game_id} ({game.home} vs {game.away})')
        game.winner = winner
        game.completed = True
        return game

    def clear_downstream_winners(self, from_round) -> int:
        """Reset every game in rounds strictly after from_round to a TBD placeholder.

        Results and matchups are both dropped, so no winner can be recorded
        for a later game until the engine derives its teams again.
        Returns the number of games that actually held a result.
        """
        cleared = 0
        later = set(downstream_rounds(from_round))
        for game in self.games:
            if game.round in later:
                if game.winner is not None or game.completed:
                    cleared += 1
                game.winner = None
                game.completed = False
                game.home = game.away = TBD
                game.home_seed = game.away_seed = None
                game.is_actual_matchup = False
        return cleared

    def check_format(self):
        """Raise ConsistencyError unless every round holds exactly its slots.

        A season without games (bracket not generated yet) passes.
        """
        if not self.games:
            return
        for round_name in ROUNDS:
            slots = sorted(g.slot for g in self.games if g.round == round_name)
            expected = list(range(1, SLOTS_PER_ROUND[round_name] + 1))
            if slots != expected:
                raise ConsistencyError(
                    f'Season {self.season}: {round_name} has slots {slots}, expected {expected}'
                )

    def champion(self) -> Optional[str]:
        finals = self.games_in_round(ROUNDS[-1])
        if finals and finals[0].is_decided:
            return finals[0].winner
        return None

    # -- serialization -----------------------------------------------------

    def to_dict(self) -> Dict:
        return {
            'season': self.season,
            'version': self.version,
            'seeds': [s.to_dict() for s in self.get_seeds()],
            'games': [g.to_dict() for g in self.get_games_for_season()],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'SeasonBracket':
        season = data['season']
        return cls(
            season,
            [Seed.from_dict(season, s) for s in data.get('seeds') or []],
            [Game.from_dict(season, g) for g in data.get('games') or []],
            int(data.get('version', 0)),
        )

    def __repr__(self):
        return f"SeasonBracket(season={self.season}, seeds={len(self.seeds)}, games={len(self.games)}, version={self.version})"
