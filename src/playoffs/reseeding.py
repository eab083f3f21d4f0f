"""
Playoff re-seeding and downstream invalidation.

Real playoff formats do not use a fixed bracket tree: after every round the
surviving teams are re-seeded. This module recomputes the divisional,
conference and final matchups from the seeds and the winners recorded so
far, and clears any recorded result that a changed matchup makes stale.

Rules, applied in round order and each gated on the source round being
complete (every game completed with a winner):

    wildcard -> divisional   per conference, winners sorted by seed; the
                             #1 seed hosts the worst remaining seed (slot 1),
                             the two middle seeds meet (slot 2)
    divisional -> conference per conference, better seed at home
    conference -> final      conference A champion at home

Every computed matchup goes through apply_matchup(). When the teams of a game
change, that game loses its result and every game in every later round goes
back to a TBD placeholder.
Nothing downstream is patched: the next engine run derives it again from
the seeds and the surviving winners.
"""
import logging
from typing import Dict, List

from playoffs.bracket import SeasonBracket
from playoffs.errors import ConsistencyError
from playoffs.models import (
    CONFERENCES, CONFERENCE, DIVISIONAL, FINAL, SLOTS_PER_ROUND, WILDCARD,
    Game,
)

logger = logging.getLogger(__name__)

UNCHANGED = 'unchanged'
ACTIVATED = 'activated'
CHANGED = 'changed'


def is_round_complete(games: List[Game]) -> bool:
    """True when the round has games and every one is completed with a winner."""
    return len(games) > 0 and all(g.is_decided for g in games)


def _conference_slots(round_name, conference) -> List[int]:
    per_conference = SLOTS_PER_ROUND[round_name] // len(CONFERENCES)
    offset = CONFERENCES.index(conference) * per_conference
    return [offset + i for i in range(1, per_conference + 1)]


def _ranked_winners(bracket: SeasonBracket, games: List[Game], conference) -> List[tuple]:
    """(rank, team) of each game's winner, best seed first."""
    ranked = []
    for game in games:
        seed = bracket.seed_for_team(game.winner)
        if seed is None or seed.conference != conference:
            raise ConsistencyError(
                f'Season {bracket.season}: winner {game.winner!r} of game {game.id} has no seed in conference {conference}'
            )
        ranked.append((seed.rank, seed.team))
    return sorted(ranked)


def apply_matchup(bracket: SeasonBracket, game: Game, home, away, home_seed, away_seed) -> str:
    """Write a computed matchup into game, invalidating stale results.

    - same teams, already the real matchup: nothing changes, the winner stays
    - same teams, still a placeholder: the matchup becomes real, winner untouched
    - undecided placeholder: filled in; nothing later was derived from it
    - different teams: the game and every later round lose their results
      and later rounds go back to TBD placeholders

    Returns UNCHANGED, ACTIVATED or CHANGED.
    """
    same_teams = game.home == home and game.away == away
    if same_teams and game.is_actual_matchup:
        return UNCHANGED
    if same_teams or not (game.is_actual_matchup or game.is_decided):
        bracket.update_game_matchup(game, home, away, home_seed, away_seed)
        logger.debug(f'Season {bracket.season}: {game.round} slot {game.slot} set to {home} vs {away}')
        return ACTIVATED

    previous = f'{game.home} vs {game.away}'
    bracket.update_game_matchup(game, home, away, home_seed, away_seed, clear_result=True)
    cleared = bracket.clear_downstream_winners(game.round)
    logger.info(
        f'Season {bracket.season}: {game.round} slot {game.slot} changed from {previous} '
        f'to {home} vs {away}; cleared {cleared} downstream results'
    )
    return CHANGED


def _record(changes, game, outcome):
    if outcome != UNCHANGED:
        changes.append({
            'game_id': game.id,
            'round': game.round,
            'slot': game.slot,
            'home': game.home,
            'away': game.away,
            'change': outcome,
        })


def _source_ready(games: List[Game], conference, completion_gate) -> bool:
    if completion_gate == 'conference':
        return is_round_complete([g for g in games if g.conference == conference])
    return is_round_complete(games)


def _reseed_divisional(bracket, changes, completion_gate):
    wildcard = bracket.games_in_round(WILDCARD)
    for conference in CONFERENCES:
        if not _source_ready(wildcard, conference, completion_gate):
            continue
        winners = _ranked_winners(bracket, [g for g in wildcard if g.conference == conference], conference)
        top = bracket.find_seed(conference, 1)
        if top is None:
            raise ConsistencyError(f'Season {bracket.season}: conference {conference} has no #1 seed')
        worst_rank, worst_team = winners[-1]
        (best_rank, best_team), (middle_rank, middle_team) = winners[0], winners[1]

        bye_slot, other_slot = _conference_slots(DIVISIONAL, conference)
        game = bracket.get_game_by_slot(DIVISIONAL, bye_slot)
        _record(changes, game, apply_matchup(bracket, game, top.team, worst_team, top.rank, worst_rank))
        game = bracket.get_game_by_slot(DIVISIONAL, other_slot)
        _record(changes, game, apply_matchup(bracket, game, best_team, middle_team, best_rank, middle_rank))


def _reseed_conference(bracket, changes, completion_gate):
    divisional = bracket.games_in_round(DIVISIONAL)
    for conference in CONFERENCES:
        if not _source_ready(divisional, conference, completion_gate):
            continue
        winners = _ranked_winners(bracket, [g for g in divisional if g.conference == conference], conference)
        (home_rank, home), (away_rank, away) = winners
        slot, = _conference_slots(CONFERENCE, conference)
        game = bracket.get_game_by_slot(CONFERENCE, slot)
        _record(changes, game, apply_matchup(bracket, game, home, away, home_rank, away_rank))


def _reseed_final(bracket, changes):
    champions = bracket.games_in_round(CONFERENCE)
    if not is_round_complete(champions):
        return
    home, away = champions[0].winner, champions[1].winner
    home_seed, away_seed = bracket.seed_for_team(home), bracket.seed_for_team(away)
    game = bracket.get_game_by_slot(FINAL, 1)
    _record(changes, game, apply_matchup(
        bracket, game, home, away,
        home_seed.rank if home_seed else None,
        away_seed.rank if away_seed else None,
    ))


def reseed_bracket(bracket: SeasonBracket, completion_gate='round') -> List[Dict]:
    """Bring every later-round matchup in line with the recorded winners.

    completion_gate is 'round' (a whole round must be decided before either
    conference advances) or 'conference' (each conference advances on its
    own). The final always waits for both conference champions.

    Returns one entry per game whose matchup was activated or changed.
    """
    bracket.check_format()
    changes = []
    if not bracket.games:
        return changes
    _reseed_divisional(bracket, changes, completion_gate)
    _reseed_conference(bracket, changes, completion_gate)
    _reseed_final(bracket, changes)
    return changes


def record_winner(bracket: SeasonBracket, game_id, winner, completion_gate='round') -> Dict:
    """Record a game's winner and re-seed the bracket in one in-memory transition.

    Re-recording the winner a game already has changes nothing downstream.
    """
    game = bracket.record_result(game_id, winner)
    changes = reseed_bracket(bracket, completion_gate)
    logger.info(f'Season {bracket.season}: {winner} won game {game_id} ({game.round} slot {game.slot})')
    return {'game': game.to_dict(), 'changes': changes}
