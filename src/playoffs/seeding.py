"""
Seed registry and playoff bracket generation.

Each conference sends seven teams. Seed #1 has a bye; the wildcard round is
#2 v #7, #3 v #6 and #4 v #5 with the better seed at home. Later rounds start
as "TBD" placeholders and are filled in by the re-seeding engine.
"""
import logging
from typing import Dict, List

from playoffs.bracket import SeasonBracket
from playoffs.errors import ValidationError
from playoffs.models import (
    CONFERENCES, CONFERENCE, DIVISIONAL, FINAL, SEEDS_PER_CONFERENCE, SLOTS_PER_ROUND, WILDCARD,
    Seed,
)

logger = logging.getLogger(__name__)

# (home rank, away rank) of each wildcard game, in slot order within a conference.
WILDCARD_PAIRINGS = [(2, 7), (3, 6), (4, 5)]


def _validate_seed(conference, rank, team):
    if conference not in CONFERENCES:
        raise ValidationError(f'Unknown conference {conference!r}; expected one of {", ".join(CONFERENCES)}')
    if not isinstance(rank, int) or isinstance(rank, bool) or not 1 <= rank <= SEEDS_PER_CONFERENCE:
        raise ValidationError(f'Seed rank must be an integer between 1 and {SEEDS_PER_CONFERENCE}')
    if not isinstance(team, str) or not team.strip():
        raise ValidationError('Team name is required')


def set_seed(bracket: SeasonBracket, conference, rank, team) -> Seed:
    """Insert or replace the team holding (conference, rank).

    Once games exist, a changed team is a correction: the whole bracket is
    regenerated so no game names the old team.
    """
    _validate_seed(conference, rank, team)
    team = team.strip()
    holder = bracket.seed_for_team(team)
    if holder and (holder.conference, holder.rank) != (conference, rank):
        raise ValidationError(f'{team} is already seeded #{holder.rank} in conference {holder.conference}')

    seed = bracket.find_seed(conference, rank)
    if seed and seed.team == team:
        return seed
    if seed:
        logger.info(f'Season {bracket.season}: {conference} #{rank} changed from {seed.team} to {team}')
        seed.team = team
    else:
        seed = Seed(bracket.season, conference, rank, team)
        bracket.seeds.append(seed)

    if bracket.games:
        generate_bracket(bracket)
    return seed


def get_seeds(bracket: SeasonBracket) -> List[Seed]:
    return bracket.get_seeds()


def seeds_complete(bracket: SeasonBracket) -> bool:
    return all(len(bracket.seeds_for_conference(c)) == SEEDS_PER_CONFERENCE for c in CONFERENCES)


def generate_bracket(bracket: SeasonBracket) -> SeasonBracket:
    """Rebuild every game of the season from its seeds.

    Raises ValidationError without touching the games unless both conferences
    have all seven seeds.
    """
    if not seeds_complete(bracket):
        counts = ', '.join(f'{c}={len(bracket.seeds_for_conference(c))}' for c in CONFERENCES)
        raise ValidationError(f'Seeds incomplete: each conference needs {SEEDS_PER_CONFERENCE} seeds ({counts})')

    deleted = bracket.delete_games()
    if deleted:
        logger.info(f'Season {bracket.season}: deleted {deleted} games before regenerating the bracket')

    slot = 1
    for conference in CONFERENCES:
        for home_rank, away_rank in WILDCARD_PAIRINGS:
            home = bracket.find_seed(conference, home_rank)
            away = bracket.find_seed(conference, away_rank)
            bracket.add_game(WILDCARD, slot, home.team, away.team, home.rank, away.rank,
                             is_actual_matchup=True)
            slot += 1

    for round_name in (DIVISIONAL, CONFERENCE, FINAL):
        for round_slot in range(1, SLOTS_PER_ROUND[round_name] + 1):
            bracket.add_game(round_name, round_slot)

    bracket.check_format()
    logger.info(f'Season {bracket.season}: generated {len(bracket.games)} games')
    return bracket


def set_seeds(bracket: SeasonBracket, seeds: List[Dict]) -> SeasonBracket:
    """Replace all seeds of the season at once and regenerate the bracket.

    seeds is a list of {'conference', 'rank', 'team'} dicts covering all
    fourteen positions. The whole list is validated before anything changes.
    """
    if not isinstance(seeds, list):
        raise ValidationError('seeds must be a list')
    expected = SEEDS_PER_CONFERENCE * len(CONFERENCES)
    if len(seeds) != expected:
        raise ValidationError(f'Must provide exactly {expected} seeds ({SEEDS_PER_CONFERENCE} per conference)')

    positions = set()
    teams = set()
    for entry in seeds:
        if not isinstance(entry, dict):
            raise ValidationError('Each seed must have conference, rank and team')
        conference, rank, team = entry.get('conference'), entry.get('rank'), entry.get('team')
        _validate_seed(conference, rank, team)
        if (conference, rank) in positions:
            raise ValidationError(f'Duplicate seed {conference} #{rank}')
        if team.strip() in teams:
            raise ValidationError(f'{team.strip()} appears more than once')
        positions.add((conference, rank))
        teams.add(team.strip())

    bracket.seeds = [Seed(bracket.season, e['conference'], e['rank'], e['team'].strip()) for e in seeds]
    return generate_bracket(bracket)
