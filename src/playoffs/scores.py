"""
Scoreboard sync: pull finished playoff games from the ESPN scoreboard and
record their winners through the same path as a manual admin edit.
"""
import logging
from typing import Dict, List, Optional

import requests

from playoffs import season as season_ops
from playoffs.errors import PlayoffError
from playoffs.storage import SeasonRepository

logger = logging.getLogger(__name__)

DEFAULT_SCOREBOARD_URL = 'https://site.api.espn.com/apis/site/v2/sports/football/nfl/scoreboard'


def fetch_scoreboard(url=DEFAULT_SCOREBOARD_URL, params=None, timeout=10, session=None) -> Optional[Dict]:
    """GET the scoreboard JSON. Returns None if the request fails."""
    http = session or requests
    try:
        response = http.get(url, params=params, timeout=timeout)
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f'Failed to fetch scoreboard from {url}: {e}')
        return None


def parse_events(scoreboard: Optional[Dict]) -> List[Dict]:
    """Flatten scoreboard events to {'id', 'name', 'completed', 'winner', 'teams'}.

    winner and teams hold both the abbreviation and the display name of
    each team, since seasons may register teams under either.
    """
    events = []
    for event in (scoreboard or {}).get('events', []):
        competitions = event.get('competitions') or []
        if not competitions:
            continue
        competition = competitions[0]
        completed = bool(competition.get('status', {}).get('type', {}).get('completed'))
        teams = []
        winner = None
        for competitor in competition.get('competitors', []):
            team = competitor.get('team', {})
            names = {n for n in (team.get('abbreviation'), team.get('displayName')) if n}
            teams.append(names)
            if competitor.get('winner'):
                winner = names
        events.append({
            'id': str(event.get('id')),
            'name': event.get('name'),
            'completed': completed,
            'winner': winner,
            'teams': teams,
        })
    return events


def list_playoff_events(year, url=DEFAULT_SCOREBOARD_URL, timeout=10, session=None) -> List[Dict]:
    """Postseason events played in January and February of year."""
    params = {'dates': f'{year}0101-{year}0228', 'seasontype': 3}
    return parse_events(fetch_scoreboard(url, params=params, timeout=timeout, session=session))


def sync_season_scores(repo: SeasonRepository, season_id, completion_gate='round',
                       url=DEFAULT_SCOREBOARD_URL, timeout=10, session=None) -> int:
    """Record winners for every undecided game linked to a finished event.

    Returns the number of games updated. A scoreboard that cannot be fetched
    updates nothing.
    """
    bracket = repo.load(season_id)
    pending = [g for g in bracket.get_games_for_season() if g.external_id and not g.completed]
    if not pending:
        return 0

    events = {e['id']: e for e in parse_events(fetch_scoreboard(url, timeout=timeout, session=session))}
    updated = 0
    for game in pending:
        event = events.get(game.external_id)
        if not event or not event['completed'] or not event['winner']:
            continue
        matches = [team for team in game.teams if team in event['winner']]
        if len(matches) != 1:
            logger.warning(
                f'Season {season_id}: event {game.external_id} winner {sorted(event["winner"])} '
                f'does not match game {game.id} ({game.home} vs {game.away})'
            )
            continue
        try:
            season_ops.record_winner(repo, season_id, game.id, matches[0], completion_gate)
        except PlayoffError as e:
            logger.warning(f'Season {season_id}: could not record {matches[0]} for game {game.id}: {e}')
            continue
        updated += 1
        logger.info(f'Season {season_id}: scoreboard recorded {matches[0]} as winner of game {game.id}')
    return updated
