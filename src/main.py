# Command-line entry point: build a playoff bracket from seeds, replay results through the re-seeding engine
# and optionally score a pool of picks against it

import argparse
import logging
import sys
import yaml
from playoffs.bracket import SeasonBracket
from playoffs.errors import PlayoffError
from playoffs.models import CONFERENCES, ROUNDS, SCORING_POLICIES, SEEDS_PER_CONFERENCE, Contest, Participant, Prediction
from playoffs.reseeding import record_winner
from playoffs.scoring import calculate_leaderboard
from playoffs.seeding import set_seeds


def load_seeds(file_path):
    """Read seeds as {conference: [team ranked 1, team ranked 2, ...]}."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    seeds = []
    for conference in CONFERENCES:
        teams = data.get(conference) or []
        for rank, team in enumerate(teams[:SEEDS_PER_CONFERENCE], start=1):
            seeds.append({'conference': conference, 'rank': rank, 'team': team})
    return seeds


def load_results(file_path):
    """Read results as {round: [winner of slot 1, winner of slot 2, ...]}; empty entries are skipped."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        return yaml.safe_load(file) or {}


def apply_results(bracket, results, completion_gate='round'):
    for round_name in ROUNDS:
        for slot, winner in enumerate(results.get(round_name) or [], start=1):
            if not winner:
                continue
            game = bracket.get_game_by_slot(round_name, slot)
            record_winner(bracket, game.id, winner, completion_gate)


def load_picks(file_path, bracket, scoring='simple'):
    """Read picks as {participant: {round: [predicted winner of slot 1, ...]}} into a contest.

    Slots left empty or beyond the round's size are not picked.
    """
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}

    contest = Contest('cli', bracket.season, 'cli', scoring)
    for name, rounds in data.items():
        predictions = []
        for round_name in ROUNDS:
            picks = (rounds or {}).get(round_name) or []
            for game in bracket.games_in_round(round_name):
                if game.slot <= len(picks) and picks[game.slot - 1]:
                    predictions.append(Prediction(game.id, picks[game.slot - 1]))
        contest.participants.append(Participant(contest.next_participant_id(), str(name), predictions=predictions))
    return contest


def print_leaderboard(contest, bracket):
    print(f"\n# Leaderboard ({contest.scoring})")
    for entry in calculate_leaderboard(contest, bracket.get_games_for_season()):
        print(f"  {entry['rank']}. {entry['name']}  {entry['score']:g}  "
              f"({entry['correct_picks']} correct, {entry['pending_picks']} pending)")


def print_bracket(bracket):
    for round_name in ROUNDS:
        print(f"\n# {round_name.capitalize()}")
        for game in bracket.games_in_round(round_name):
            home = f"#{game.home_seed} {game.home}" if game.home_seed else game.home
            away = f"#{game.away_seed} {game.away}" if game.away_seed else game.away
            line = f"  {game.slot}. {home} vs {away}"
            if game.is_decided:
                line += f"  -> {game.winner}"
            print(line)
    champion = bracket.champion()
    if champion:
        print(f"\nChampion: {champion}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Generate a re-seeded playoff bracket from seeds and results.')
    parser.add_argument('seeds', help='YAML file mapping conference A/B to its seven teams in seed order')
    parser.add_argument('results', nargs='?', help='YAML file mapping round name to winners by slot')
    parser.add_argument('--gate', choices=['round', 'conference'], default='round',
                        help='advance when the whole round is decided (default) or per conference')
    parser.add_argument('--picks', help='YAML file mapping participant name to round name to picked winners by slot')
    parser.add_argument('--scoring', choices=SCORING_POLICIES, default='simple',
                        help='scoring policy for --picks (default: simple)')
    parser.add_argument('-v', '--verbose', action='store_true', help='log matchup changes')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format='%(message)s')

    bracket = SeasonBracket('cli')
    contest = None
    try:
        set_seeds(bracket, load_seeds(args.seeds))
        if args.picks:
            contest = load_picks(args.picks, bracket, args.scoring)
        if args.results:
            apply_results(bracket, load_results(args.results), args.gate)
    except PlayoffError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_bracket(bracket)
    if contest is not None:
        print_leaderboard(contest, bracket)
    return 0


if __name__ == '__main__':
    sys.exit(main())
