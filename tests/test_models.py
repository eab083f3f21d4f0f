"""
Unit tests for data models and bracket helpers.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from playoffs.bracket import SeasonBracket
from playoffs.errors import ConsistencyError, NotFoundError, ValidationError
from playoffs.models import (
    CONFERENCE, DIVISIONAL, FINAL, TBD, WILDCARD,
    Contest, Game, Participant, Prediction, Season,
    conference_for_slot, downstream_rounds, round_index,
)


class TestRoundHelpers:

    def test_round_index(self):
        assert round_index(WILDCARD) == 0
        assert round_index(FINAL) == 3

    def test_downstream_rounds(self):
        assert downstream_rounds(WILDCARD) == [DIVISIONAL, CONFERENCE, FINAL]
        assert downstream_rounds(FINAL) == []

    def test_conference_for_slot(self):
        assert [conference_for_slot(WILDCARD, s) for s in range(1, 7)] == ['A'] * 3 + ['B'] * 3
        assert [conference_for_slot(DIVISIONAL, s) for s in range(1, 5)] == ['A', 'A', 'B', 'B']
        assert [conference_for_slot(CONFERENCE, s) for s in (1, 2)] == ['A', 'B']
        assert conference_for_slot(FINAL, 1) is None


class TestGame:

    def test_defaults(self):
        game = Game(1, 's', DIVISIONAL, 1)
        assert game.teams == (TBD, TBD)
        assert game.is_actual_matchup is False
        assert game.is_decided is False
        assert game.loser() is None

    def test_decided_needs_winner_and_completed(self):
        game = Game(1, 's', WILDCARD, 1, 'Bills', 'Steelers', 2, 7, is_actual_matchup=True)
        game.completed = True
        assert game.is_decided is False
        game.winner = 'Steelers'
        assert game.is_decided is True
        assert game.loser() == 'Bills'

    def test_dict_round_trip(self):
        game = Game(3, 's', WILDCARD, 3, 'Texans', 'Browns', 4, 5, 'Browns', True, True, '401')
        assert Game.from_dict('s', game.to_dict()).to_dict() == game.to_dict()


class TestContestModels:

    def test_next_participant_id(self):
        contest = Contest('c', 's', 'Pool')
        assert contest.next_participant_id() == 1
        contest.participants = [Participant(1, 'A'), Participant(4, 'B')]
        assert contest.next_participant_id() == 5

    def test_to_dict_without_participants(self):
        contest = Contest('c', 's', 'Pool', participants=[Participant(1, 'A')])
        assert 'participants' not in contest.to_dict(include_participants=False)
        assert len(contest.to_dict()['participants']) == 1

    def test_prediction_for(self):
        participant = Participant(1, 'A', predictions=[Prediction(2, 'Bills')])
        assert participant.prediction_for(2).predicted_winner == 'Bills'
        assert participant.prediction_for(3) is None

    def test_season_from_dict(self):
        season = Season.from_dict({'id': 'x', 'name': 'X', 'year': '2025'})
        assert season.year == 2025
        assert season.status == 'active'


class TestSeasonBracket:
    """Game store operations on the per-season aggregate."""

    def test_add_game_assigns_ids(self):
        bracket = SeasonBracket('s')
        assert bracket.add_game(WILDCARD, 1).id == 1
        assert bracket.add_game(WILDCARD, 2).id == 2

    def test_add_duplicate_slot(self):
        bracket = SeasonBracket('s')
        bracket.add_game(FINAL, 1)
        with pytest.raises(ConsistencyError):
            bracket.add_game(FINAL, 1)

    def test_add_unknown_round(self):
        with pytest.raises(ValidationError):
            SeasonBracket('s').add_game('superbowl', 1)

    def test_get_game_missing(self, bracket):
        with pytest.raises(NotFoundError):
            bracket.get_game(100)
        with pytest.raises(NotFoundError):
            bracket.get_game_by_slot(FINAL, 2)

    def test_games_for_season_ordered(self, bracket):
        bracket.games.reverse()
        rounds = [g.round for g in bracket.get_games_for_season()]
        assert rounds == [WILDCARD] * 6 + [DIVISIONAL] * 4 + [CONFERENCE] * 2 + [FINAL]

    def test_clear_downstream_counts_results(self, bracket):
        for game in bracket.games_in_round(CONFERENCE):
            game.winner, game.completed = game.home, True
        assert bracket.clear_downstream_winners(DIVISIONAL) == 2
        assert bracket.clear_downstream_winners(DIVISIONAL) == 0

    def test_clear_downstream_resets_matchups(self, bracket):
        game = bracket.get_game(11)
        bracket.update_game_matchup(game, 'Chiefs', 'Bills', 1, 2)
        bracket.record_result(11, 'Bills')
        bracket.clear_downstream_winners(DIVISIONAL)
        assert game.teams == (TBD, TBD)
        assert game.is_actual_matchup is False
        assert game.winner is None
        with pytest.raises(ValidationError):
            bracket.record_result(11, 'Bills')
        assert all(g.is_actual_matchup for g in bracket.games_in_round(WILDCARD))

    def test_update_matchup_marks_actual(self, bracket):
        game = bracket.get_game(13)
        bracket.update_game_matchup(game, 'Chiefs', '49ers', 1, 1)
        assert game.is_actual_matchup is True
        assert game.teams == ('Chiefs', '49ers')

    def test_empty_bracket_passes_format_check(self):
        SeasonBracket('s').check_format()

    def test_dict_round_trip(self, bracket):
        bracket.record_result(1, 'Bills')
        copy = SeasonBracket.from_dict(bracket.to_dict())
        assert copy.to_dict() == bracket.to_dict()
        assert copy.get_game(1).winner == 'Bills'
