from livequiz.services.games import leaderboard
from livequiz.services.games.state import PlayerState


def _player(pid, score, order, account_id=None):
    return PlayerState(id=pid, nickname=pid.title(), avatar=None, join_order=order,
                       score=score, account_id=account_id)


def test_ties_go_to_the_first_joined():
    a = _player('a', 100, 0)
    b = _player('b', 100, 1)
    entries = leaderboard.snapshot([b, a])
    assert [(e.player_id, e.rank) for e in entries] == [('a', 1), ('b', 2)]


def test_ranks_are_dense_and_ordered_by_score():
    players = [_player('a', 10, 0), _player('b', 300, 1), _player('c', 200, 2), _player('d', 200, 3)]
    entries = leaderboard.snapshot(players)
    assert [e.player_id for e in entries] == ['b', 'c', 'd', 'a']
    assert [e.rank for e in entries] == [1, 2, 3, 4]


def test_rank_delta_against_previous_snapshot():
    a = _player('a', 500, 0)
    b = _player('b', 100, 1)
    first = leaderboard.snapshot([a, b])
    b.score = 900
    second = leaderboard.snapshot([a, b], previous=first)
    deltas = {e.player_id: e.rank_delta for e in second}
    assert deltas == {'b': 1, 'a': -1}


def test_new_players_have_no_delta():
    entries = leaderboard.snapshot([_player('a', 1, 0)], previous=[])
    assert entries[0].rank_delta == 0


def test_reward_schedule():
    assert leaderboard.reward_for_rank(1) == 40
    assert leaderboard.reward_for_rank(2) == 25
    assert leaderboard.reward_for_rank(3) == 15
    assert leaderboard.reward_for_rank(4) == 5
    assert leaderboard.reward_for_rank(17) == 5


def test_rewards_only_granted_to_linked_accounts():
    players = {
        'a': _player('a', 300, 0, account_id=11),
        'b': _player('b', 200, 1),
        'c': _player('c', 100, 2, account_id=12),
        'd': _player('d', 50, 3, account_id=13),
    }
    rewards = leaderboard.compute_rewards(leaderboard.snapshot(players.values()), players)
    by_player = {r['player_id']: r for r in rewards}
    assert by_player['a']['coins'] == 40 and by_player['a']['granted'] and by_player['a']['is_winner']
    assert by_player['b']['coins'] == 25 and not by_player['b']['granted']
    assert by_player['c']['coins'] == 15 and by_player['c']['account_id'] == 12
    assert by_player['d']['coins'] == 5
