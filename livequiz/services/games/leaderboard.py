"""Leaderboard snapshots and end-of-game rewards."""

from typing import Dict, Iterable, List, Optional

from .state import LeaderboardEntry, PlayerState


COIN_REWARDS = {
    1: 40,
    2: 25,
    3: 15,
}
PARTICIPATION_COINS = 5


def snapshot(players: Iterable[PlayerState], previous: Optional[List[LeaderboardEntry]] = None) -> List[LeaderboardEntry]:
    """Rank players by score, first-joined wins ties.

    Ranks are 1-based with no shared places. ``rank_delta`` is how many places
    a player climbed since ``previous`` (0 when they were not on it).
    """
    ordered = sorted(players, key=lambda p: (-p.score, p.join_order))
    previous_ranks: Dict[str, int] = {e.player_id: e.rank for e in (previous or [])}
    entries = []
    for index, player in enumerate(ordered):
        rank = index + 1
        prior = previous_ranks.get(player.id)
        entries.append(LeaderboardEntry(
            player_id=player.id,
            nickname=player.nickname,
            avatar=player.avatar,
            score=player.score,
            rank=rank,
            rank_delta=(prior - rank) if prior is not None else 0,
        ))
    return entries


def reward_for_rank(rank: int) -> int:
    return COIN_REWARDS.get(rank, PARTICIPATION_COINS)


def compute_rewards(entries: List[LeaderboardEntry], players: Dict[str, PlayerState]) -> List[dict]:
    """One reward line per ranked player; only players with an account are granted."""
    rewards = []
    for entry in entries:
        player = players.get(entry.player_id)
        account_id = player.account_id if player else None
        rewards.append({
            'player_id': entry.player_id,
            'account_id': account_id,
            'rank': entry.rank,
            'score': entry.score,
            'coins': reward_for_rank(entry.rank),
            'is_winner': entry.rank == 1,
            'granted': account_id is not None,
        })
    return rewards
