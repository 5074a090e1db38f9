"""In-memory session model owned by the session coordinator."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class Phase(str, enum.Enum):
    WAITING = 'waiting'
    COUNTDOWN = 'countdown'
    QUESTION = 'question'
    REVEAL = 'reveal'
    LEADERBOARD = 'leaderboard'
    FINISHED = 'finished'
    CLOSED = 'closed'

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.FINISHED, Phase.CLOSED)


@dataclass(frozen=True)
class QuestionSpec:
    """A question as snapshotted when the session is created."""

    id: int
    text: str
    options: Tuple[str, ...]
    correct_index: int
    points: int
    time_limit: int

    def public_payload(self) -> Dict[str, Any]:
        # Never includes the correct option
        return {
            'id': self.id,
            'text': self.text,
            'options': list(self.options),
            'points': self.points,
            'time_limit': self.time_limit,
        }


@dataclass
class PlayerState:
    id: str
    nickname: str
    avatar: Optional[str]
    join_order: int
    account_id: Optional[int] = None
    score: int = 0
    streak: int = 0
    modifiers: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'nickname': self.nickname,
            'avatar': self.avatar,
            'score': self.score,
            'streak': self.streak,
            'modifiers': dict(self.modifiers),
            'has_account': self.account_id is not None,
        }


@dataclass(frozen=True)
class AnswerRecord:
    player_id: str
    question_id: int
    question_index: int
    option_index: Optional[int]
    is_correct: bool
    elapsed_fraction: float
    points: int
    streak: int
    submitted_at: float
    modifier: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'player_id': self.player_id,
            'question_id': self.question_id,
            'question_index': self.question_index,
            'option_index': self.option_index,
            'is_correct': self.is_correct,
            'elapsed_fraction': self.elapsed_fraction,
            'points': self.points,
            'streak': self.streak,
            'modifier': self.modifier,
        }


@dataclass(frozen=True)
class AnswerResult:
    record: AnswerRecord
    duplicate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data['duplicate'] = self.duplicate
        return data


@dataclass(frozen=True)
class LeaderboardEntry:
    player_id: str
    nickname: str
    avatar: Optional[str]
    score: int
    rank: int
    rank_delta: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'player_id': self.player_id,
            'nickname': self.nickname,
            'avatar': self.avatar,
            'score': self.score,
            'rank': self.rank,
            'rank_delta': self.rank_delta,
        }


@dataclass
class SessionState:
    id: str
    quiz_id: int
    quiz_title: str
    questions: Tuple[QuestionSpec, ...]
    host_token: str
    created_at: float
    host_account_id: Optional[int] = None
    phase: Phase = Phase.WAITING
    question_index: int = 0
    phase_entered_at: float = 0.0
    deadline: Optional[float] = None
    # dicts keep insertion order, which is the join order
    players: Dict[str, PlayerState] = field(default_factory=dict)
    answers: Dict[Tuple[str, int], AnswerRecord] = field(default_factory=dict)
    sequence: int = 0
    last_event: Optional[Dict[str, Any]] = None
    previous_snapshot: List[LeaderboardEntry] = field(default_factory=list)
    final_snapshot: List[LeaderboardEntry] = field(default_factory=list)
    rewards: List[Dict[str, Any]] = field(default_factory=list)
    rewards_granted: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def question_ids(self) -> List[int]:
        return [q.id for q in self.questions]

    @property
    def current_question(self) -> Optional[QuestionSpec]:
        if 0 <= self.question_index < len(self.questions):
            return self.questions[self.question_index]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.question_index >= len(self.questions) - 1

    def answers_for(self, question_id: int) -> List[AnswerRecord]:
        return [a for (_, qid), a in self.answers.items() if qid == question_id]
