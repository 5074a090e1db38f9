"""Answer collection for the open question.

At most one answer is ever accepted per (player, question). The check and the
score update happen under the session lock, so concurrent duplicate
submissions cannot both pass the "not yet answered" test.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from livequiz.errors import PhaseMismatch, PlayerNotFound, ValidationError
from . import scoring
from .modifiers import ModifierManager
from .state import AnswerRecord, AnswerResult, Phase, SessionState


class AnswerCollector:

    def __init__(self, session: SessionState, modifiers: ModifierManager, clock: Callable[[], float]) -> None:
        self._session = session
        self._modifiers = modifiers
        self._clock = clock

    def submit(self, player_id: str, question_id: int, option_index: Optional[int], elapsed_ms: float) -> AnswerResult:
        if option_index is not None and (isinstance(option_index, bool) or not isinstance(option_index, int)):
            raise ValidationError('option_index must be an integer or null')
        session = self._session
        with session.lock:
            question = session.current_question
            if session.phase != Phase.QUESTION or question is None or question.id != question_id:
                raise PhaseMismatch(
                    f'Question {question_id} is not open', phase=session.phase.value
                )
            player = session.players.get(player_id)
            if player is None:
                raise PlayerNotFound(f'Player {player_id} is not in session {session.id}')

            existing = session.answers.get((player_id, question_id))
            if existing is not None:
                return AnswerResult(existing, duplicate=True)

            if option_index is not None and not 0 <= option_index < len(question.options):
                raise ValidationError(f'option_index {option_index} out of range', option_index=option_index)

            record = self._accept(player_id, option_index, elapsed_ms)
            return AnswerResult(record)

    def close_question(self) -> List[AnswerRecord]:
        """Record a missing answer for every player who did not submit."""
        session = self._session
        recorded = []
        with session.lock:
            question = session.current_question
            if question is None:
                return recorded
            for player_id in session.players:
                if (player_id, question.id) not in session.answers:
                    recorded.append(self._accept(player_id, None, question.time_limit * 1000.0))
        return recorded

    def answer_counts(self) -> List[int]:
        session = self._session
        with session.lock:
            question = session.current_question
            if question is None:
                return []
            counts = [0] * len(question.options)
            for answer in session.answers_for(question.id):
                if answer.option_index is not None:
                    counts[answer.option_index] += 1
            return counts

    def answered_count(self) -> int:
        """Players who actively submitted for the current question."""
        session = self._session
        with session.lock:
            question = session.current_question
            if question is None:
                return 0
            return sum(1 for a in session.answers_for(question.id) if a.option_index is not None)

    def all_answered(self) -> bool:
        session = self._session
        with session.lock:
            question = session.current_question
            if question is None or not session.players:
                return False
            return all((pid, question.id) in session.answers for pid in session.players)

    def _accept(self, player_id: str, option_index: Optional[int], elapsed_ms: float) -> AnswerRecord:
        # Caller holds the session lock
        session = self._session
        question = session.current_question
        player = session.players[player_id]

        is_correct = option_index is not None and option_index == question.correct_index
        fraction = scoring.elapsed_fraction(elapsed_ms, question.time_limit)
        streak = player.streak + 1 if is_correct else 0
        multiplier, applied = (1, None)
        if option_index is not None:
            multiplier, applied = self._modifiers.consume(player_id)
        awarded = scoring.points(is_correct, fraction, question.points, streak, multiplier)

        record = AnswerRecord(
            player_id=player_id,
            question_id=question.id,
            question_index=session.question_index,
            option_index=option_index,
            is_correct=is_correct,
            elapsed_fraction=fraction,
            points=awarded,
            streak=streak,
            submitted_at=self._clock(),
            modifier=applied,
        )
        session.answers[(player_id, question.id)] = record
        player.score += awarded
        player.streak = streak
        return record
