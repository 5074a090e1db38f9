"""Durable records consumed by the session core.

Quizzes are read once, when a session is created, and snapshotted into
immutable ``QuestionSpec`` values. The only writes are the end-of-game reward
grants and per-account stats.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from livequiz import db
from livequiz.errors import QuizNotFound, ValidationError
from livequiz.models import Account, Quiz
from .state import QuestionSpec

MIN_OPTIONS = 2
MAX_OPTIONS = 4


def validate_question(position: int, text: str, options: Sequence[Tuple[int, str, bool]],
                      points: int, time_limit: int) -> None:
    """Check one question's shape.

    ``options`` holds (option_index, text, is_correct) triples. ``position`` is
    1-based and only used in messages.
    """
    if not (text or '').strip():
        raise ValidationError(f'Question {position} is empty')
    if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        raise ValidationError(f'Question {position} needs {MIN_OPTIONS} to {MAX_OPTIONS} answer options')
    indices = [index for index, _, _ in options]
    if sorted(indices) != list(range(len(options))):
        raise ValidationError(f'Question {position} has invalid option indices {indices}')
    if any(not (option_text or '').strip() for _, option_text, _ in options):
        raise ValidationError(f'Question {position} has an empty answer option')
    correct = [index for index, _, is_correct in options if is_correct]
    if len(correct) != 1:
        raise ValidationError(f'Question {position} needs exactly one correct answer')
    if not isinstance(points, int) or points <= 0:
        raise ValidationError(f'Question {position} needs a positive point value')
    if not isinstance(time_limit, int) or time_limit < 1:
        raise ValidationError(f'Question {position} needs a time limit of at least 1 second')


class SqlQuizStore:

    def load_quiz(self, quiz_id: int) -> Tuple[str, List[QuestionSpec]]:
        quiz = db.session.get(Quiz, quiz_id)
        if quiz is None:
            raise QuizNotFound(f'Quiz {quiz_id} not found')
        specs = []
        for position, question in enumerate(quiz.questions, start=1):
            triples = [(o.option_index, o.text, bool(o.is_correct)) for o in question.options]
            validate_question(position, question.text, triples, question.points, question.time_limit)
            ordered = sorted(triples)
            specs.append(QuestionSpec(
                id=question.id,
                text=question.text,
                options=tuple(text for _, text, _ in ordered),
                correct_index=next(index for index, _, is_correct in ordered if is_correct),
                points=question.points,
                time_limit=question.time_limit,
            ))
        return quiz.title, specs

    def grant_rewards(self, grants: Iterable[dict]) -> int:
        """Apply coin rewards and stats for accounts; one commit for the whole game."""
        granted = 0
        try:
            for grant in grants:
                account_id: Optional[int] = grant.get('account_id')
                if account_id is None:
                    continue
                account = db.session.get(Account, account_id)
                if account is None:
                    continue
                account.coins = (account.coins or 0) + int(grant['coins'])
                account.games_played = (account.games_played or 0) + 1
                account.total_points = (account.total_points or 0) + int(grant.get('score', 0))
                if grant.get('is_winner'):
                    account.wins = (account.wins or 0) + 1
                db.session.add(account)
                granted += 1
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return granted
