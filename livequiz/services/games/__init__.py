"""Game domain services: session phases, answers, scoring and timers.

This package contains the live-session logic that HTTP routes and socket
handlers call into, keeping transport concerns separated from core game
mechanics.
"""

from .coordinator import SessionCoordinator
from .state import AnswerRecord, AnswerResult, LeaderboardEntry, Phase, PlayerState, QuestionSpec, SessionState

__all__ = [
    'SessionCoordinator',
    'AnswerRecord',
    'AnswerResult',
    'LeaderboardEntry',
    'Phase',
    'PlayerState',
    'QuestionSpec',
    'SessionState',
]
