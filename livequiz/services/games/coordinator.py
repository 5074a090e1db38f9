"""Session coordinator: the single writer of session phase and question index.

Every mutation of one session runs under that session's lock, and every phase
entry emits exactly one broadcast while the lock is still held. Broadcasts
therefore leave in phase order. Timer callbacks re-check the phase they were
scheduled for and no-op once the session has moved on.
"""

from __future__ import annotations

import logging
import random
import secrets
import threading
import time
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from livequiz.errors import (
    EmptyQuiz, LobbyClosed, NoPlayers, NotSessionHost, PhaseMismatch, PlayerNotFound,
    QuizError, SessionClosed, SessionNotFound, ValidationError,
)
from . import leaderboard
from .answers import AnswerCollector
from .modifiers import DEFAULT_INVENTORY, ModifierManager
from .notifier import SocketIONotifier
from .scheduler import StageScheduler, TimerKey
from .state import AnswerResult, LeaderboardEntry, Phase, PlayerState, SessionState

NICKNAME_MIN_LENGTH = 2
NICKNAME_MAX_LENGTH = 64
RETENTION = 'retention'


class _LiveSession:
    """A session plus the per-session services that mutate it."""

    def __init__(self, state: SessionState, inventory: Dict[str, int], clock: Callable[[], float],
                 rng: Optional[random.Random]) -> None:
        self.state = state
        self.modifiers = ModifierManager(state, inventory, rng)
        self.answers = AnswerCollector(state, self.modifiers, clock)


class SessionCoordinator:

    def __init__(self, store=None, notifier=None, scheduler=None, clock: Callable[[], float] = time.time,
                 logger=None, rng: Optional[random.Random] = None, **settings) -> None:
        self.store = store
        self.notifier = notifier or SocketIONotifier()
        self.scheduler = scheduler or StageScheduler(deferred=True)
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.rng = rng
        self.countdown_sec = 3
        self.min_players = 1
        self.early_reveal = False
        self.retention_sec = 300
        self.inventory = dict(DEFAULT_INVENTORY)
        self.pin_length = 6
        self._sessions: Dict[str, _LiveSession] = {}
        self._registry_lock = threading.Lock()
        self.configure(**settings)

    def init_app(self, app, socketio) -> None:
        from .store import SqlQuizStore

        self.store = SqlQuizStore()
        self.notifier.init_app(app, socketio)
        self.scheduler.init_app(app, socketio)
        self.logger = app.logger
        self.clock = time.time
        cfg = app.config
        self.configure(
            countdown_sec=int(cfg.get('COUNTDOWN_DURATION_SEC', 3)),
            min_players=int(cfg.get('MIN_PLAYERS', 1)),
            early_reveal=bool(cfg.get('EARLY_REVEAL', False)),
            retention_sec=int(cfg.get('SESSION_RETENTION_SEC', 300)),
            inventory=cfg.get('MODIFIER_INVENTORY') or DEFAULT_INVENTORY,
            pin_length=int(cfg.get('PIN_LENGTH', 6)),
        )
        with self._registry_lock:
            self._sessions.clear()

    def configure(self, **settings) -> None:
        for name, value in settings.items():
            if not hasattr(self, name):
                raise TypeError(f'Unknown coordinator setting {name!r}')
            setattr(self, name, dict(value) if name == 'inventory' else value)

    # ---- Registry ----

    def create_session(self, quiz_id: int, host_account_id: Optional[int] = None) -> SessionState:
        title, questions = self.store.load_quiz(quiz_id)
        with self._registry_lock:
            session_id = self._new_pin()
            state = SessionState(
                id=session_id,
                quiz_id=quiz_id,
                quiz_title=title,
                questions=tuple(questions),
                host_token=secrets.token_hex(16),
                host_account_id=host_account_id,
                created_at=self.clock(),
            )
            live = _LiveSession(state, self.inventory, self.clock, self.rng)
            self._sessions[session_id] = live
        self.logger.info(f"[session] created session={session_id} quiz={quiz_id} questions={len(questions)}")
        with state.lock:
            self._enter(live, Phase.WAITING)
        return state

    def get(self, session_id: str) -> SessionState:
        return self._live(session_id).state

    def discard(self, session_id: str) -> bool:
        self.scheduler.cancel(session_id)
        with self._registry_lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            self.logger.info(f"[session] discarded session={session_id}")
        return removed is not None

    def session_ids(self) -> List[str]:
        with self._registry_lock:
            return list(self._sessions)

    # ---- Player surface ----

    def join(self, session_id: str, nickname: str, avatar: Optional[str] = None,
             account_id: Optional[int] = None) -> PlayerState:
        nickname = (nickname or '').strip() if isinstance(nickname, str) else ''
        if not NICKNAME_MIN_LENGTH <= len(nickname) <= NICKNAME_MAX_LENGTH:
            raise ValidationError(
                f'Nickname must be {NICKNAME_MIN_LENGTH} to {NICKNAME_MAX_LENGTH} characters'
            )
        if avatar is not None and not isinstance(avatar, str):
            raise ValidationError('avatar must be a string')
        live = self._live(session_id)
        state = live.state
        with state.lock:
            self._ensure_open(state)
            if state.phase != Phase.WAITING:
                raise LobbyClosed('This game is not in the lobby')
            player = PlayerState(
                id=uuid.uuid4().hex,
                nickname=nickname,
                avatar=avatar,
                join_order=len(state.players),
                account_id=account_id,
                modifiers=live.modifiers.starting_inventory(),
            )
            state.players[player.id] = player
            self.logger.info(f"[join] session={session_id} player={player.id} nickname={nickname!r}")
            self.notifier.notify_host(session_id, 'player_joined', {
                'session_id': session_id,
                'player': player.to_dict(),
                'player_count': len(state.players),
            })
            return player

    def submit(self, session_id: str, player_id: str, question_id: int,
               option_index: Optional[int]) -> AnswerResult:
        live = self._live(session_id)
        state = live.state
        with state.lock:
            self._ensure_open(state)
            elapsed_ms = max(0.0, (self.clock() - state.phase_entered_at) * 1000.0)
            result = live.answers.submit(player_id, question_id, option_index, elapsed_ms)
            if result.duplicate:
                return result
            record = result.record
            self.logger.info(
                f"[answer] session={session_id} player={player_id} question={question_id} "
                f"option={record.option_index} correct={record.is_correct} points={record.points}"
            )
            self.notifier.notify_host(session_id, 'answer_submitted', {
                'session_id': session_id,
                'player_id': player_id,
                'question_id': question_id,
                'answered': live.answers.answered_count(),
                'player_count': len(state.players),
            })
            if self.early_reveal and live.answers.all_answered():
                self.scheduler.cancel(session_id)
                self._enter(live, Phase.REVEAL)
            return result

    def activate_modifier(self, session_id: str, player_id: str, kind: str) -> dict:
        live = self._live(session_id)
        with live.state.lock:
            self._ensure_open(live.state)
            hint = live.modifiers.activate(player_id, kind)
            self.logger.info(f"[modifier] session={session_id} player={player_id} kind={kind}")
            return hint

    def current_state(self, session_id: str, player_id: Optional[str] = None) -> dict:
        """Current phase and payload, re-derived on demand for reconnecting clients."""
        live = self._live(session_id)
        state = live.state
        with state.lock:
            view = dict(state.last_event or {})
            view['server_time'] = self.clock()
            view['remaining'] = self.remaining(state)
            view['player_count'] = len(state.players)
            if player_id is not None:
                player = state.players.get(player_id)
                if player is None:
                    raise PlayerNotFound(f'Player {player_id} is not in session {session_id}')
                view['player'] = self._player_view(live, player)
            return view

    def leaderboard(self, session_id: str) -> List[LeaderboardEntry]:
        state = self._live(session_id).state
        with state.lock:
            return leaderboard.snapshot(state.players.values(), state.previous_snapshot)

    def remaining(self, state: SessionState) -> Optional[float]:
        if state.deadline is None:
            return None
        return max(0.0, state.deadline - self.clock())

    # ---- Host surface ----

    def start(self, session_id: str, host_token: str) -> dict:
        live = self._live(session_id)
        state = live.state
        with state.lock:
            self._require_host(state, host_token)
            if state.phase != Phase.WAITING:
                raise PhaseMismatch('Game already started', phase=state.phase.value)
            if not state.questions:
                raise EmptyQuiz('No questions in this quiz!')
            if len(state.players) < max(1, self.min_players):
                raise NoPlayers(f'At least {max(1, self.min_players)} player(s) required to start')
            state.question_index = 0
            self._enter(live, Phase.COUNTDOWN)
            return state.last_event

    def advance_after_reveal(self, session_id: str, host_token: str) -> dict:
        live = self._live(session_id)
        state = live.state
        with state.lock:
            self._require_host(state, host_token)
            if state.phase != Phase.REVEAL:
                raise PhaseMismatch('Leaderboard is only available after the reveal', phase=state.phase.value)
            self._enter(live, Phase.LEADERBOARD)
            return state.last_event

    def next_question(self, session_id: str, host_token: str) -> dict:
        live = self._live(session_id)
        state = live.state
        grants = None
        with state.lock:
            self._require_host(state, host_token)
            if state.phase != Phase.LEADERBOARD:
                raise PhaseMismatch('Next is only available from the leaderboard', phase=state.phase.value)
            if state.is_last_question:
                self._enter(live, Phase.FINISHED)
                if not state.rewards_granted:
                    state.rewards_granted = True
                    grants = [r for r in state.rewards if r['granted']]
            else:
                state.question_index += 1
                self._enter(live, Phase.COUNTDOWN)
            event = state.last_event
        if grants:
            self._grant(session_id, grants)
        return event

    def abort(self, session_id: str, host_token: str) -> dict:
        live = self._live(session_id)
        state = live.state
        with state.lock:
            self._require_host(state, host_token)
            if state.phase == Phase.FINISHED:
                raise PhaseMismatch('Game already finished', phase=state.phase.value)
            self.scheduler.cancel(session_id)
            self._enter(live, Phase.CLOSED, reason='aborted')
            return state.last_event

    # ---- Transitions ----

    def _enter(self, live: _LiveSession, phase: Phase, **extra) -> None:
        # Caller holds the session lock
        state = live.state
        previous = state.phase
        now = self.clock()
        state.phase = phase
        state.phase_entered_at = now
        state.deadline = None
        delay = None

        if phase == Phase.WAITING:
            payload = {'quiz_title': state.quiz_title, 'player_count': len(state.players)}
        elif phase == Phase.COUNTDOWN:
            delay = max(0, self.countdown_sec)
            payload = {'duration': delay, 'question_number': state.question_index + 1}
        elif phase == Phase.QUESTION:
            question = state.current_question
            delay = question.time_limit
            payload = {'question': question.public_payload(), 'time_limit': question.time_limit}
        elif phase == Phase.REVEAL:
            live.answers.close_question()
            live.modifiers.expire()
            payload = self._reveal_payload(live)
        elif phase == Phase.LEADERBOARD:
            entries = leaderboard.snapshot(state.players.values(), state.previous_snapshot)
            state.previous_snapshot = entries
            payload = {'entries': [e.to_dict() for e in entries], 'is_last_question': state.is_last_question}
        elif phase == Phase.FINISHED:
            entries = leaderboard.snapshot(state.players.values(), state.previous_snapshot)
            state.final_snapshot = entries
            state.rewards = leaderboard.compute_rewards(entries, state.players)
            payload = {
                'entries': [e.to_dict() for e in entries],
                'rewards': [
                    {k: r[k] for k in ('player_id', 'rank', 'coins', 'granted')} for r in state.rewards
                ],
            }
        else:
            payload = {'reason': extra.get('reason', 'aborted')}

        if delay:
            state.deadline = now + delay
        state.sequence += 1
        state.last_event = {
            'session_id': state.id,
            'phase': phase.value,
            'question_index': state.question_index,
            'question_count': len(state.questions),
            'sequence': state.sequence,
            'entered_at': now,
            'deadline': state.deadline,
            'payload': payload,
        }
        self.logger.info(
            f"[phase] session={state.id} {previous.value} -> {phase.value} index={state.question_index} seq={state.sequence}"
        )
        self.notifier.broadcast(state.id, phase.value, state.last_event)

        if phase in (Phase.COUNTDOWN, Phase.QUESTION):
            if delay:
                self.scheduler.schedule(state.id, self._key(state), delay, self._on_deadline)
            else:
                self._advance_automatic(live)
        elif phase.is_terminal:
            self.logger.info(f"[finish] session={state.id} phase={phase.value}")
            if self.retention_sec > 0:
                self.scheduler.schedule(state.id, (RETENTION, state.question_index, state.sequence),
                                        self.retention_sec, self._on_deadline)

    def _advance_automatic(self, live: _LiveSession) -> None:
        if live.state.phase == Phase.COUNTDOWN:
            self._enter(live, Phase.QUESTION)
        elif live.state.phase == Phase.QUESTION:
            self._enter(live, Phase.REVEAL)

    def _on_deadline(self, session_id: str, key: TimerKey) -> None:
        if key[0] == RETENTION:
            self.discard(session_id)
            return
        with self._registry_lock:
            live = self._sessions.get(session_id)
        if live is None:
            self.logger.info(f"[timer-abort] session={session_id} key={key} session gone")
            return
        state = live.state
        with state.lock:
            if self._key(state) != key:
                self.logger.info(f"[timer-abort] session={session_id} key={key} actual={self._key(state)}")
                return
            try:
                self._advance_automatic(live)
            except QuizError as exc:
                self.logger.warning(f"[timer-abort] session={session_id} key={key} error={exc.code}")

    # ---- Helpers ----

    def _reveal_payload(self, live: _LiveSession) -> dict:
        state = live.state
        question = state.current_question
        counts = live.answers.answer_counts()
        total_players = len(state.players)
        answered = sum(counts)
        return {
            'question_id': question.id,
            'correct_index': question.correct_index,
            'counts': counts,
            'percentages': [round(c * 100 / total_players) if total_players else 0 for c in counts],
            'answered': answered,
            'unanswered': total_players - answered,
        }

    def _player_view(self, live: _LiveSession, player: PlayerState) -> dict:
        state = live.state
        view = player.to_dict()
        question = state.current_question
        answer = state.answers.get((player.id, question.id)) if question else None
        view['answer'] = answer.to_dict() if answer else None
        view['hint'] = live.modifiers.hint_for(player.id)
        if state.phase == Phase.FINISHED:
            reward = next((r for r in state.rewards if r['player_id'] == player.id), None)
            if reward:
                view['rank'] = reward['rank']
                view['coins'] = reward['coins']
        return view

    def _grant(self, session_id: str, grants: List[dict]) -> None:
        try:
            count = self.store.grant_rewards(grants)
            self.logger.info(f"[rewards] session={session_id} granted={count}")
        except Exception:
            self.logger.exception(f"[rewards] session={session_id} grant failed")

    def _live(self, session_id: str) -> _LiveSession:
        with self._registry_lock:
            live = self._sessions.get(str(session_id))
        if live is None:
            raise SessionNotFound(f'Session {session_id} not found')
        return live

    def _ensure_open(self, state: SessionState) -> None:
        if state.phase == Phase.CLOSED:
            raise SessionClosed('Game session has been closed by the host')

    def _require_host(self, state: SessionState, host_token: str) -> None:
        self._ensure_open(state)
        if not host_token or not secrets.compare_digest(str(host_token).encode(), state.host_token.encode()):
            raise NotSessionHost('Only the host may control this session')

    @staticmethod
    def _key(state: SessionState) -> Tuple[str, int, int]:
        return (state.phase.value, state.question_index, state.sequence)

    def _new_pin(self) -> str:
        # Caller holds the registry lock
        low = 10 ** (self.pin_length - 1)
        while True:
            pin = str(low + secrets.randbelow(9 * low))
            if pin not in self._sessions:
                return pin
