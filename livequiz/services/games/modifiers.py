"""Limited-use per-player modifiers.

A modifier is active only for the question it was activated on. The
fifty-fifty kind hides wrong options from the activating player and never
changes what the answer collector scores against.
"""

from __future__ import annotations

import random
from typing import Dict, List, Optional, Set, Tuple

from livequiz.errors import NoUsesRemaining, PhaseMismatch, PlayerNotFound, ValidationError
from .state import Phase, SessionState

FIFTY_FIFTY = 'fifty_fifty'
DOUBLE_POINTS = 'double_points'
KINDS = (FIFTY_FIFTY, DOUBLE_POINTS)
MULTIPLIERS = {DOUBLE_POINTS: 2}
DEFAULT_INVENTORY = {FIFTY_FIFTY: 1, DOUBLE_POINTS: 1}


class ModifierManager:
    """Tracks remaining uses and the modifiers active on the current question."""

    def __init__(self, session: SessionState, inventory: Optional[Dict[str, int]] = None, rng: Optional[random.Random] = None) -> None:
        self._session = session
        self._inventory = dict(DEFAULT_INVENTORY if inventory is None else inventory)
        self._rng = rng or random.Random()
        self._active: Dict[str, Set[str]] = {}
        self._hidden: Dict[str, List[int]] = {}
        self._active_question_index: Optional[int] = None

    def starting_inventory(self) -> Dict[str, int]:
        return {kind: int(self._inventory.get(kind, 0)) for kind in KINDS}

    def activate(self, player_id: str, kind: str) -> dict:
        """Spend one use of ``kind`` on the current question and return the player's hint."""
        if kind not in KINDS:
            raise ValidationError(f'Unknown modifier {kind!r}', kind=kind)
        session = self._session
        with session.lock:
            player = session.players.get(player_id)
            if player is None:
                raise PlayerNotFound(f'Player {player_id} is not in session {session.id}')
            question = session.current_question
            if session.phase != Phase.QUESTION or question is None:
                raise PhaseMismatch('Modifiers can only be used while a question is open')
            if (player_id, question.id) in session.answers:
                raise PhaseMismatch('Player already answered this question')
            if player.modifiers.get(kind, 0) <= 0:
                raise NoUsesRemaining(f'No {kind} uses remaining', kind=kind)

            self._sync_question()
            player.modifiers[kind] -= 1
            self._active.setdefault(player_id, set()).add(kind)
            if kind == FIFTY_FIFTY:
                wrong = [i for i in range(len(question.options)) if i != question.correct_index]
                self._hidden[player_id] = sorted(self._rng.sample(wrong, min(2, len(wrong))))
            return self.hint_for(player_id)

    def hint_for(self, player_id: str) -> dict:
        with self._session.lock:
            self._sync_question()
            return {
                'active': sorted(self._active.get(player_id, ())),
                'hidden_options': list(self._hidden.get(player_id, [])),
                'remaining': dict(self._session.players[player_id].modifiers) if player_id in self._session.players else {},
            }

    def consume(self, player_id: str) -> Tuple[float, Optional[str]]:
        """Return (multiplier, applied kind) for the player's scoring call this question."""
        with self._session.lock:
            self._sync_question()
            active = self._active.get(player_id, set())
            multiplier = 1
            applied = None
            for kind in sorted(active):
                if kind in MULTIPLIERS:
                    multiplier *= MULTIPLIERS[kind]
                    applied = kind
            return multiplier, applied

    def expire(self) -> None:
        with self._session.lock:
            self._active.clear()
            self._hidden.clear()
            self._active_question_index = None

    def _sync_question(self) -> None:
        # Anything recorded against an earlier question no longer applies
        index = self._session.question_index if self._session.phase == Phase.QUESTION else None
        if index != self._active_question_index:
            self._active.clear()
            self._hidden.clear()
            self._active_question_index = index
