"""Socket.IO fan-out of session events.

Delivery is best effort. Clients that miss an event pull the current state
through the resync read instead of relying on replay.
"""

NAMESPACE = '/ws'


def session_room(session_id: str) -> str:
    return f"session:{session_id}"


def host_room(session_id: str) -> str:
    return f"host:{session_id}"


class SocketIONotifier:

    def __init__(self, socketio=None, logger=None) -> None:
        self._socketio = socketio
        self._logger = logger

    def init_app(self, app, socketio) -> None:
        self._socketio = socketio
        self._logger = app.logger

    def broadcast(self, session_id: str, phase: str, envelope: dict) -> None:
        """Publish a phase change to everyone in the session room."""
        self._emit('phase_changed', envelope, session_room(session_id), session_id, phase)

    def notify_host(self, session_id: str, event: str, payload: dict) -> None:
        self._emit(event, payload, host_room(session_id), session_id, event)

    def _emit(self, event, payload, room, session_id, label) -> None:
        if self._socketio is None:
            return
        try:
            self._socketio.emit(event, payload, to=room, namespace=NAMESPACE)
        except Exception:
            if self._logger is not None:
                self._logger.exception(f"[broadcast-fail] session={session_id} event={label}")
