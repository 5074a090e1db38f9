import threading
import time
from typing import Callable, Dict, Optional, Tuple


TimerKey = Tuple[str, int, int]


class _Timer:
    def __init__(self, session_id: str, key: TimerKey, delay: float, callback: Callable[[str, TimerKey], None]):
        self.session_id = session_id
        self.key = key
        self.delay = delay
        self.callback = callback
        self.cancelled = threading.Event()
        self.deadline = time.time() + delay


class StageScheduler:
    """Deadline timers driving automatic phase transitions.

    - At most one pending timer per session; scheduling replaces it
    - Workers block on an event with a timeout, so ``cancel`` wakes them
    - Callbacks receive the key they were scheduled with and must no-op
      when the session has moved on
    - In TESTING mode timers are deferred and fired with ``fire()``
    """

    def __init__(self, socketio=None, logger=None, deferred: bool = False, heartbeat_sec: int = 0) -> None:
        self._socketio = socketio
        self._logger = logger
        self.deferred = deferred
        self.heartbeat_sec = heartbeat_sec
        self._timers: Dict[str, _Timer] = {}
        self._lock = threading.Lock()

    def init_app(self, app, socketio) -> None:
        self._socketio = socketio
        self._logger = app.logger
        self.deferred = bool(app.config.get('TESTING')) and not app.config.get('ENABLE_SCHEDULER_IN_TESTS')
        self.heartbeat_sec = int(app.config.get('TIMER_HEARTBEAT_SEC', 0) or 0)
        self.cancel_all()

    def schedule(self, session_id: str, key: TimerKey, delay: float, callback: Callable[[str, TimerKey], None]) -> None:
        with self._lock:
            current = self._timers.get(session_id)
            if current is not None and current.key == key and not current.cancelled.is_set():
                self._log(f"[timer-skip] session={session_id} key={key} already scheduled")
                return
            if current is not None:
                current.cancelled.set()
            timer = _Timer(session_id, key, delay, callback)
            self._timers[session_id] = timer

        self._log(f"[timer-set] session={session_id} key={key} delay={delay}s deadline={timer.deadline}")
        if self.deferred:
            return
        if self._socketio is not None:
            self._socketio.start_background_task(self._worker, timer)
        else:
            threading.Thread(target=self._worker, args=(timer,), daemon=True).start()

    def cancel(self, session_id: str) -> bool:
        with self._lock:
            timer = self._timers.pop(session_id, None)
        if timer is None:
            return False
        timer.cancelled.set()
        self._log(f"[timer-cancel] session={session_id} key={timer.key}")
        return True

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancelled.set()

    def pending(self, session_id: str) -> Optional[TimerKey]:
        with self._lock:
            timer = self._timers.get(session_id)
            return timer.key if timer else None

    def pending_delay(self, session_id: str) -> Optional[float]:
        with self._lock:
            timer = self._timers.get(session_id)
            return timer.delay if timer else None

    def fire(self, session_id: str) -> bool:
        """Run a deferred timer now. Returns False when none is pending."""
        with self._lock:
            timer = self._timers.pop(session_id, None)
        if timer is None or timer.cancelled.is_set():
            return False
        self._run(timer)
        return True

    def _worker(self, timer: _Timer) -> None:
        hb = self.heartbeat_sec
        if hb and hb > 0:
            waited = 0.0
            while waited < timer.delay:
                step = min(hb, timer.delay - waited)
                if timer.cancelled.wait(step):
                    break
                waited += step
                self._log(
                    f"[timer-heartbeat] session={timer.session_id} key={timer.key} remaining={max(0, timer.delay - waited)}s"
                )
        else:
            timer.cancelled.wait(timer.delay)

        with self._lock:
            if self._timers.get(timer.session_id) is timer:
                self._timers.pop(timer.session_id)
        if timer.cancelled.is_set():
            return
        self._run(timer)

    def _run(self, timer: _Timer) -> None:
        self._log(f"[timer-fire] session={timer.session_id} key={timer.key}")
        try:
            timer.callback(timer.session_id, timer.key)
        except Exception:
            # A failing transition must not take the worker down with it
            if self._logger is not None:
                self._logger.exception(f"[timer-error] session={timer.session_id} key={timer.key}")

    def _log(self, message: str) -> None:
        if self._logger is not None:
            self._logger.info(message)
