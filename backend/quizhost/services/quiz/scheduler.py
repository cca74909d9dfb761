import time
from typing import Set, Tuple

from quizhost import socketio


_scheduled_countdowns: Set[Tuple[str, int]] = set()


def schedule_countdown(app, code: str) -> None:
    """Drive the running countdown of a live session from a background task.

    - No-ops in TESTING mode (tests call ``tick()`` themselves)
    - Ensures a single worker per (session, timer generation)
    - A worker exits as soon as the timer it was started for is stopped,
      reset or restarted, so restarts never leave two tick streams behind
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_TIMER_IN_TESTS'):
        return

    from quizhost.sessions import get_registry
    registry = get_registry(app)
    live = registry.get(code)
    timer = live.timer if live else None
    if timer is None or not timer.running:
        return

    key = (live.code, timer.generation)
    if key in _scheduled_countdowns:
        app.logger.info(f"[timer-skip] session={live.code} generation={timer.generation} already scheduled")
        return
    _scheduled_countdowns.add(key)

    interval = float(app.config.get('TIMER_TICK_SEC', 1))
    app.logger.info(
        f"[timer-set] session={live.code} generation={timer.generation} remaining={timer.remaining}s interval={interval}s"
    )

    def _worker(session_code: str, generation: int):
        heartbeat = int(app.config.get('TIMER_HEARTBEAT_SEC', 0) or 0)
        last_beat = time.time()
        try:
            while True:
                socketio.sleep(interval)
                current = registry.get(session_code)
                event = current.tick(generation) if current else None
                if event is None:
                    app.logger.info(f"[timer-abort] session={session_code} generation={generation} superseded or ended")
                    return
                if heartbeat and time.time() - last_beat >= heartbeat:
                    last_beat = time.time()
                    app.logger.info(f"[timer-heartbeat] session={session_code} remaining={event.remaining}s")
                if not event.running:
                    app.logger.info(f"[timer-fire] session={session_code} generation={generation} reached zero")
                    return
        finally:
            _scheduled_countdowns.discard((session_code, generation))

    socketio.start_background_task(_worker, live.code, timer.generation)
