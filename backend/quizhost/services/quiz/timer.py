from dataclasses import dataclass
from typing import Callable, List, Optional

TICK = 'tick'
STARTED = 'started'
STOPPED = 'stopped'
RESET = 'reset'


@dataclass(frozen=True)
class TimerEvent:
    kind: str
    remaining: int
    running: bool
    limit: int

    def to_message(self) -> dict:
        return {'type': 'timer', 'time': self.remaining, 'timerOn': self.running, 'timeLimit': self.limit}


TimerListener = Callable[[TimerEvent], None]


class CountdownTimer:
    """Whole-second countdown.

    The timer never sleeps on its own; a driver (see ``scheduler``) calls
    ``tick()`` once per interval while ``running`` is set. ``generation``
    changes on every start/stop/reset so a driver started for an older run
    can tell it is stale and exit instead of ticking a second stream.
    """

    def __init__(self, limit: int = 60):
        self.limit = max(0, int(limit))
        self.remaining = self.limit
        self.running = False
        self.generation = 0
        self._listeners: List[TimerListener] = []

    def subscribe(self, listener: TimerListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def start(self, limit: Optional[int] = None) -> None:
        """Start counting. With ``limit`` the countdown restarts from it."""
        if limit is not None:
            self.limit = max(0, int(limit))
            self.remaining = self.limit
        if self.remaining <= 0:
            return
        self.running = True
        self.generation += 1
        self._emit(STARTED)

    def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        self.generation += 1
        self._emit(STOPPED)

    def reset(self, limit: Optional[int] = None) -> None:
        """Stop and rewind to the full limit (optionally a new one)."""
        if limit is not None:
            self.limit = max(0, int(limit))
        self.running = False
        self.remaining = self.limit
        self.generation += 1
        self._emit(RESET)

    def tick(self) -> Optional[TimerEvent]:
        if not self.running:
            return None
        self.remaining = max(0, self.remaining - 1)
        if self.remaining == 0:
            self.running = False
        return self._emit(TICK)

    def snapshot(self) -> TimerEvent:
        return TimerEvent(TICK, self.remaining, self.running, self.limit)

    def _emit(self, kind: str) -> TimerEvent:
        event = TimerEvent(kind, self.remaining, self.running, self.limit)
        for listener in list(self._listeners):
            listener(event)
        return event
