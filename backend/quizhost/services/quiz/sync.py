"""Spectator synchronisation.

The projector gets three kinds of message:

- ``state-update``: the full redacted snapshot. The receiver re-renders
  from scratch (media elements included) only when ``structuralKey`` differs
  from what it last rendered, otherwise it patches data in place.
- ``timer``: remaining time / running flag / limit, once per tick. Only the
  countdown and progress bar are touched so playing media is not restarted.
- ``video``: transport commands for the projector's media element.

Delivery is fire-and-forget: transport failures are logged and dropped, and
because every state-update carries the whole snapshot the next one repairs
anything that went missing.
"""
from typing import Any, Callable, Dict, List, Optional
import copy
import logging

from .base import QuizSession, format_key
from .board import BoardSession
from .rounds import QUESTIONS, SHOW_ANSWERS, RoundsSession
from .timer import TimerEvent

logger = logging.getLogger(__name__)

STATE_UPDATE = 'state-update'
TIMER = 'timer'
VIDEO = 'video'
MEDIA_ACTIONS = ('play', 'pause', 'stop', 'seek', 'fullscreen')


# ---- redaction ----

def redact(session: QuizSession) -> Dict[str, Any]:
    """Project a session onto what the audience is allowed to see."""
    snapshot: Dict[str, Any] = {
        'mode': session.mode,
        'status': session.status.value,
        'theme': session.theme,
        'showScores': session.show_scores,
        'teams': [t.to_dict() for t in session.teams],
        'structuralKey': format_key(session.structural_key()),
    }
    if isinstance(session, BoardSession):
        snapshot.update(_redact_board(session))
    elif isinstance(session, RoundsSession):
        snapshot.update(_redact_rounds(session))
    else:
        raise TypeError(f'cannot redact {type(session).__name__}')
    return snapshot


def _redact_board(session: BoardSession) -> Dict[str, Any]:
    # answers are read out by the host, never shown
    game = session.game.to_dict()
    for category in game['categories']:
        for question in category['questions']:
            question['answer'] = ''
    return {
        'phase': session.phase,
        'game': game,
        'currentQuestion': session.active.to_dict() if session.active else None,
    }


def _redact_rounds(session: RoundsSession) -> Dict[str, Any]:
    current = session.round
    payload: Dict[str, Any] = {
        'phase': session.phase,
        'roundIndex': session.round_index,
        'questionIndex': session.q_index,
        'answerIndex': session.a_index,
        'totalRounds': len(session.game.rounds),
        'isLastRound': session.is_last_round,
        'round': current.summary_dict(),
        'nextRound': None,
        'settings': session.game.settings.to_dict(),
        'timer': session.timer_dict(),
        'scores': session.scores_dict(),
        'totals': {t.id: session.total(t.id) for t in session.teams},
        'doneRounds': session.done_rounds(),
        'question': None,
        'answer': None,
    }
    if not session.is_last_round:
        payload['nextRound'] = session.game.rounds[session.round_index + 1].summary_dict()
    if session.phase == QUESTIONS:
        payload['question'] = session.question.prompt_dict()
    elif session.phase == SHOW_ANSWERS:
        revealed = session.answer
        reveal = revealed.prompt_dict()
        reveal['answer'] = revealed.answer
        reveal['correctOptionIndex'] = revealed.correct_option_index
        payload['answer'] = reveal
    return payload


# ---- transports ----

class Transport:
    """Delivers one message to the spectator side."""

    def send(self, message: Dict[str, Any]) -> None:
        raise NotImplementedError


class MemoryTransport(Transport):
    """In-process bus: keeps every message and forwards to subscribers."""

    def __init__(self):
        self.messages: List[Dict[str, Any]] = []
        self._receivers: List[Callable[[Dict[str, Any]], None]] = []

    def connect(self, receiver: Callable[[Dict[str, Any]], None]) -> None:
        self._receivers.append(receiver)

    def send(self, message: Dict[str, Any]) -> None:
        self.messages.append(message)
        for receiver in list(self._receivers):
            receiver(copy.deepcopy(message))

    def of_type(self, kind: str) -> List[Dict[str, Any]]:
        return [m for m in self.messages if m.get('type') == kind]


# ---- broadcaster ----

class SyncBroadcaster:

    def __init__(self, transport: Transport):
        self.transport = transport
        self.last_snapshot: Optional[Dict[str, Any]] = None
        self.last_timer: Optional[Dict[str, Any]] = None
        self._detach: List[Callable[[], None]] = []

    def attach(self, session: QuizSession) -> None:
        """Follow a session: commands feed state-updates, the countdown feeds ticks."""
        self._detach.append(session.subscribe(self.publish_state))
        timer = getattr(session, 'timer', None)
        if timer is not None:
            self._detach.append(timer.subscribe(self.publish_tick))
        self.publish_state(session)
        if timer is not None:
            self.publish_tick(timer.snapshot())

    def detach(self) -> None:
        while self._detach:
            self._detach.pop()()

    def publish_state(self, session: QuizSession) -> bool:
        snapshot = redact(session)
        if snapshot == self.last_snapshot:
            return False
        self.last_snapshot = snapshot
        return self._send({'type': STATE_UPDATE, 'snapshot': snapshot})

    def publish_tick(self, event: TimerEvent) -> bool:
        message = event.to_message()
        self.last_timer = message
        return self._send(message)

    def send_media_command(self, action: str, time: Optional[float] = None) -> bool:
        if action not in MEDIA_ACTIONS:
            logger.warning('ignoring unknown media action %r', action)
            return False
        message: Dict[str, Any] = {'type': VIDEO, 'action': action}
        if time is not None:
            message['time'] = float(time)
        return self._send(message)

    def replay(self) -> List[Dict[str, Any]]:
        """Messages a freshly connected spectator needs to catch up."""
        messages = []
        if self.last_snapshot is not None:
            messages.append({'type': STATE_UPDATE, 'snapshot': self.last_snapshot})
        if self.last_timer is not None:
            messages.append(self.last_timer)
        return messages

    def _send(self, message: Dict[str, Any]) -> bool:
        try:
            self.transport.send(message)
        except Exception as exc:
            logger.warning('[sync-drop] %s message not delivered: %s', message.get('type'), exc)
            return False
        return True


# ---- receiving side ----

class SpectatorDisplay:
    """Reference implementation of the projector's message handling.

    Counts what a real display would do so previews and tests can check that
    ticks never cause a full re-render.
    """

    def __init__(self):
        self.snapshot: Optional[Dict[str, Any]] = None
        self.rendered_key: Optional[str] = None
        self.time: Optional[int] = None
        self.timer_on = False
        self.time_limit: Optional[int] = None
        self.full_renders = 0
        self.patches = 0
        self.tick_updates = 0
        self.media_actions: List[Dict[str, Any]] = []

    @property
    def progress(self) -> float:
        if not self.time_limit or self.time is None:
            return 0.0
        return self.time / self.time_limit * 100

    def handle(self, message: Dict[str, Any]) -> None:
        kind = message.get('type')
        if kind == STATE_UPDATE:
            self._on_state(message.get('snapshot') or {})
        elif kind == TIMER:
            self.time = message.get('time')
            self.timer_on = bool(message.get('timerOn'))
            self.time_limit = message.get('timeLimit')
            self.tick_updates += 1
        elif kind == VIDEO:
            if message.get('action') in MEDIA_ACTIONS:
                self.media_actions.append(message)
        else:
            logger.debug('spectator ignoring message %r', kind)

    def _on_state(self, snapshot: Dict[str, Any]) -> None:
        key = snapshot.get('structuralKey')
        self.snapshot = snapshot
        if key != self.rendered_key:
            self.rendered_key = key
            self.full_renders += 1
            self.media_actions = []
            timer = snapshot.get('timer')
            if timer:
                self.time = timer.get('time')
                self.timer_on = bool(timer.get('timerOn'))
                self.time_limit = timer.get('timeLimit')
        else:
            self.patches += 1
