"""Live sessions: one quiz machine + its broadcaster per session code."""
import random
import string
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from flask import current_app

from quizhost.services.quiz.base import QuizSession
from quizhost.services.quiz.board import BoardSession
from quizhost.services.quiz.rounds import QUESTIONS, RoundsSession
from quizhost.services.quiz.sync import SyncBroadcaster, Transport
from quizhost.services.quiz.timer import TICK, TimerEvent
from quizhost.services.quiz.types import BoardGame, RoundsGame, Team

NAMESPACE = '/ws'

# camelCase wire name -> (method, argument names)
COMMANDS = {
    # both formats
    'addTeam': ('add_team', ('name',)),
    'removeTeam': ('remove_team', ('teamId',)),
    'renameTeam': ('rename_team', ('teamId', 'name')),
    'adjustScore': ('adjust_score', ('teamId', 'delta')),
    'setScore': ('set_score', ('teamId', 'score')),
    'startGame': ('start_game', ()),
    'pauseGame': ('pause_game', ()),
    'resumeGame': ('resume_game', ()),
    'endGame': ('end_game', ()),
    'setTheme': ('set_theme', ('theme',)),
    'toggleScores': ('toggle_scores', ()),
    'reportMediaError': ('report_media_error', ('message',)),
    # board
    'selectQuestion': ('select_question', ('categoryId', 'questionId')),
    'setResponder': ('set_responder', ('teamId',)),
    'markCorrect': ('mark_correct', ()),
    'markIncorrect': ('mark_incorrect', ()),
    'close': ('close', ()),
    'setWager': ('set_wager', ('amount',)),
    'setAuctionBid': ('set_auction_bid', ('teamId', 'amount')),
    'setBlindPickTarget': ('set_blind_pick_target', ('teamId',)),
    'setPlaying': ('set_playing', ('playing',)),
    'setMediaTime': ('set_media_time', ('time',)),
    # rounds
    'startRound': ('start_round', ()),
    'nextQ': ('next_q', ()),
    'prevQ': ('prev_q', ()),
    'goQ': ('go_q', ('index',)),
    'startAnswers': ('start_answers', ()),
    'nextA': ('next_a', ()),
    'prevA': ('prev_a', ()),
    'goA': ('go_a', ('index',)),
    'goNextRound': ('go_next_round', ()),
    'goToRound': ('go_to_round', ('index',)),
    'startBreak': ('start_break', ()),
    'showStandings': ('show_standings', ()),
    'startTimer': ('start_timer', ()),
    'stopTimer': ('stop_timer', ()),
    'resetTimer': ('reset_timer', ()),
    'updateScore': ('update_score', ('teamId', 'value')),
    'saveScores': ('save_scores', ()),
    'editSavedScore': ('edit_saved_score', ('teamId', 'roundIndex', 'value')),
    'reset': ('reset', ()),
}


class CommandError(ValueError):
    """Command name unknown or arguments malformed."""


def room_for(code: str) -> str:
    return f"session:{code.upper()}"


class SocketIOTransport(Transport):
    """Emits each message as a Socket.IO event named after its type."""

    def __init__(self, code: str, namespace: str = NAMESPACE):
        self.room = room_for(code)
        self.namespace = namespace

    def send(self, message: Dict[str, Any]) -> None:
        from quizhost import socketio
        socketio.emit(message['type'], message, to=self.room, namespace=self.namespace)


class LiveSession:

    def __init__(self, code: str, session: QuizSession, broadcaster: SyncBroadcaster):
        self.code = code
        self.session = session
        self.broadcaster = broadcaster
        self.created_at = time.time()
        # host commands and the countdown worker run on different threads
        self.lock = threading.RLock()
        self._unsubscribe: List[Callable[[], None]] = []
        # broadcaster first so the final tick goes out before any auto-advance
        broadcaster.attach(session)
        if self.timer is not None:
            self._unsubscribe.append(self.timer.subscribe(self._on_timer))

    @property
    def timer(self):
        return getattr(self.session, 'timer', None)

    def dispatch(self, command: str, args: Optional[Dict[str, Any]] = None) -> bool:
        if command not in COMMANDS:
            raise CommandError(f'unknown command {command!r}')
        method_name, arg_names = COMMANDS[command]
        args = args or {}
        missing = [name for name in arg_names if name not in args]
        if missing:
            raise CommandError(f"{command}: missing argument(s) {', '.join(missing)}")
        method = getattr(self.session, method_name, None)
        if method is None:
            # e.g. nextQ on a board session: legal name, no transition
            return False
        with self.lock:
            try:
                return bool(method(*[args[name] for name in arg_names]))
            except (TypeError, ValueError, OverflowError) as exc:
                raise CommandError(f'{command}: {exc}')

    def tick(self, generation: int) -> Optional[TimerEvent]:
        """Advance the countdown unless it was restarted since ``generation``."""
        with self.lock:
            timer = self.timer
            if timer is None or timer.generation != generation or not timer.running:
                return None
            return timer.tick()

    def _on_timer(self, event: TimerEvent) -> None:
        session = self.session
        if event.kind != TICK or event.remaining > 0:
            return
        if isinstance(session, RoundsSession) and session.game.settings.auto_advance and session.phase == QUESTIONS:
            session.next_q()

    def end(self) -> None:
        with self.lock:
            self.session.shutdown()
            for unsubscribe in self._unsubscribe:
                unsubscribe()
            self.broadcaster.detach()

    def to_dict(self) -> Dict[str, Any]:
        payload = self.session.to_dict()
        payload['code'] = self.code
        return payload


class SessionRegistry:
    """Live sessions of one app instance, keyed by join code."""

    def __init__(self, transport_factory: Callable[[str], Transport] = SocketIOTransport):
        self.transport_factory = transport_factory
        self._sessions: Dict[str, LiveSession] = {}
        self._lock = threading.Lock()

    def _generate_code(self, length: int = 4) -> str:
        while True:
            code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
            if code not in self._sessions:
                return code

    def create(self, game, teams: List[Team], theme: Optional[str] = None,
               min_teams: int = 2, max_teams: int = 12) -> LiveSession:
        kwargs = {'min_teams': min_teams, 'max_teams': max_teams}
        if theme:
            kwargs['theme'] = theme
        if isinstance(game, BoardGame):
            session = BoardSession(game, teams, **kwargs)
        elif isinstance(game, RoundsGame):
            session = RoundsSession(game, teams, **kwargs)
        else:
            raise TypeError(f'unsupported game type {type(game).__name__}')
        with self._lock:
            code = self._generate_code()
            live = LiveSession(code, session, SyncBroadcaster(self.transport_factory(code)))
            self._sessions[code] = live
        return live

    def get(self, code: Optional[str]) -> Optional[LiveSession]:
        if not code:
            return None
        return self._sessions.get(code.upper())

    def end(self, code: str) -> bool:
        with self._lock:
            live = self._sessions.pop(code.upper(), None)
        if live is None:
            return False
        live.end()
        return True

    def codes(self) -> List[str]:
        return sorted(self._sessions)


def get_registry(app=None) -> SessionRegistry:
    app = app or current_app
    return app.extensions['quizhost.sessions']
