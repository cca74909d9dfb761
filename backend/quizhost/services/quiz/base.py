"""Command surface shared by both quiz formats.

Every command returns ``True`` when it changed state and ``False`` when it
was not legal right now or referenced something unknown. Rejected commands
leave the session exactly as it was; the host UI is expected to fire them
carelessly (double clicks, stale buttons).
"""
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from .types import TEAM_COLORS, FALLBACK_TEAM_COLOR, THEMES, SessionStatus, Team, new_id

logger = logging.getLogger(__name__)

Listener = Callable[['QuizSession'], None]


class QuizSession:
    mode = ''

    def __init__(self, game, teams: List[Team], theme: str = 'nordic-dark',
                 min_teams: int = 2, max_teams: int = 12):
        self.game = game
        self.teams: List[Team] = list(teams)
        self.theme = theme if theme in THEMES else THEMES[0]
        self.status = SessionStatus.SETUP
        self.show_scores = False
        self.media_error: Optional[str] = None
        self.min_teams = min_teams
        self.max_teams = max_teams
        self._listeners: List[Listener] = []
        self._last_key: Optional[Tuple] = None

    # ---- observers ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _changed(self) -> bool:
        key = self.structural_key()
        if key != self._last_key:
            self.media_error = None
            self._last_key = key
        for listener in list(self._listeners):
            listener(self)
        return True

    def structural_key(self) -> Tuple:
        raise NotImplementedError

    # ---- teams ----

    def find_team(self, team_id: Optional[str]) -> Optional[Team]:
        for team in self.teams:
            if team.id == team_id:
                return team
        return None

    @property
    def team_order(self) -> List[str]:
        return [t.id for t in self.teams]

    def add_team(self, name: str) -> bool:
        name = (name or '').strip()
        if not name or len(self.teams) >= self.max_teams:
            return False
        idx = len(self.teams)
        color = TEAM_COLORS[idx] if idx < len(TEAM_COLORS) else FALLBACK_TEAM_COLOR
        self.teams.append(Team(id=new_id(), name=name, color=color))
        return self._changed()

    def remove_team(self, team_id: str) -> bool:
        team = self.find_team(team_id)
        if team is None:
            return False
        self.teams.remove(team)
        self._forget_team(team_id)
        return self._changed()

    def _forget_team(self, team_id: str) -> None:
        """Drop per-team state held by the concrete machine."""

    def rename_team(self, team_id: str, name: str) -> bool:
        team = self.find_team(team_id)
        name = (name or '').strip()
        if team is None or not name:
            return False
        team.name = name
        return self._changed()

    def adjust_score(self, team_id: str, delta: int) -> bool:
        team = self.find_team(team_id)
        if team is None:
            return False
        team.score += int(delta)
        return self._changed()

    def set_score(self, team_id: str, score: int) -> bool:
        team = self.find_team(team_id)
        if team is None:
            return False
        team.score = int(score)
        return self._changed()

    # ---- session status ----

    def start_game(self) -> bool:
        if self.status is not SessionStatus.SETUP or len(self.teams) < self.min_teams:
            return False
        self.status = SessionStatus.PLAYING
        return self._changed()

    def pause_game(self) -> bool:
        if self.status is not SessionStatus.PLAYING:
            return False
        self.status = SessionStatus.PAUSED
        return self._changed()

    def resume_game(self) -> bool:
        if self.status is not SessionStatus.PAUSED:
            return False
        self.status = SessionStatus.PLAYING
        return self._changed()

    def end_game(self) -> bool:
        if self.status is SessionStatus.FINISHED:
            return False
        self.shutdown()
        self.status = SessionStatus.FINISHED
        return self._changed()

    def shutdown(self) -> None:
        """Stop anything autonomous and drop transient question state."""

    # ---- display ----

    def set_theme(self, theme: str) -> bool:
        if theme not in THEMES or theme == self.theme:
            return False
        self.theme = theme
        return self._changed()

    def toggle_scores(self) -> bool:
        self.show_scores = not self.show_scores
        return self._changed()

    def report_media_error(self, message: str) -> bool:
        logger.warning('media error in %s session: %s', self.mode, message)
        self._last_key = self.structural_key()
        self.media_error = str(message or 'unknown media error')
        return self._changed()

    # ---- views ----

    def to_dict(self) -> Dict[str, Any]:
        """Host view: complete, unredacted."""
        return {
            'mode': self.mode,
            'status': self.status.value,
            'theme': self.theme,
            'showScores': self.show_scores,
            'teams': [t.to_dict() for t in self.teams],
            'mediaError': self.media_error,
            'structuralKey': format_key(self.structural_key()),
        }


def format_key(key: Tuple) -> str:
    return '-'.join('' if part is None else str(part) for part in key)
