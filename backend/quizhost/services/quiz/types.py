"""Domain types shared by the board and rounds session machines.

Game definitions arrive from the catalog (or inline from the host UI) as
plain dicts; ``from_dict`` parses them into these dataclasses and raises
``ValueError`` for anything malformed. ``to_dict`` emits the camelCase shape
the displays consume.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import uuid


THEMES = (
    'nordic-dark',
    'nordic-light',
    'winter',
    'autumn',
    'spring',
    'summer',
    'cyber-night',
    'emerald-tech',
    'royal-gold',
)

TEAM_COLORS = (
    '#ef4444', '#3b82f6', '#10b981', '#f59e0b',
    '#8b5cf6', '#ec4899', '#06b6d4', '#84cc16',
    '#f97316', '#6366f1', '#14b8a6', '#e11d48',
)
FALLBACK_TEAM_COLOR = '#888888'

ROUND_TYPES = ('text', 'music', 'picture', 'blitz', 'video', 'choice')
ANSWER_METHODS = ('paper', 'digital')


class QuestionKind(str, Enum):
    NORMAL = 'normal'
    WAGER = 'wager'
    AUCTION = 'auction'
    BLIND_PICK = 'blind-pick'
    PERFORM = 'perform'


class SessionStatus(str, Enum):
    SETUP = 'setup'
    PLAYING = 'playing'
    PAUSED = 'paused'
    FINISHED = 'finished'


def new_id() -> str:
    return str(uuid.uuid4())


def _require(data: Dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f'{where} must be an object')
    if key not in data or data[key] is None:
        raise ValueError(f'{where}: "{key}" is required')
    return data[key]


def _as_list(value: Any, where: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f'{where} must be a list')
    return value


def _number(value: Any, where: str, default: Any = None, cast=int) -> Any:
    if value is None:
        return default
    try:
        return cast(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f'{where} must be a number, got {value!r}')


@dataclass
class Team:
    id: str
    name: str
    score: int = 0
    color: str = FALLBACK_TEAM_COLOR

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'score': self.score, 'color': self.color}


def build_teams(entries: List[Any]) -> List[Team]:
    """Create teams from setup input: plain names or ``{name, color}`` objects."""
    teams: List[Team] = []
    for idx, entry in enumerate(_as_list(entries, 'teams')):
        if isinstance(entry, str):
            name, color, team_id = entry, None, None
        else:
            name = _require(entry, 'name', f'teams[{idx}]')
            color = entry.get('color')
            team_id = entry.get('id')
        name = str(name).strip()
        if not name:
            raise ValueError(f'teams[{idx}]: name must not be empty')
        if not color:
            color = TEAM_COLORS[idx] if idx < len(TEAM_COLORS) else FALLBACK_TEAM_COLOR
        team_id = str(team_id or new_id())
        if any(t.id == team_id for t in teams):
            raise ValueError(f'teams[{idx}]: duplicate id {team_id!r}')
        teams.append(Team(id=team_id, name=name, color=color))
    return teams


# ---- Board mode ----

@dataclass
class BoardQuestion:
    id: str
    kind: QuestionKind
    answer: str = ''
    media: Optional[str] = None
    start_time: float = 0.0
    end_time: float = 0.0
    played: bool = False
    answered_by_team_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], where: str) -> 'BoardQuestion':
        raw_kind = data.get('type', QuestionKind.NORMAL.value) if isinstance(data, dict) else None
        try:
            kind = QuestionKind(raw_kind)
        except ValueError:
            raise ValueError(f'{where}: unknown question type {raw_kind!r}')
        return cls(
            id=str(data.get('id') or new_id()),
            kind=kind,
            answer=str(data.get('answer') or ''),
            media=data.get('media') or data.get('audioPath'),
            start_time=_number(data.get('startTime'), f'{where}.startTime', 0.0, float),
            end_time=_number(data.get('endTime'), f'{where}.endTime', 0.0, float),
            played=bool(data.get('played', False)),
            answered_by_team_id=data.get('answeredByTeamId'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.kind.value,
            'answer': self.answer,
            'media': self.media,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'played': self.played,
            'answeredByTeamId': self.answered_by_team_id,
        }


@dataclass
class Category:
    id: str
    name: str
    questions: List[BoardQuestion] = field(default_factory=list)

    def find(self, question_id: str) -> Optional[BoardQuestion]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], where: str) -> 'Category':
        name = _require(data, 'name', where)
        questions = [
            BoardQuestion.from_dict(q, f'{where}.questions[{i}]')
            for i, q in enumerate(_as_list(data.get('questions'), f'{where}.questions'))
        ]
        return cls(id=str(data.get('id') or new_id()), name=str(name), questions=questions)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'questions': [q.to_dict() for q in self.questions]}


@dataclass
class BoardGame:
    id: str
    name: str
    categories: List[Category] = field(default_factory=list)
    mode = 'board'

    def find_category(self, category_id: str) -> Optional[Category]:
        for c in self.categories:
            if c.id == category_id:
                return c
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BoardGame':
        name = _require(data, 'name', 'game')
        categories = [
            Category.from_dict(c, f'categories[{i}]')
            for i, c in enumerate(_as_list(data.get('categories'), 'categories'))
        ]
        return cls(id=str(data.get('id') or new_id()), name=str(name), categories=categories)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'mode': self.mode,
            'name': self.name,
            'categories': [c.to_dict() for c in self.categories],
        }


@dataclass
class WagerSetup:
    amount: Optional[int] = None


@dataclass
class AuctionSetup:
    bids: Dict[str, int] = field(default_factory=dict)


@dataclass
class BlindPickSetup:
    target_team_id: Optional[str] = None


KindSetup = Union[None, WagerSetup, AuctionSetup, BlindPickSetup]


def setup_for(kind: QuestionKind) -> KindSetup:
    if kind is QuestionKind.WAGER:
        return WagerSetup()
    if kind is QuestionKind.AUCTION:
        return AuctionSetup()
    if kind is QuestionKind.BLIND_PICK:
        return BlindPickSetup()
    if kind in (QuestionKind.NORMAL, QuestionKind.PERFORM):
        return None
    raise ValueError(f'unhandled question kind {kind!r}')


@dataclass
class ActiveQuestion:
    """State of the board question currently on screen.

    ``setup`` holds the kind-specific fields; its class always matches ``kind``.
    """
    category_id: str
    question_id: str
    kind: QuestionKind
    setup: KindSetup = None
    responding_team_id: Optional[str] = None
    blocked_team_ids: List[str] = field(default_factory=list)
    is_playing: bool = False
    current_media_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'categoryId': self.category_id,
            'questionId': self.question_id,
            'type': self.kind.value,
            'respondingTeamId': self.responding_team_id,
            'blockedTeamIds': list(self.blocked_team_ids),
            'isPlaying': self.is_playing,
            'currentMediaTime': self.current_media_time,
        }
        if isinstance(self.setup, WagerSetup):
            payload['wagerAmount'] = self.setup.amount
        elif isinstance(self.setup, AuctionSetup):
            payload['auctionBids'] = dict(self.setup.bids)
        elif isinstance(self.setup, BlindPickSetup):
            payload['blindPickTargetTeamId'] = self.setup.target_team_id
        return payload


# ---- Rounds mode ----

@dataclass
class RoundQuestion:
    id: str
    text: str
    answer: str
    points: int = 1
    media: Optional[str] = None
    media_start: Optional[float] = None
    media_end: Optional[float] = None
    options: Optional[List[str]] = None
    correct_option_index: Optional[int] = None
    time_limit: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], where: str, default_points: int) -> 'RoundQuestion':
        text = _require(data, 'text', where)
        options = data.get('options') or None
        correct = _number(data.get('correctOptionIndex'), f'{where}.correctOptionIndex')
        if options is not None:
            options = [str(o) for o in _as_list(options, f'{where}.options')]
            if len(options) != 4:
                raise ValueError(f'{where}: a choice set needs exactly 4 options')
            if correct is None or not 0 <= correct < 4:
                raise ValueError(f'{where}: correctOptionIndex must be 0..3')
        else:
            correct = None
        time_limit = _number(data.get('timeLimit'), f'{where}.timeLimit')
        return cls(
            id=str(data.get('id') or new_id()),
            text=str(text),
            answer=str(data.get('answer') or ''),
            points=_number(data.get('points'), f'{where}.points', default_points),
            media=data.get('media') or data.get('mediaPath'),
            media_start=_number(data.get('mediaStartTime'), f'{where}.mediaStartTime', cast=float),
            media_end=_number(data.get('mediaEndTime'), f'{where}.mediaEndTime', cast=float),
            options=options,
            correct_option_index=correct,
            time_limit=time_limit or None,
        )

    def prompt_dict(self) -> Dict[str, Any]:
        """Everything the audience may see while the question is open."""
        return {
            'id': self.id,
            'text': self.text,
            'points': self.points,
            'media': self.media,
            'mediaStartTime': self.media_start,
            'mediaEndTime': self.media_end,
            'options': list(self.options) if self.options else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        payload = self.prompt_dict()
        payload['answer'] = self.answer
        payload['correctOptionIndex'] = self.correct_option_index
        payload['timeLimit'] = self.time_limit
        return payload


@dataclass
class Round:
    id: str
    name: str
    type: str = 'text'
    questions: List[RoundQuestion] = field(default_factory=list)
    default_time_limit: int = 60
    default_points: int = 1
    show_answers_after_round: bool = True
    break_after: bool = False
    standings_after: bool = True

    @property
    def max_points(self) -> int:
        return sum(q.points for q in self.questions)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], where: str, default_time_limit: int = 60) -> 'Round':
        name = _require(data, 'name', where)
        round_type = data.get('type', 'text')
        if round_type not in ROUND_TYPES:
            raise ValueError(f'{where}: unknown round type {round_type!r}')
        default_points = _number(data.get('defaultPoints'), f'{where}.defaultPoints') or 1
        questions = [
            RoundQuestion.from_dict(q, f'{where}.questions[{i}]', default_points)
            for i, q in enumerate(_as_list(data.get('questions'), f'{where}.questions'))
        ]
        if not questions:
            raise ValueError(f'{where}: a round needs at least one question')
        return cls(
            id=str(data.get('id') or new_id()),
            name=str(name),
            type=round_type,
            questions=questions,
            default_time_limit=_number(data.get('defaultTimeLimit'), f'{where}.defaultTimeLimit') or default_time_limit,
            default_points=default_points,
            show_answers_after_round=bool(data.get('showAnswersAfterRound', True)),
            break_after=bool(data.get('breakAfter', False)),
            standings_after=bool(data.get('standingsAfter', True)),
        )

    def summary_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'questionCount': len(self.questions),
            'defaultTimeLimit': self.default_time_limit,
            'defaultPoints': self.default_points,
            'maxPoints': self.max_points,
        }

    def to_dict(self) -> Dict[str, Any]:
        payload = self.summary_dict()
        payload.update({
            'questions': [q.to_dict() for q in self.questions],
            'showAnswersAfterRound': self.show_answers_after_round,
            'breakAfter': self.break_after,
            'standingsAfter': self.standings_after,
        })
        return payload


@dataclass
class RoundsSettings:
    answer_method: str = 'paper'
    auto_advance: bool = False
    show_timer: bool = True
    show_question_number: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'answerMethod': self.answer_method,
            'autoAdvance': self.auto_advance,
            'showTimer': self.show_timer,
            'showQuestionNumber': self.show_question_number,
        }


@dataclass
class RoundsGame:
    id: str
    name: str
    rounds: List[Round] = field(default_factory=list)
    settings: RoundsSettings = field(default_factory=RoundsSettings)
    mode = 'rounds'

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_time_limit: int = 60) -> 'RoundsGame':
        name = _require(data, 'name', 'game')
        rounds = [
            Round.from_dict(r, f'rounds[{i}]', default_time_limit)
            for i, r in enumerate(_as_list(data.get('rounds'), 'rounds'))
        ]
        if not rounds:
            raise ValueError('rounds: a game needs at least one round')
        raw = data.get('settings') or {}
        if not isinstance(raw, dict):
            raise ValueError('settings must be an object')
        method = raw.get('answerMethod', 'paper')
        if method not in ANSWER_METHODS:
            raise ValueError(f'settings: unknown answerMethod {method!r}')
        settings = RoundsSettings(
            answer_method=method,
            auto_advance=bool(raw.get('autoAdvance', False)),
            show_timer=bool(raw.get('showTimer', True)),
            show_question_number=bool(raw.get('showQuestionNumber', True)),
        )
        return cls(id=str(data.get('id') or new_id()), name=str(name), rounds=rounds, settings=settings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'mode': self.mode,
            'name': self.name,
            'rounds': [r.to_dict() for r in self.rounds],
            'settings': self.settings.to_dict(),
        }


def parse_game(data: Dict[str, Any], default_time_limit: int = 60) -> Union[BoardGame, RoundsGame]:
    """Parse a game definition, picking the format from ``mode`` or its shape."""
    if not isinstance(data, dict):
        raise ValueError('game must be an object')
    mode = data.get('mode')
    if mode is None:
        mode = 'rounds' if 'rounds' in data else 'board'
    if mode in ('board', 'jeopardy'):
        return BoardGame.from_dict(data)
    if mode in ('rounds', 'pub-quiz'):
        return RoundsGame.from_dict(data, default_time_limit)
    raise ValueError(f'unknown game mode {mode!r}')
