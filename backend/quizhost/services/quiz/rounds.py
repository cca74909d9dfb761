"""Rounds (pub quiz) format.

Each round runs through a fixed pipeline and then loops::

    round-intro -> questions -> [collect-blanks] -> show-answers
                -> [break] -> [standings] -> round-intro (next) | game-end

``collect-blanks`` only appears for paper answer sheets. ``game-end`` is
terminal; ``reset()`` is the only way back.
"""
from typing import Any, Dict, List, Optional, Tuple

from .base import QuizSession
from .timer import CountdownTimer
from .types import Round, RoundQuestion, RoundsGame, SessionStatus, Team

ROUND_INTRO = 'round-intro'
QUESTIONS = 'questions'
COLLECT_BLANKS = 'collect-blanks'
SHOW_ANSWERS = 'show-answers'
BREAK = 'break'
STANDINGS = 'standings'
GAME_END = 'game-end'

PHASES = (ROUND_INTRO, QUESTIONS, COLLECT_BLANKS, SHOW_ANSWERS, BREAK, STANDINGS, GAME_END)


class RoundsSession(QuizSession):
    mode = 'rounds'

    def __init__(self, game: RoundsGame, teams: List[Team], **kwargs):
        super().__init__(game, teams, **kwargs)
        self.phase = ROUND_INTRO
        self.round_index = 0
        self.q_index = 0
        self.a_index = 0
        self.timer = CountdownTimer(self._limit_for(0))
        # team id -> {round index -> points}
        self.scores: Dict[str, Dict[int, int]] = {t.id: {} for t in self.teams}
        self.pending: Dict[str, int] = {t.id: 0 for t in self.teams}

    # ---- derived ----

    @property
    def round(self) -> Round:
        return self.game.rounds[self.round_index]

    @property
    def total_questions(self) -> int:
        return len(self.round.questions)

    @property
    def question(self) -> RoundQuestion:
        return self.round.questions[self.q_index]

    @property
    def answer(self) -> RoundQuestion:
        return self.round.questions[self.a_index]

    @property
    def is_last_round(self) -> bool:
        return self.round_index == len(self.game.rounds) - 1

    @property
    def time_limit(self) -> int:
        return self._limit_for(self.q_index)

    def _limit_for(self, q_index: int) -> int:
        question = self.round.questions[q_index]
        return question.time_limit or self.round.default_time_limit

    def structural_key(self) -> Tuple:
        return (self.mode, self.phase, self.round_index, self.q_index, self.a_index, self.theme)

    # ---- round flow ----

    def start_round(self) -> bool:
        if self.phase != ROUND_INTRO:
            return False
        self.q_index = 0
        self.a_index = 0
        # a countdown left over from the previous question must not keep ticking
        self.timer.reset(self._limit_for(0))
        self.phase = QUESTIONS
        self.timer.start()
        return self._changed()

    def next_q(self) -> bool:
        if self.phase != QUESTIONS:
            return False
        if self.q_index < self.total_questions - 1:
            self._enter_question(self.q_index + 1)
        elif self.game.settings.answer_method == 'paper':
            self.timer.stop()
            self.phase = COLLECT_BLANKS
        else:
            self._begin_answers()
        return self._changed()

    def prev_q(self) -> bool:
        if self.phase != QUESTIONS or self.q_index == 0:
            return False
        self._enter_question(self.q_index - 1)
        return self._changed()

    def go_q(self, index: int) -> bool:
        index = int(index)
        if self.phase != QUESTIONS or not 0 <= index < self.total_questions or index == self.q_index:
            return False
        self._enter_question(index)
        return self._changed()

    def _enter_question(self, index: int) -> None:
        self.q_index = index
        self.timer.reset(self._limit_for(index))

    def start_answers(self) -> bool:
        at_last_question = self.phase == QUESTIONS and self.q_index == self.total_questions - 1
        if self.phase != COLLECT_BLANKS and not at_last_question:
            return False
        self._begin_answers()
        return self._changed()

    def _begin_answers(self) -> None:
        self.timer.stop()
        if self.round.show_answers_after_round:
            self.a_index = 0
            self.phase = SHOW_ANSWERS
        else:
            self._after_round()

    def next_a(self) -> bool:
        if self.phase != SHOW_ANSWERS:
            return False
        if self.a_index < self.total_questions - 1:
            self.a_index += 1
        else:
            self._after_round()
        return self._changed()

    def prev_a(self) -> bool:
        if self.phase != SHOW_ANSWERS or self.a_index == 0:
            return False
        self.a_index -= 1
        return self._changed()

    def go_a(self, index: int) -> bool:
        index = int(index)
        if self.phase != SHOW_ANSWERS or not 0 <= index < self.total_questions or index == self.a_index:
            return False
        self.a_index = index
        return self._changed()

    def _after_round(self) -> None:
        if self.round.break_after:
            self.phase = BREAK
        elif self.round.standings_after:
            self.phase = STANDINGS
        else:
            self._advance_round()

    def start_break(self) -> bool:
        if self.phase not in (SHOW_ANSWERS, STANDINGS):
            return False
        self.timer.stop()
        self.phase = BREAK
        return self._changed()

    def show_standings(self) -> bool:
        if self.phase not in (SHOW_ANSWERS, BREAK):
            return False
        self.timer.stop()
        self.phase = STANDINGS
        return self._changed()

    def go_next_round(self) -> bool:
        if self.phase not in (BREAK, STANDINGS):
            return False
        self._advance_round()
        return self._changed()

    def go_to_round(self, index: int) -> bool:
        index = int(index)
        if self.phase == GAME_END or not 0 <= index < len(self.game.rounds):
            return False
        if index == self.round_index and self.phase == ROUND_INTRO:
            return False
        self._enter_round(index)
        return self._changed()

    def _advance_round(self) -> None:
        if self.is_last_round:
            self.timer.stop()
            self.phase = GAME_END
            return
        self._enter_round(self.round_index + 1)

    def _enter_round(self, index: int) -> None:
        self.round_index = index
        self.q_index = 0
        self.a_index = 0
        self.phase = ROUND_INTRO
        self.pending = {t.id: 0 for t in self.teams}
        self.timer.reset(self._limit_for(0))

    def reset(self) -> bool:
        """Back to the first round intro with a clean scoresheet."""
        self._enter_round(0)
        self.scores = {t.id: {} for t in self.teams}
        for team in self.teams:
            team.score = 0
        self.status = SessionStatus.SETUP
        return self._changed()

    # ---- timer ----

    def start_timer(self) -> bool:
        if self.phase != QUESTIONS or self.timer.running or self.timer.remaining <= 0:
            return False
        self.timer.start()
        return True

    def stop_timer(self) -> bool:
        if not self.timer.running:
            return False
        self.timer.stop()
        return True

    def reset_timer(self) -> bool:
        self.timer.reset(self.time_limit)
        return True

    # ---- scores ----

    def update_score(self, team_id: str, value: int) -> bool:
        if self.find_team(team_id) is None:
            return False
        self.pending[team_id] = max(0, int(value))
        return self._changed()

    def save_scores(self) -> bool:
        if not self.teams:
            return False
        for team in self.teams:
            self.scores.setdefault(team.id, {})[self.round_index] = self.pending.get(team.id, 0)
            team.score = self.total(team.id)
        return self._changed()

    def edit_saved_score(self, team_id: str, round_index: int, value: int) -> bool:
        round_index = int(round_index)
        if self.find_team(team_id) is None or not 0 <= round_index < len(self.game.rounds):
            return False
        self.scores.setdefault(team_id, {})[round_index] = max(0, int(value))
        self.find_team(team_id).score = self.total(team_id)
        return self._changed()

    def total(self, team_id: str) -> int:
        return sum(self.scores.get(team_id, {}).values())

    def done_rounds(self) -> List[int]:
        saved = set()
        for per_round in self.scores.values():
            saved.update(per_round)
        return sorted(saved)

    def is_round_saved(self, round_index: Optional[int] = None) -> bool:
        idx = self.round_index if round_index is None else round_index
        return any(idx in per_round for per_round in self.scores.values())

    def scores_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            team_id: {str(r): pts for r, pts in sorted(per_round.items())}
            for team_id, per_round in self.scores.items()
        }

    # ---- housekeeping ----

    def _forget_team(self, team_id: str) -> None:
        self.scores.pop(team_id, None)
        self.pending.pop(team_id, None)

    def shutdown(self) -> None:
        self.timer.stop()

    def timer_dict(self) -> Dict[str, Any]:
        return {'time': self.timer.remaining, 'timerOn': self.timer.running, 'timeLimit': self.timer.limit}

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({
            'phase': self.phase,
            'roundIndex': self.round_index,
            'questionIndex': self.q_index,
            'answerIndex': self.a_index,
            'totalRounds': len(self.game.rounds),
            'isLastRound': self.is_last_round,
            'round': self.round.to_dict(),
            'settings': self.game.settings.to_dict(),
            'timer': self.timer_dict(),
            'scores': self.scores_dict(),
            'totals': {t.id: self.total(t.id) for t in self.teams},
            'pendingScores': dict(self.pending),
            'doneRounds': self.done_rounds(),
            'isRoundSaved': self.is_round_saved(),
        })
        return payload
