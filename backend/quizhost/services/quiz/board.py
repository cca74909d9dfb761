"""Board (grid) format: categories x questions with per-question lockout.

Phases are derived from the active question rather than stored::

    idle -> wager-setup | auction-bidding | blind-pick-assignment | awaiting-response
         -> resolving (a team is answering)
         -> awaiting-response (miss, team locked out) | idle (correct or close)

A question flips to ``played`` exactly once, when it leaves the screen.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from .base import QuizSession
from .scoring import (
    CORRECT, INCORRECT, Resolution, ResolutionContext, auction_winner, clamp_bid, clamp_wager, resolve,
)
from .types import (
    ActiveQuestion, AuctionSetup, BlindPickSetup, BoardGame, BoardQuestion, Team,
    WagerSetup, setup_for,
)

logger = logging.getLogger(__name__)

IDLE = 'idle'
WAGER_SETUP = 'wager-setup'
AUCTION_BIDDING = 'auction-bidding'
BLIND_PICK_ASSIGNMENT = 'blind-pick-assignment'
AWAITING_RESPONSE = 'awaiting-response'
RESOLVING = 'resolving'


class BoardSession(QuizSession):
    mode = 'board'

    def __init__(self, game: BoardGame, teams: List[Team], **kwargs):
        super().__init__(game, teams, **kwargs)
        self.active: Optional[ActiveQuestion] = None

    # ---- derived state ----

    @property
    def phase(self) -> str:
        active = self.active
        if active is None:
            return IDLE
        setup = active.setup
        if isinstance(setup, WagerSetup) and setup.amount is None:
            return WAGER_SETUP
        if isinstance(setup, AuctionSetup) and not setup.bids:
            return AUCTION_BIDDING
        if isinstance(setup, BlindPickSetup) and setup.target_team_id is None:
            return BLIND_PICK_ASSIGNMENT
        if active.responding_team_id is not None:
            return RESOLVING
        return AWAITING_RESPONSE

    def structural_key(self) -> Tuple:
        if self.active is None:
            return (self.mode, None, None, self.theme)
        return (self.mode, self.active.category_id, self.active.question_id, self.theme)

    def active_question(self) -> Optional[BoardQuestion]:
        if self.active is None:
            return None
        category = self.game.find_category(self.active.category_id)
        return category.find(self.active.question_id) if category else None

    def is_team_blocked(self, team_id: str) -> bool:
        return self.active is not None and team_id in self.active.blocked_team_ids

    def available_teams(self) -> List[Team]:
        return [t for t in self.teams if not self.is_team_blocked(t.id)]

    @property
    def all_teams_blocked(self) -> bool:
        """True once nobody left can score on the active question; only close() helps then."""
        active = self.active
        if active is None or not self.teams:
            return False
        if not self.available_teams():
            return True
        setup = active.setup
        # auctions are only open to their bidders, blind picks to their target
        if isinstance(setup, AuctionSetup) and setup.bids:
            return auction_winner(setup.bids, self.team_order, active.blocked_team_ids) is None
        if isinstance(setup, BlindPickSetup) and setup.target_team_id is not None:
            return self.is_team_blocked(setup.target_team_id)
        return False

    def _eligible(self, team_id: Optional[str]) -> bool:
        return self.find_team(team_id) is not None and not self.is_team_blocked(team_id)

    # ---- question lifecycle ----

    def select_question(self, category_id: str, question_id: str) -> bool:
        if self.active is not None:
            return False
        category = self.game.find_category(category_id)
        question = category.find(question_id) if category else None
        if question is None or question.played:
            return False
        self.active = ActiveQuestion(
            category_id=category.id,
            question_id=question.id,
            kind=question.kind,
            setup=setup_for(question.kind),
        )
        return self._changed()

    def set_responder(self, team_id: Optional[str]) -> bool:
        if self.active is None:
            return False
        if team_id is not None and not self._eligible(team_id):
            return False
        if self.active.responding_team_id == team_id:
            return False
        self.active.responding_team_id = team_id
        return self._changed()

    def set_wager(self, amount: int) -> bool:
        if self.active is None or not isinstance(self.active.setup, WagerSetup):
            return False
        self.active.setup.amount = clamp_wager(amount)
        return self._changed()

    def set_auction_bid(self, team_id: str, amount: int) -> bool:
        if self.active is None or not isinstance(self.active.setup, AuctionSetup):
            return False
        if not self._eligible(team_id):
            return False
        self.active.setup.bids[team_id] = clamp_bid(amount)
        return self._changed()

    def set_blind_pick_target(self, team_id: str) -> bool:
        if self.active is None or not isinstance(self.active.setup, BlindPickSetup):
            return False
        if not self._eligible(team_id):
            return False
        self.active.setup.target_team_id = team_id
        return self._changed()

    def mark_correct(self) -> bool:
        resolution = self._resolve(CORRECT)
        if resolution is None:
            return False
        self._apply(resolution)
        question = self.active_question()
        if question is not None:
            question.answered_by_team_id = resolution.awarded_team_id
        return self.close()

    def mark_incorrect(self) -> bool:
        resolution = self._resolve(INCORRECT)
        if resolution is None:
            return False
        self._apply(resolution)
        for team_id in resolution.blocked_team_ids:
            if team_id not in self.active.blocked_team_ids:
                self.active.blocked_team_ids.append(team_id)
        self.active.responding_team_id = None
        if self.all_teams_blocked:
            logger.info('all teams locked out of question %s', self.active.question_id)
        return self._changed()

    def close(self) -> bool:
        if self.active is None:
            return False
        question = self.active_question()
        if question is not None:
            question.played = True
        self.active = None
        return self._changed()

    def _resolve(self, event: str) -> Optional[Resolution]:
        if self.active is None or self.active.responding_team_id is None:
            return None
        ctx = ResolutionContext.from_active(self.active, self.team_order)
        resolution = resolve(self.active.kind, event, ctx)
        if resolution.is_noop:
            return None
        return resolution

    def _apply(self, resolution: Resolution) -> None:
        for d in resolution.deltas:
            team = self.find_team(d.team_id)
            if team is not None:
                team.score += d.delta

    # ---- media ----

    def set_playing(self, playing: bool) -> bool:
        if self.active is None or self.active.is_playing == bool(playing):
            return False
        self.active.is_playing = bool(playing)
        return self._changed()

    def set_media_time(self, seconds: float) -> bool:
        if self.active is None:
            return False
        self.active.current_media_time = max(0.0, float(seconds))
        return self._changed()

    # ---- housekeeping ----

    def _forget_team(self, team_id: str) -> None:
        active = self.active
        if active is None:
            return
        if active.responding_team_id == team_id:
            active.responding_team_id = None
        if team_id in active.blocked_team_ids:
            active.blocked_team_ids.remove(team_id)
        if isinstance(active.setup, AuctionSetup):
            active.setup.bids.pop(team_id, None)
        elif isinstance(active.setup, BlindPickSetup) and active.setup.target_team_id == team_id:
            active.setup.target_team_id = None

    def shutdown(self) -> None:
        self.active = None

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({
            'phase': self.phase,
            'game': self.game.to_dict(),
            'currentQuestion': self.active.to_dict() if self.active else None,
            'allTeamsBlocked': self.all_teams_blocked,
            'availableTeamIds': [t.id for t in self.available_teams()],
        })
        return payload
