from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .types import AuctionSetup, BlindPickSetup, QuestionKind, WagerSetup, ActiveQuestion

CORRECT = 'correct'
INCORRECT = 'incorrect'

BLIND_PICK_POINTS = 2
WAGER_MIN, WAGER_MAX = 1, 3
BID_MIN, BID_MAX = 0, 5


@dataclass(frozen=True)
class ScoreDelta:
    team_id: str
    delta: int


@dataclass
class ResolutionContext:
    responding_team_id: Optional[str]
    blocked_team_ids: Sequence[str] = ()
    team_order: Sequence[str] = ()
    wager_amount: Optional[int] = None
    auction_bids: Dict[str, int] = field(default_factory=dict)
    blind_pick_target_team_id: Optional[str] = None

    @classmethod
    def from_active(cls, active: ActiveQuestion, team_order: Sequence[str]) -> 'ResolutionContext':
        ctx = cls(
            responding_team_id=active.responding_team_id,
            blocked_team_ids=tuple(active.blocked_team_ids),
            team_order=tuple(team_order),
        )
        if isinstance(active.setup, WagerSetup):
            ctx.wager_amount = active.setup.amount
        elif isinstance(active.setup, AuctionSetup):
            ctx.auction_bids = dict(active.setup.bids)
        elif isinstance(active.setup, BlindPickSetup):
            ctx.blind_pick_target_team_id = active.setup.target_team_id
        return ctx


@dataclass
class Resolution:
    """Outcome of resolving one response.

    ``awarded_team_id`` is the team the points went to on a correct answer;
    ``blocked_team_ids`` lists teams that lose eligibility for the question.
    """
    deltas: List[ScoreDelta] = field(default_factory=list)
    blocked_team_ids: List[str] = field(default_factory=list)
    awarded_team_id: Optional[str] = None

    @property
    def is_noop(self) -> bool:
        return not self.deltas and not self.blocked_team_ids and self.awarded_team_id is None


def clamp_wager(amount: int) -> int:
    return min(WAGER_MAX, max(WAGER_MIN, int(amount)))


def clamp_bid(amount: int) -> int:
    return min(BID_MAX, max(BID_MIN, int(amount)))


def auction_winner(bids: Dict[str, int], team_order: Sequence[str],
                   blocked: Sequence[str] = ()) -> Optional[str]:
    """Pick the highest eligible bidder.

    Ties go to the team listed first in ``team_order``; bidders missing from
    ``team_order`` rank after it, by bid insertion order.
    """
    eligible = [tid for tid in bids if tid not in blocked]
    if not eligible:
        return None
    top = max(bids[tid] for tid in eligible)
    contenders = [tid for tid in eligible if bids[tid] == top]
    position = {tid: i for i, tid in enumerate(team_order)}
    contenders.sort(key=lambda tid: position.get(tid, len(position)))
    return contenders[0]


def _award(team_id: Optional[str], points: int, event: str, ctx: ResolutionContext,
           penalty: bool = True) -> Resolution:
    if not team_id or team_id in ctx.blocked_team_ids:
        return Resolution()
    if event == CORRECT:
        return Resolution(deltas=[ScoreDelta(team_id, points)], awarded_team_id=team_id)
    deltas = [ScoreDelta(team_id, -points)] if penalty and points else []
    return Resolution(deltas=deltas, blocked_team_ids=[team_id])


def resolve(kind: QuestionKind, event: str, ctx: ResolutionContext) -> Resolution:
    """Map a host verdict on a board question to score deltas and lockouts.

    - normal / perform: +1 on correct; a miss costs nothing but locks the team out
    - wager: +/- the wager for the responding team
    - auction: +/- the winning bid for the highest eligible bidder
    - blind-pick: +/- 2 for the assigned target, whoever answered

    Returns an empty ``Resolution`` when the kind's setup is incomplete.
    """
    if event not in (CORRECT, INCORRECT):
        raise ValueError(f'unknown event {event!r}')

    if kind in (QuestionKind.NORMAL, QuestionKind.PERFORM):
        return _award(ctx.responding_team_id, 1, event, ctx, penalty=False)

    if kind is QuestionKind.WAGER:
        if ctx.wager_amount is None:
            return Resolution()
        return _award(ctx.responding_team_id, clamp_wager(ctx.wager_amount), event, ctx)

    if kind is QuestionKind.AUCTION:
        winner = auction_winner(ctx.auction_bids, ctx.team_order, ctx.blocked_team_ids)
        if winner is None:
            return Resolution()
        return _award(winner, clamp_bid(ctx.auction_bids[winner]), event, ctx)

    if kind is QuestionKind.BLIND_PICK:
        return _award(ctx.blind_pick_target_team_id, BLIND_PICK_POINTS, event, ctx)

    raise ValueError(f'unhandled question kind {kind!r}')
