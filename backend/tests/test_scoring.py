import pytest

from quizhost.services.quiz.scoring import (
    CORRECT, INCORRECT, ResolutionContext, ScoreDelta, auction_winner, clamp_bid, clamp_wager, resolve,
)
from quizhost.services.quiz.types import QuestionKind

ORDER = ('t1', 't2', 't3')


def ctx(**kwargs):
    kwargs.setdefault('team_order', ORDER)
    kwargs.setdefault('responding_team_id', 't1')
    return ResolutionContext(**kwargs)


def test_normal_correct_awards_one_point():
    res = resolve(QuestionKind.NORMAL, CORRECT, ctx())
    assert res.deltas == [ScoreDelta('t1', 1)]
    assert res.awarded_team_id == 't1'
    assert res.blocked_team_ids == []


def test_normal_incorrect_blocks_without_penalty():
    res = resolve(QuestionKind.NORMAL, INCORRECT, ctx())
    assert res.deltas == []
    assert res.blocked_team_ids == ['t1']
    assert res.awarded_team_id is None


def test_perform_scores_like_normal():
    assert resolve(QuestionKind.PERFORM, CORRECT, ctx()).deltas == [ScoreDelta('t1', 1)]
    assert resolve(QuestionKind.PERFORM, INCORRECT, ctx()).deltas == []


def test_wager_is_won_or_lost_in_full():
    assert resolve(QuestionKind.WAGER, CORRECT, ctx(wager_amount=3)).deltas == [ScoreDelta('t1', 3)]
    res = resolve(QuestionKind.WAGER, INCORRECT, ctx(wager_amount=2))
    assert res.deltas == [ScoreDelta('t1', -2)]
    assert res.blocked_team_ids == ['t1']


def test_wager_without_amount_is_noop():
    assert resolve(QuestionKind.WAGER, CORRECT, ctx()).is_noop


def test_auction_pays_the_highest_bidder():
    bids = {'t1': 2, 't2': 5, 't3': 0}
    res = resolve(QuestionKind.AUCTION, CORRECT, ctx(responding_team_id='t2', auction_bids=bids))
    assert res.deltas == [ScoreDelta('t2', 5)]
    res = resolve(QuestionKind.AUCTION, INCORRECT, ctx(responding_team_id='t2', auction_bids=bids))
    assert res.deltas == [ScoreDelta('t2', -5)]
    assert res.blocked_team_ids == ['t2']


def test_auction_tie_goes_to_first_team_in_order():
    bids = {'t3': 4, 't2': 4, 't1': 1}
    assert auction_winner(bids, ORDER) == 't2'
    res = resolve(QuestionKind.AUCTION, CORRECT, ctx(auction_bids=bids))
    assert res.awarded_team_id == 't2'


def test_auction_skips_blocked_bidders():
    bids = {'t1': 2, 't2': 5}
    assert auction_winner(bids, ORDER, blocked=['t2']) == 't1'
    assert auction_winner({'t2': 5}, ORDER, blocked=['t2']) is None


def test_auction_without_bids_is_noop():
    assert resolve(QuestionKind.AUCTION, CORRECT, ctx()).is_noop


def test_blind_pick_targets_assigned_team_not_responder():
    res = resolve(QuestionKind.BLIND_PICK, CORRECT, ctx(responding_team_id='t1', blind_pick_target_team_id='t3'))
    assert res.deltas == [ScoreDelta('t3', 2)]
    res = resolve(QuestionKind.BLIND_PICK, INCORRECT, ctx(responding_team_id='t1', blind_pick_target_team_id='t3'))
    assert res.deltas == [ScoreDelta('t3', -2)]
    assert res.blocked_team_ids == ['t3']


def test_blind_pick_without_target_is_noop():
    assert resolve(QuestionKind.BLIND_PICK, INCORRECT, ctx()).is_noop


def test_blocked_team_cannot_score():
    res = resolve(QuestionKind.NORMAL, CORRECT, ctx(blocked_team_ids=('t1',)))
    assert res.is_noop


def test_no_responder_is_noop():
    assert resolve(QuestionKind.NORMAL, CORRECT, ctx(responding_team_id=None)).is_noop


def test_unknown_event_is_rejected():
    with pytest.raises(ValueError):
        resolve(QuestionKind.NORMAL, 'maybe', ctx())


def test_clamps():
    assert clamp_wager(0) == 1
    assert clamp_wager(7) == 3
    assert clamp_bid(-1) == 0
    assert clamp_bid(9) == 5
