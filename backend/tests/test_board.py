import itertools

from quizhost.services.quiz import board as phases
from quizhost.services.quiz.board import BoardSession


def make_session(board_game, teams):
    return BoardSession(board_game, teams)


def score(session, team_id):
    return session.find_team(team_id).score


def question(session, question_id):
    for category in session.game.categories:
        found = category.find(question_id)
        if found:
            return found


def test_select_question_starts_with_no_blocks(board_game, teams):
    session = make_session(board_game, teams)
    assert session.phase == phases.IDLE
    assert session.select_question('c1', 'q-normal')
    assert session.phase == phases.AWAITING_RESPONSE
    assert session.active.blocked_team_ids == []
    assert session.active.responding_team_id is None


def test_select_question_only_from_idle(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-normal')
    assert not session.select_question('c1', 'q-wager')
    assert session.active.question_id == 'q-normal'


def test_select_unknown_or_played_question_is_ignored(board_game, teams):
    session = make_session(board_game, teams)
    assert not session.select_question('c9', 'q-normal')
    assert not session.select_question('c1', 'nope')
    session.select_question('c1', 'q-normal')
    session.close()
    assert not session.select_question('c1', 'q-normal')
    assert session.active is None


def test_scenario_wager_correct(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-wager')
    assert session.phase == phases.WAGER_SETUP
    session.set_wager(3)
    session.set_responder('t1')
    assert session.phase == phases.RESOLVING
    assert session.mark_correct()
    assert score(session, 't1') == 3
    q = question(session, 'q-wager')
    assert q.answered_by_team_id == 't1'
    assert q.played
    assert session.phase == phases.IDLE


def test_scenario_normal_incorrect(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-normal')
    session.set_responder('t1')
    assert session.mark_incorrect()
    assert score(session, 't1') == 0
    assert 't1' in session.active.blocked_team_ids
    assert session.active.responding_team_id is None
    assert session.phase == phases.AWAITING_RESPONSE
    assert not question(session, 'q-normal').played


def test_scenario_auction(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-auction')
    assert session.phase == phases.AUCTION_BIDDING
    session.set_auction_bid('t1', 2)
    session.set_auction_bid('t2', 5)
    session.set_auction_bid('t3', 0)
    session.set_responder('t2')
    session.mark_correct()
    assert score(session, 't2') == 5
    assert question(session, 'q-auction').answered_by_team_id == 't2'


def test_auction_tie_break_uses_team_order(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-auction')
    session.set_auction_bid('t3', 4)
    session.set_auction_bid('t2', 4)
    session.set_responder('t2')
    session.mark_incorrect()
    assert score(session, 't2') == -4
    assert score(session, 't3') == 0
    assert session.active.blocked_team_ids == ['t2']


def test_bids_and_wagers_are_clamped(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-auction')
    session.set_auction_bid('t1', 11)
    assert session.active.setup.bids['t1'] == 5
    assert not session.set_wager(2)
    session.close()
    session.select_question('c1', 'q-wager')
    session.set_wager(0)
    assert session.active.setup.amount == 1


def test_blind_pick_awards_target(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c2', 'q-blind')
    assert session.phase == phases.BLIND_PICK_ASSIGNMENT
    session.set_responder('t1')
    assert not session.mark_correct()
    session.set_blind_pick_target('t3')
    session.mark_incorrect()
    assert score(session, 't3') == -2
    assert score(session, 't1') == 0
    assert session.is_team_blocked('t3')
    assert not session.set_blind_pick_target('t3')


def test_mark_requires_responder(board_game, teams):
    session = make_session(board_game, teams)
    assert not session.mark_correct()
    session.select_question('c1', 'q-normal')
    assert not session.mark_correct()
    assert not session.mark_incorrect()
    assert session.active is not None


def test_blocked_team_never_responds(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-normal')
    session.set_responder('t1')
    session.mark_incorrect()
    for team_id in itertools.chain(['t1'] * 3, ['t2', 't1', None, 't1']):
        session.set_responder(team_id)
        assert session.active.responding_team_id not in session.active.blocked_team_ids


def test_all_blocked_allows_only_close(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-normal')
    for team in teams:
        session.set_responder(team.id)
        session.mark_incorrect()
    assert session.all_teams_blocked
    assert session.available_teams() == []
    for team in teams:
        assert not session.set_responder(team.id)
    assert not session.mark_correct()
    assert all(t.score == 0 for t in session.teams)
    assert session.close()
    assert question(session, 'q-normal').played
    assert question(session, 'q-normal').answered_by_team_id is None


def test_played_never_reverts(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c2', 'q-perform')
    session.set_responder('t2')
    session.mark_correct()
    for _ in range(3):
        session.select_question('c2', 'q-perform')
        session.close()
        assert question(session, 'q-perform').played
    assert score(session, 't2') == 1


def test_blocks_reset_on_next_question(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-normal')
    session.set_responder('t1')
    session.mark_incorrect()
    session.close()
    session.select_question('c2', 'q-perform')
    assert session.active.blocked_team_ids == []
    assert session.set_responder('t1')


def test_media_state_follows_active_question(board_game, teams):
    session = make_session(board_game, teams)
    assert not session.set_playing(True)
    session.select_question('c1', 'q-normal')
    assert session.set_playing(True)
    assert session.set_media_time(14.5)
    assert session.active.current_media_time == 14.5
    session.report_media_error('decode failed')
    assert session.media_error == 'decode failed'
    assert session.phase == phases.AWAITING_RESPONSE
    session.set_responder('t1')
    assert session.mark_correct()


def test_removing_team_clears_its_question_state(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-auction')
    session.set_auction_bid('t2', 3)
    session.set_responder('t2')
    session.remove_team('t2')
    assert session.active.responding_team_id is None
    assert 't2' not in session.active.setup.bids


def test_observers_fire_once_per_applied_command(board_game, teams):
    session = make_session(board_game, teams)
    seen = []
    unsubscribe = session.subscribe(lambda s: seen.append(s.phase))
    session.select_question('c1', 'q-normal')
    session.select_question('c1', 'q-normal')
    session.set_responder('t1')
    assert seen == [phases.AWAITING_RESPONSE, phases.RESOLVING]
    unsubscribe()
    session.close()
    assert len(seen) == 2


def test_session_status_and_teams(board_game, teams):
    session = BoardSession(board_game, teams[:1])
    assert not session.start_game()
    assert session.add_team('Wolves')
    assert session.teams[-1].color == '#3b82f6'
    assert session.start_game()
    assert session.pause_game()
    assert session.resume_game()
    session.select_question('c1', 'q-normal')
    assert session.end_game()
    assert session.active is None
    assert session.status.value == 'finished'


def test_team_limit(board_game, teams):
    session = BoardSession(board_game, teams, max_teams=3)
    assert not session.add_team('Too many')
    assert len(session.teams) == 3


def test_theme_and_scores_toggle(board_game, teams):
    session = make_session(board_game, teams)
    assert not session.set_theme('neon-pink')
    assert session.set_theme('winter')
    assert session.structural_key()[-1] == 'winter'
    assert session.toggle_scores()
    assert session.show_scores


def test_auction_with_no_eligible_bidder_prompts_close(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c1', 'q-auction')
    session.set_auction_bid('t1', 3)
    session.set_responder('t1')
    session.mark_incorrect()
    assert score(session, 't1') == -3
    assert len(session.available_teams()) == 2
    assert session.all_teams_blocked
    assert session.to_dict()['allTeamsBlocked'] is True
    session.set_responder('t2')
    assert not session.mark_correct()
    assert score(session, 't2') == 0
    assert session.close()


def test_blind_pick_with_blocked_target_prompts_close(board_game, teams):
    session = make_session(board_game, teams)
    session.select_question('c2', 'q-blind')
    session.set_blind_pick_target('t2')
    assert not session.all_teams_blocked
    session.set_responder('t1')
    session.mark_incorrect()
    assert session.all_teams_blocked
