import time

import pytest

from quizhost import create_app, db
from quizhost.services.quiz import scheduler
from quizhost.services.quiz.scheduler import schedule_countdown
from quizhost.sessions import get_registry

from conftest import TestConfig, rounds_definition


class TimerConfig(TestConfig):
    ENABLE_TIMER_IN_TESTS = True
    TIMER_TICK_SEC = 0.01


@pytest.fixture()
def timer_app():
    application = create_app(TimerConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


def wait_for(predicate, timeout=3.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def start_rounds_session(client):
    definition = rounds_definition(defaultTimeLimit=5)
    code = client.post('/api/sessions', json={'game': definition, 'teams': ['A', 'B']}).get_json()['code']
    client.post(f'/api/sessions/{code}/commands', json={'command': 'startRound'})
    return code


def test_noop_in_testing(flask_app, client):
    code = start_rounds_session(client)
    live = get_registry(flask_app).get(code)
    schedule_countdown(flask_app, code)
    time.sleep(0.05)
    assert live.timer.remaining == 5
    assert not scheduler._scheduled_countdowns


def test_worker_counts_down_to_zero(timer_app):
    code = start_rounds_session(timer_app.test_client())
    live = get_registry(timer_app).get(code)
    assert wait_for(lambda: not live.timer.running)
    assert live.timer.remaining == 0
    assert wait_for(lambda: not scheduler._scheduled_countdowns)


def test_restart_retires_old_worker(timer_app):
    client = timer_app.test_client()
    code = start_rounds_session(client)
    live = get_registry(timer_app).get(code)
    client.post(f'/api/sessions/{code}/commands', json={'command': 'stopTimer'})
    client.post(f'/api/sessions/{code}/commands', json={'command': 'resetTimer'})
    assert wait_for(lambda: not scheduler._scheduled_countdowns)
    assert live.timer.remaining == 5
    client.post(f'/api/sessions/{code}/commands', json={'command': 'startTimer'})
    assert wait_for(lambda: live.timer.remaining == 0)
    assert wait_for(lambda: not scheduler._scheduled_countdowns)


def test_ended_session_stops_worker(timer_app):
    client = timer_app.test_client()
    code = start_rounds_session(client)
    client.delete(f'/api/sessions/{code}')
    assert wait_for(lambda: not scheduler._scheduled_countdowns)
