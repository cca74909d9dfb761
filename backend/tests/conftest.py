import os
import sys
import pytest

# Ensure the backend root (containing the `quizhost` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizhost import create_app, db, socketio
from quizhost.services.quiz.types import BoardGame, RoundsGame, build_teams


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    LOGIN_DISABLED = True
    CORS_ORIGINS = []
    TIMER_TICK_SEC = 1
    DEFAULT_TIME_LIMIT_SEC = 60
    MIN_TEAMS = 2
    MAX_TEAMS = 12
    DEFAULT_THEME = 'nordic-dark'
    TIMER_HEARTBEAT_SEC = 0


def board_definition():
    return {
        'mode': 'board',
        'name': 'Music Board',
        'categories': [
            {
                'id': 'c1',
                'name': 'Eighties',
                'questions': [
                    {'id': 'q-normal', 'type': 'normal', 'answer': 'Take On Me', 'media': 'a-ha.mp3', 'startTime': 12, 'endTime': 30},
                    {'id': 'q-wager', 'type': 'wager', 'answer': 'Africa'},
                    {'id': 'q-auction', 'type': 'auction', 'answer': 'Thriller'},
                ],
            },
            {
                'id': 'c2',
                'name': 'Nineties',
                'questions': [
                    {'id': 'q-blind', 'type': 'blind-pick', 'answer': 'Wonderwall'},
                    {'id': 'q-perform', 'type': 'perform', 'answer': 'Macarena'},
                ],
            },
        ],
    }


def rounds_definition(answer_method='paper', **round_overrides):
    first_round = {
        'id': 'r1',
        'name': 'Warm-up',
        'type': 'text',
        'defaultTimeLimit': 30,
        'questions': [
            {'id': 'r1q1', 'text': 'Capital of France?', 'answer': 'Paris', 'points': 1},
            {'id': 'r1q2', 'text': 'Largest planet?', 'answer': 'Jupiter', 'points': 2},
            {'id': 'r1q3', 'text': 'Pick the mammal', 'answer': 'Whale',
             'options': ['Shark', 'Whale', 'Trout', 'Squid'], 'correctOptionIndex': 1, 'timeLimit': 10},
        ],
    }
    first_round.update(round_overrides)
    return {
        'mode': 'rounds',
        'name': 'Pub Night',
        'settings': {'answerMethod': answer_method},
        'rounds': [
            first_round,
            {
                'id': 'r2',
                'name': 'Music',
                'type': 'music',
                'questions': [
                    {'id': 'r2q1', 'text': 'Name the band', 'answer': 'Queen', 'media': 'queen.mp3',
                     'mediaStartTime': 5, 'mediaEndTime': 25},
                    {'id': 'r2q2', 'text': 'Name the song', 'answer': 'Yesterday'},
                ],
            },
        ],
    }


@pytest.fixture()
def teams():
    return build_teams([
        {'id': 't1', 'name': 'Owls'},
        {'id': 't2', 'name': 'Foxes'},
        {'id': 't3', 'name': 'Bears'},
    ])


@pytest.fixture()
def board_game():
    return BoardGame.from_dict(board_definition())


@pytest.fixture()
def rounds_game():
    return RoundsGame.from_dict(rounds_definition())


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import quizhost.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
