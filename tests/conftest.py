import os
import sys
import random
import pytest

# Ensure the project root (containing the `livequiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from livequiz import create_app, db, socketio, sessions
from livequiz.errors import QuizNotFound
from livequiz.services.games.coordinator import SessionCoordinator
from livequiz.services.games.scheduler import StageScheduler
from livequiz.services.games.state import QuestionSpec


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    COUNTDOWN_DURATION_SEC = 3
    MIN_PLAYERS = 1
    SESSION_RETENTION_SEC = 300
    MODIFIER_INVENTORY = {'fifty_fifty': 1, 'double_points': 1}
    JWT_SECRET_KEY = 'test-jwt-secret-with-enough-length-for-hs256'
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_SEC = 3600


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingNotifier:
    def __init__(self):
        self.broadcasts = []
        self.host_events = []

    def init_app(self, app, socketio):
        pass

    def broadcast(self, session_id, phase, envelope):
        self.broadcasts.append((session_id, phase, envelope))

    def notify_host(self, session_id, event, payload):
        self.host_events.append((session_id, event, payload))

    def phases(self, session_id):
        return [phase for sid, phase, _ in self.broadcasts if sid == session_id]


class MemoryQuizStore:
    def __init__(self):
        self.quizzes = {}
        self.grants = []

    def add(self, quiz_id, questions, title='Test Quiz'):
        self.quizzes[quiz_id] = (title, list(questions))

    def load_quiz(self, quiz_id):
        if quiz_id not in self.quizzes:
            raise QuizNotFound(f'Quiz {quiz_id} not found')
        return self.quizzes[quiz_id]

    def grant_rewards(self, grants):
        grants = list(grants)
        self.grants.extend(grants)
        return len(grants)


def make_question(qid, points=1000, time_limit=10, options=('A', 'B', 'C', 'D'), correct=0):
    return QuestionSpec(id=qid, text=f'Question {qid}?', options=tuple(options),
                        correct_index=correct, points=points, time_limit=time_limit)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store():
    s = MemoryQuizStore()
    s.add(1, [make_question(101, points=1000), make_question(102, points=500)])
    s.add(2, [])
    return s


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def coordinator(store, notifier, clock):
    return SessionCoordinator(
        store=store,
        notifier=notifier,
        scheduler=StageScheduler(deferred=True),
        clock=clock,
        rng=random.Random(7),
    )


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    # No context stays pushed: each test-client request gets its own `g`
    with application.app_context():
        # Ensure models are imported so tables are created
        import livequiz.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_clock(flask_app):
    fake = FakeClock()
    sessions.clock = fake
    return fake


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


@pytest.fixture()
def seeded_quiz(flask_app):
    """Two questions: 1000 and 500 points, 10 seconds each, option 1 correct."""
    from livequiz.models import Quiz, Question, AnswerOption
    with flask_app.app_context():
        quiz = Quiz(title='Seeded')
        for order, points in enumerate([1000, 500]):
            question = Question(text=f'Q{order + 1}', points=points, time_limit=10, order_index=order)
            question.options = [
                AnswerOption(text=t, option_index=i, is_correct=(i == 1))
                for i, t in enumerate(['w', 'x', 'y', 'z'])
            ]
            quiz.questions.append(question)
        db.session.add(quiz)
        db.session.commit()
        return quiz.id
