from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

from livequiz.services.games.coordinator import SessionCoordinator

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)
# Live sessions, in memory for the lifetime of the process
sessions = SessionCoordinator()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)
    sessions.init_app(flask_app, socketio)

    from livequiz.main import main
    flask_app.register_blueprint(main)

    from livequiz.api.sessions import sessions_bp
    flask_app.register_blueprint(sessions_bp, url_prefix='/api/sessions')

    from livequiz.api.quizzes import quizzes_bp
    flask_app.register_blueprint(quizzes_bp, url_prefix='/api/quizzes')

    from livequiz.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from livequiz.models import Account

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Account, int(user_id))

    @login_manager.request_loader
    def load_user_from_request(req):
        from livequiz.auth import account_from_request
        return account_from_request(req)

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from livequiz.models import Account, Quiz, Question, AnswerOption
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            for username in ['testuser1', 'testuser2', 'testuser3']:
                db.session.add(Account(username=username))

            quiz = Quiz(title='Capitals', description='Warm-up round')
            seed = [
                ('Capital of France?', ['Berlin', 'Paris', 'Rome', 'Madrid'], 1),
                ('Capital of Japan?', ['Tokyo', 'Kyoto'], 0),
                ('Capital of Canada?', ['Toronto', 'Vancouver', 'Ottawa'], 2),
            ]
            for order, (text, options, correct) in enumerate(seed):
                question = Question(text=text, points=1000, time_limit=20, order_index=order)
                question.options = [
                    AnswerOption(text=option, option_index=i, is_correct=(i == correct))
                    for i, option in enumerate(options)
                ]
                quiz.questions.append(question)
            db.session.add(quiz)

            db.session.commit()
            print('Database has been reset and seeded!')

            from livequiz.auth import create_account_token
            for account in Account.query.order_by(Account.id):
                print(f'{account.username}: {create_account_token(account.id)}')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
