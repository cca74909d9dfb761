from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One registry per app so test apps never share sessions
    from quizhost.sessions import SessionRegistry
    flask_app.extensions['quizhost.sessions'] = SessionRegistry()

    from quizhost.main import main
    flask_app.register_blueprint(main)

    from quizhost.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from quizhost.api.catalog import catalog
    flask_app.register_blueprint(catalog, url_prefix='/api/catalog')

    from quizhost.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from quizhost.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Host login required'}), 401

    @click.command('db-reset')
    @click.option('--username', default='host', show_default=True)
    @click.option('--password', default='password', show_default=True)
    def db_reset_command(username, password):
        """Drops, recreates, and seeds the database with one host account."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            user = User(username=username)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            click.echo(f'Database has been reset; host account "{username}" created.')

    @click.command('create-host')
    @click.argument('username')
    @click.argument('password')
    def create_host_command(username, password):
        """Adds a host account."""
        with flask_app.app_context():
            if User.query.filter_by(username=username).first():
                raise click.ClickException(f'Username "{username}" already exists')
            user = User(username=username)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            click.echo(f'Host account "{username}" created.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(create_host_command)

    return flask_app
