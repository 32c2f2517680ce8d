from flask import Flask
from sqlalchemy import create_engine
from flask_wtf import CSRFProtect
import os

from .extensions import init_db_session, Base
from .edit_window import EditWindowPolicy


def create_app(config_object=None):
    app = Flask(__name__, template_folder='templates')
    app.config.from_mapping(
        SQLALCHEMY_DATABASE_URI=os.environ.get('DATABASE_URL', 'sqlite:///editwindow.db'),
        SECRET_KEY=os.environ.get('SECRET_KEY', 'dev-secret'),
        EDIT_TIMEOUT_MINUTES=int(os.environ.get('EDIT_TIMEOUT_MINUTES', '60')),
        EDIT_DENIED_MESSAGE=os.environ.get('EDIT_DENIED_MESSAGE'),
        EDIT_CREATED_ATTRIBUTE=os.environ.get('EDIT_CREATED_ATTRIBUTE', 'created_on'),
        EDIT_WINDOW_LOGGING=os.environ.get('EDIT_WINDOW_LOGGING', 'true').lower() == 'true',
    )
    if config_object:
        app.config.from_mapping(config_object)

    # initialize DB engine and session
    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], future=True)
    db_session = init_db_session(engine)

    # Attach session and engine to app for convenience
    app.db_engine = engine
    app.db_session = db_session

    @app.teardown_appcontext
    def remove_session(exc=None):
        db_session.remove()

    # the app-wide policy, used by models that do not carry their own
    app.extensions['edit_window'] = EditWindowPolicy.from_config(app.config, logger=app.logger)

    csrf = CSRFProtect()
    csrf.init_app(app)

    # import models so Base.metadata.create_all works
    from . import models  # noqa: F401

    from .posts import posts_bp
    app.register_blueprint(posts_bp, url_prefix='/api')

    return app
