from flask import current_app
from sqlalchemy.orm import declarative_base, scoped_session, sessionmaker

Base = declarative_base()


def init_db_session(engine):
    """Configure and return a scoped DB session bound to engine."""
    return scoped_session(sessionmaker(bind=engine))


def db_session():
    """Return the session of the current app."""
    return current_app.db_session()


def edit_window_policy():
    return current_app.extensions['edit_window']
