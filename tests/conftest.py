import pytest

from editwindow import create_app, Base


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'WTF_CSRF_ENABLED': False,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
    })
    Base.metadata.create_all(bind=app.db_engine)
    yield app
    app.db_session.remove()
    app.db_engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()
