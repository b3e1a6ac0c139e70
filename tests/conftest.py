import pytest

from smartmarks import create_app
from smartmarks.config import TestConfig
from smartmarks.extensions import db
from smartmarks.models import User
from smartmarks.services.sessions import issue_session


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.drop_all()
        db.create_all()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create a signed-up user and return (user_id, bearer token)."""

    def factory(subject: str):
        with app.app_context():
            user = User(
                provider="google",
                subject=subject,
                email=f"{subject}@example.com",
                display_name=subject.title(),
            )
            db.session.add(user)
            db.session.commit()
            issued = issue_session(user)
            return user.id, issued.access_token

    return factory


@pytest.fixture
def web_login(client):
    def login(user_id: str):
        with client.session_transaction() as sess:
            sess["_user_id"] = user_id
            sess["_fresh"] = True

    return login
