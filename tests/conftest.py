import pytest

from royalplanner import create_app
from royalplanner.extensions import db, bcrypt
from royalplanner.models import User
from royalplanner.routes.auth import seed_user_defaults

TEST_PASSWORD = "password123"


# ----------------------------------------------------
#                  PYTEST FIXTURES
# ----------------------------------------------------

@pytest.fixture(scope="function")
def app():
    """
    A fresh application on an in-memory database for every test.
    TestConfig sets TESTING, which also disables the CSRF check.
    """
    app = create_app("royalplanner.config.TestConfig")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


def make_user(app, email="student@royal.edu", name="Alex Johnson"):
    """Create a user with the default grade scale; returns its id."""
    with app.app_context():
        user = User(
            email=email,
            name=name,
            password=bcrypt.generate_password_hash(TEST_PASSWORD).decode("utf-8"),
        )
        db.session.add(user)
        db.session.flush()
        seed_user_defaults(user)
        db.session.commit()
        return user.id


@pytest.fixture(scope="function")
def auth_client(app, client):
    """
    A client logged in through the session, without going through /login.
    """
    user_id = make_user(app)
    with client.session_transaction() as sess:
        sess["user_id"] = user_id

    return {"client": client, "user_id": user_id, "app": app}
