from flask import Flask
from dotenv import load_dotenv
from sqlalchemy import event
from sqlalchemy.engine import Engine
from werkzeug.exceptions import HTTPException
import resend

from .routes import register_blueprints
from .extensions import db, bcrypt, migrate
from .utils import make_csrf_token, respond, ValidationError

load_dotenv()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY constraints unless enabled per connection
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_app(config_class="royalplanner.config.ProdConfig"):
    """
    Application factory function for creating and configuring the Flask app.
    This pattern allows flexible configuration and easier testing.
    """
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize Flask extensions with the app
    db.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)

    # Configure Resend API key for email sending, if set
    resend_key = app.config.get("RESEND_API_KEY")
    if resend_key:
        resend.api_key = resend_key

    # Register a CSRF token generator to run before each request
    app.before_request(make_csrf_token)

    @app.errorhandler(ValidationError)
    def validation_error(error):
        return respond(False, error.message, status=error.status)

    @app.errorhandler(HTTPException)
    def http_error(error):
        return respond(False, error.description or error.name, status=error.code)

    @app.errorhandler(500)
    def internal_error(error):
        # Roll back the database session to avoid invalid states
        db.session.rollback()
        app.logger.error(
            "Unhandled server error: %r", getattr(error, "original_exception", error)
        )
        return respond(False, "Internal server error", status=500)

    register_blueprints(app)

    # Optionally create all database tables if CREATE_DB is set in config
    if app.config.get("CREATE_DB"):
        with app.app_context():
            db.create_all()

    app.logger.debug("Royal Planner app created with %s", config_class)
    return app
