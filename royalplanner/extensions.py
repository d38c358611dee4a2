# Flask extensions shared across the application
from flask_sqlalchemy import SQLAlchemy      # ORM for models and queries
from flask_bcrypt import Bcrypt              # Password hashing
from flask_migrate import Migrate            # Schema migrations (flask db ...)

# Instantiated here, bound to the app inside create_app()
db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()
