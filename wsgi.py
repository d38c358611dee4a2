# WSGI entry point for the Royal Planner API.
# Used by WSGI servers (e.g., Gunicorn: `gunicorn wsgi:application`).

import os

from royalplanner import create_app

# Pick the configuration class from the environment, production by default.
config = os.getenv("ROYALPLANNER_CONFIG", "royalplanner.config.ProdConfig")

application = create_app(config)
