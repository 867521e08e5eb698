"""
Extension singletons for the SalesFlow app.

Modules import db / login_manager from here; create_app() binds them to the
application, so nothing here touches configuration at import time.
"""

from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect

db = SQLAlchemy()
# `flask db migrate/upgrade` for deployments that do not use AUTO_CREATE_SCHEMA
migrate = Migrate()
login_manager = LoginManager()
# Login is exempt; the token is handed out by /api/login and /api/auth/check
csrf = CSRFProtect()
