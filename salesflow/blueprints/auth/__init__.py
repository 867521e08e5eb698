"""
Auth blueprint package.

Exposes the Blueprint object imported in salesflow.__init__; routes live in routes.py.
"""

from .routes import auth_bp  # noqa: F401
