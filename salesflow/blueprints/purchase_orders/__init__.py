"""
Purchase orders blueprint package.

Exposes the Blueprint object imported in salesflow.__init__; routes live in routes.py.
"""

from .routes import purchase_orders_bp  # noqa: F401
