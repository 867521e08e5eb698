"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py --debug run

or, for the one-off maintenance commands:

    flask --app run.py init-db
    flask --app run.py seed-admin
    flask --app run.py purge-deleted

"""

from salesflow import create_app

# WSGI application object. `flask run` looks for this `app` variable to start the application.
app = create_app()

if __name__ == "__main__":
    # For direct `python run.py` usage (dev only) - use `flask run` or a WSGI server instead.
    app.run(debug=True)
