"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py init-db
    flask --app run.py seed-users
    flask --app run.py --debug run

"""

from mfg_erp import create_app

# WSGI application object. `flask run` looks for this `app` variable.
app = create_app()

if __name__ == "__main__":
    # Direct `python run.py` usage is for development only; use `flask run` or a WSGI server instead.
    app.run(debug=True)
