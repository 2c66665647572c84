"""WSGI entry point (gunicorn wsgi:app, or FLASK_APP=wsgi.py)."""
from pos import create_app

app = create_app()

if __name__ == "__main__":
    app.run(port=app.config["PORT"])
