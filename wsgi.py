# Expose "app" for a WSGI server, e.g. `gunicorn wsgi:app`
import logging

from app import create_app
from models import db

logging.basicConfig(level=logging.INFO)

app = create_app()

with app.app_context():
    db.create_all()
