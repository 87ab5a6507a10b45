# backend/wsgi.py
from trendora import create_app

app = create_app()
