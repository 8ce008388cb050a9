# backend/wsgi.py
from sharewardrobe import create_app

app = create_app()
