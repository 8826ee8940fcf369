"""
asgi.py -- ASGI entry point for FitTrack.

The only module that builds the application from process settings. Everything
below it takes Settings (or the values it needs) as arguments.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import create_app
from core.config import get_settings

app = create_app(get_settings())
