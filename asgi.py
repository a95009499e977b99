"""
asgi.py -- ASGI entry point for the Fight Club community API.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import app

__all__ = ["app"]
