"""
asgi.py -- ASGI entry point for SmartTicket.

Importing this module builds the app from environment settings. A missing
SECRET_KEY raises ConfigurationError at import, so the server process fails
at boot instead of at the first login.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import create_app

app = create_app()
