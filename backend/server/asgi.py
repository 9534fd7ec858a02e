"""
ASGI entry point for uvicorn.

Loads .env before AppConfig reads the environment.
"""

from dotenv import load_dotenv

load_dotenv()

from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app()
