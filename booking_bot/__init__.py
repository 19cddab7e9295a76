"""
Airport cab booking bot.

Asks for a name, an age and a ride date one question at a time and answers
everything else from a knowledge base. Imports of the FastAPI app are lazy so
the flow controller can be used without building the web application.
"""


def create_app():
    """Lazy import wrapper for create_app to avoid import-time app creation."""
    from .main import create_app as _create_app
    return _create_app()


def get_app():
    """Get or create the FastAPI application instance."""
    from .main import app
    return app


__all__ = ["create_app", "get_app"]
