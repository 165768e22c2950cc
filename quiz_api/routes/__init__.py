"""API route modules."""
from quiz_api.routes import images, questions, sessions, tests

__all__ = ["images", "questions", "sessions", "tests"]
