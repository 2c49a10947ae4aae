# API endpoints
from . import auth, students, courses

__all__ = ["auth", "students", "courses"]
