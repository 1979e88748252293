"""EduForge progress and certification service."""

__version__ = "0.1.0"
