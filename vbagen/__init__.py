"""Excel VBA Generator backend and session/conversation core."""

__version__ = "0.1.0"
