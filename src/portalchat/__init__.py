"""portalchat - local-first chat sessions for the university student portal."""

__version__ = "0.1.0"
