"""
actionsboard: real-time GitHub Actions and deployment dashboard backend.

Pushes simulated deployment progress and GitHub workflow-run changes to
connected browser clients over WebSocket (or SSE).
"""

__version__ = "0.1.0"
