"""Mood Journal AI.

Resilient Gemini-backed analysis for a wellness journal: diary reflections,
motivation messages, task suggestions and structured mood readings, with a
per-user daily allowance.
"""

__version__ = "0.1.0"
