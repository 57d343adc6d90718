"""Core business logic layer.

Subpackages:
- sync: the plan store sync engine (live mirror of the remote collection)
- session: the planner session controller (user intents, view state)
- reporting: printable itinerary extracts
"""
__all__ = ["sync", "session", "reporting"]
