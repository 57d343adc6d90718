"""Collaborative trip planner core: live plan sync, session state and itinerary reports."""
__version__ = "0.1.0"
