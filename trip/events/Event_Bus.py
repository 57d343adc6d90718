"""Simple Event Bus / Observer implementation for planner session events.

Event names:
  identity.acquired          -> payload {"user_id": str, "fallback": bool, "warning": str | None}
  plans.snapshot             -> payload {"count": int, "skipped": int}
  plans.subscription_error   -> payload {"error": SubscriptionFailure}
  plans.written              -> payload {"date_key": str, "action": "upsert" | "remove"}
  plans.write_failed         -> payload {"date_key": str, "action": str, "error": WriteFailure}

Subscribers are callables taking (event_name, payload). Each session owns its
own bus (see trip.context.SessionContext); there is no process-wide instance.
"""
from __future__ import annotations
import logging
from collections import defaultdict
from typing import Callable, Any, Dict, List

logger = logging.getLogger(__name__)

# --- Event name constants (used across modules) ---
IDENTITY_ACQUIRED = "identity.acquired"
PLANS_SNAPSHOT = "plans.snapshot"
PLANS_SUBSCRIPTION_ERROR = "plans.subscription_error"
PLAN_WRITTEN = "plans.written"
PLAN_WRITE_FAILED = "plans.write_failed"


class EventBus:
	def __init__(self):
		self._subscribers: Dict[str, List[Callable[[str, Any], None]]] = defaultdict(list)

	def subscribe(self, event_name: str, callback: Callable[[str, Any], None]):
		if callback not in self._subscribers[event_name]:
			self._subscribers[event_name].append(callback)

	def unsubscribe(self, event_name: str, callback: Callable[[str, Any], None]):
		try:
			self._subscribers[event_name].remove(callback)
		except (ValueError, KeyError):
			pass

	def publish(self, event_name: str, payload: Any = None):
		for cb in list(self._subscribers.get(event_name, [])):
			try:
				cb(event_name, payload)
			except Exception as e:
				logger.error(f"[EventBus] Error delivering {event_name} to {cb}: {e}")

	def clear(self):
		self._subscribers.clear()


__all__ = [
	'EventBus', 'IDENTITY_ACQUIRED', 'PLANS_SNAPSHOT', 'PLANS_SUBSCRIPTION_ERROR',
	'PLAN_WRITTEN', 'PLAN_WRITE_FAILED'
]
