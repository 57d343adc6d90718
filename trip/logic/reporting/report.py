"""Printable itinerary: a date-range extract of the live plans.

build_report(plans, start, end) returns
    [(date, Plan), ...]   ascending by date, only days inside [start, end]
                          whose plan has a title or a description.

It is a pure projection over whatever mapping it is given: no I/O, no state,
calling it twice on the same mapping gives the same result.
"""
from datetime import date
from typing import Any, Dict, List, Mapping

from trip.domain.Plan import Plan
from trip.domain.SessionState import ReportEntry
from trip.utilities.dates import iter_days, key_of
from trip.utilities.validators import parse_report_range


def build_report(plans: Mapping[str, Plan], start, end) -> List[ReportEntry]:
    start, end = parse_report_range(start, end)
    entries: List[ReportEntry] = []
    for day in iter_days(start, end):
        plan = plans.get(key_of(day))
        if plan is not None and plan.has_content:
            entries.append((day, plan))
    entries.sort(key=lambda entry: entry[0])
    return entries


def report_title(start: date, end: date) -> str:
    return f"Trip Itinerary: {key_of(start)} to {key_of(end)}"


def display_date(day: date) -> str:
    """Long date label, e.g. 'Thu Jul 04 2024'."""
    return day.strftime("%a %b %d %Y")


def report_rows(entries: List[ReportEntry]) -> List[Dict[str, Any]]:
    """Flatten report entries into plain rows for exporters (PDF, text, ...)."""
    return [
        {
            'date': display_date(day),
            'date_key': plan.date_key,
            'title': plan.title or "",
            'description': plan.description or "",
            'last_updated_by': plan.last_updated_by,
        }
        for day, plan in entries
    ]


__all__ = ['build_report', 'report_title', 'report_rows', 'display_date']
