"""Planner Session Controller: user intents in, view-ready state out.

The controller owns SessionState and nothing else. Plans are read from the
engine's PlanCollection; every change to them goes through the engine and
comes back as a snapshot. Failures from any boundary end up as one visible
message in ``state.error`` (with the failure class in ``state.error_kind``).
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union

from trip.domain.SessionState import ReportEntry, SessionState, ViewMode
from trip.events.Event_Bus import IDENTITY_ACQUIRED, PLANS_SNAPSHOT, PLANS_SUBSCRIPTION_ERROR
from trip.infra.pdf_utils import generate_pdf_for_report
from trip.logic.reporting.report import build_report
from trip.logic.sync.engine import PlanSyncEngine
from trip.utilities.constants import (
    MSG_NO_PLAN_TO_DELETE, MSG_NOT_READY_DELETE, MSG_NOT_READY_SAVE, MSG_PRINT_RANGE_MISSING
)
from trip.utilities.dates import (
    DateLike, date_from_key, days_in_month, first_of_month, key_of, leading_blanks, local_date, shift_month
)
from trip.utilities.errors import IdentityFailure, PlannerError, SubscriptionFailure, ValidationFailure
from trip.utilities.validators import parse_draft

logger = logging.getLogger(__name__)


@dataclass
class DayCell:
    day: date
    date_key: str
    has_plan: bool
    label: str
    is_selected: bool


class PlannerSessionController:
    def __init__(self, engine: PlanSyncEngine, today: Optional[date] = None):
        self.engine = engine
        self.plans = engine.plans
        self.identity = engine.identity
        self.state = SessionState(current_month=first_of_month(today or date.today()))
        self._bus = engine.bus
        self._bus.subscribe(IDENTITY_ACQUIRED, self._on_identity)
        self._bus.subscribe(PLANS_SNAPSHOT, self._on_snapshot)
        self._bus.subscribe(PLANS_SUBSCRIPTION_ERROR, self._on_subscription_error)

    def detach(self) -> None:
        self._bus.unsubscribe(IDENTITY_ACQUIRED, self._on_identity)
        self._bus.unsubscribe(PLANS_SNAPSHOT, self._on_snapshot)
        self._bus.unsubscribe(PLANS_SUBSCRIPTION_ERROR, self._on_subscription_error)

    # -------------------- Readiness --------------------
    @property
    def ready(self) -> bool:
        """Identity acquired and first snapshot received: edits are accepted."""
        return self.engine.ready

    @property
    def user_id(self) -> Optional[str]:
        return self.identity.identity

    # -------------------- Errors --------------------
    def _record(self, failure: PlannerError, prefix: Optional[str] = None) -> None:
        self.state.error = f"{prefix}: {failure}" if prefix else str(failure)
        self.state.error_kind = type(failure).__name__
        logger.debug(f"Session error recorded: {self.state.error}")

    def clear_error(self) -> None:
        self.state.error = ""
        self.state.error_kind = None

    def _on_identity(self, event_name, payload) -> None:
        if payload and payload.get('warning'):
            self._record(IdentityFailure(payload['warning']))

    def _on_snapshot(self, event_name, payload) -> None:
        # the stream recovered; write and validation errors stay visible
        if self.state.error_kind == SubscriptionFailure.__name__:
            self.clear_error()

    def _on_subscription_error(self, event_name, payload) -> None:
        self._record(payload['error'], prefix="Failed to load plans")

    # -------------------- Grid --------------------
    def has_plan(self, day: DateLike) -> bool:
        plan = self.plans.get(key_of(day))
        return plan is not None and plan.has_content

    def navigate_month(self, delta: int) -> date:
        self.state.current_month = shift_month(self.state.current_month, delta)
        return self.state.current_month

    def month_grid(self) -> List[Optional[DayCell]]:
        """Cells of the current month: ``None`` for the blanks before the 1st, then one DayCell per day."""
        selected = key_of(self.state.selected_date) if self.state.selected_date else None
        cells: List[Optional[DayCell]] = [None] * leading_blanks(self.state.current_month)
        for day in days_in_month(self.state.current_month):
            k = key_of(day)
            plan = self.plans.get(k)
            has_plan = plan is not None and plan.has_content
            cells.append(DayCell(day, k, has_plan, plan.label if has_plan else "", k == selected))
        return cells

    # -------------------- Edit modal --------------------
    def select_date(self, day: DateLike) -> None:
        d = local_date(day)
        plan = self.plans.get(key_of(d))
        self.state.selected_date = d
        self.state.draft_title = self.state.loaded_title = (plan.title or "") if plan else ""
        self.state.draft_description = self.state.loaded_description = (plan.description or "") if plan else ""
        self.state.view_mode = ViewMode.EDIT_MODAL

    def update_draft(self, title: Optional[str] = None, description: Optional[str] = None) -> None:
        if title is not None:
            self.state.draft_title = title
        if description is not None:
            self.state.draft_description = description

    def close_modal(self) -> None:
        if self.state.modal_open:
            self.state.view_mode = ViewMode.GRID

    def selected_has_plan(self) -> bool:
        """Whether the delete action applies (a document exists for the selected day)."""
        return self.state.selected_date is not None and key_of(self.state.selected_date) in self.plans

    async def commit_draft(self) -> bool:
        selected = self.state.selected_date
        if selected is None or not self.ready:
            self._record(ValidationFailure(MSG_NOT_READY_SAVE))
            return False
        try:
            draft = parse_draft(self.state.draft_title, self.state.draft_description)
        except ValidationFailure as e:
            self._record(e, prefix="Failed to save plan")
            return False
        k = key_of(selected)
        # write only what the user changed so concurrent edits of the other field survive
        title = draft.title if draft.title != self.state.loaded_title else None
        description = draft.description if draft.description != self.state.loaded_description else None
        if title is None and description is None:
            title, description = draft.title, draft.description
        try:
            await self.engine.upsert(k, title=title, description=description)
        except PlannerError as e:
            self._record(e, prefix="Failed to save plan")
            return False
        self._finish_write(k)
        return True

    async def delete_selected(self) -> bool:
        selected = self.state.selected_date
        if selected is None or not self.ready:
            self._record(ValidationFailure(MSG_NOT_READY_DELETE))
            return False
        k = key_of(selected)
        if k not in self.plans:
            self._record(ValidationFailure(MSG_NO_PLAN_TO_DELETE))
            return False
        try:
            await self.engine.remove(k)
        except PlannerError as e:
            self._record(e, prefix="Failed to delete plan")
            return False
        self._finish_write(k)
        return True

    def _finish_write(self, date_key: str) -> None:
        # the user may have moved on to another day while the write was in flight
        selected = self.state.selected_date
        if self.state.modal_open and selected is not None and key_of(selected) == date_key:
            self.state.view_mode = ViewMode.GRID
        self.clear_error()

    # -------------------- Print report --------------------
    def open_print_picker(self) -> None:
        self.state.print_start = None
        self.state.print_end = None
        self.state.report = []
        self.state.view_mode = ViewMode.PRINT_RANGE_PICKER

    def set_print_range(self, start: Union[DateLike, str, None] = None,
                        end: Union[DateLike, str, None] = None) -> None:
        """Store the picker bounds; accepts dates or 'YYYY-MM-DD' strings from date inputs."""
        try:
            self.state.print_start = _coerce_day(start)
            self.state.print_end = _coerce_day(end)
        except ValidationFailure as e:
            self._record(e)
            raise

    def build_report(self, start, end) -> List[ReportEntry]:
        """Date-range extract of the current plans; records and raises ValidationFailure on a bad range."""
        try:
            return build_report(self.plans.value, start, end)
        except ValidationFailure as e:
            self._record(e)
            raise

    def generate_report(self) -> Optional[List[ReportEntry]]:
        """Build the report for the picked range and switch to the report view."""
        try:
            entries = self.build_report(self.state.print_start, self.state.print_end)
        except ValidationFailure:
            return None
        self.state.report = entries
        self.state.view_mode = ViewMode.PRINT_REPORT
        if self.state.error_kind == ValidationFailure.__name__:
            self.clear_error()
        return entries

    def close_print_view(self) -> None:
        if self.state.view_mode in (ViewMode.PRINT_RANGE_PICKER, ViewMode.PRINT_REPORT):
            self.state.view_mode = ViewMode.GRID
        self.state.report = []

    def export_report_pdf(self) -> bytes:
        """Render the report currently shown as a printable PDF."""
        if self.state.print_start is None or self.state.print_end is None:
            failure = ValidationFailure(MSG_PRINT_RANGE_MISSING)
            self._record(failure)
            raise failure
        return generate_pdf_for_report(self.state.report, self.state.print_start, self.state.print_end)


def _coerce_day(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return date_from_key(value)
    return local_date(value)


__all__ = ['PlannerSessionController', 'DayCell']
