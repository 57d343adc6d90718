"""SessionState: transient per-session UI state (never persisted)."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple

from trip.domain.Plan import Plan


class ViewMode(Enum):
    GRID = "grid"
    EDIT_MODAL = "edit_modal"
    PRINT_RANGE_PICKER = "print_range_picker"
    PRINT_REPORT = "print_report"


ReportEntry = Tuple[date, Plan]


@dataclass
class SessionState:
    """State the rendering layer reads; mutated only by the session controller.

    Attributes
    ----------
    current_month:
        First day of the month shown in the grid.
    selected_date / draft_title / draft_description:
        Day being edited and the uncommitted copy of its plan.
    loaded_title / loaded_description:
        Values the draft started from; only fields that differ are written.
    print_start / print_end / report:
        Print range bounds and the last report built from them.
    error / error_kind:
        Last visible error message and the failure class that produced it.
    """

    current_month: date
    view_mode: ViewMode = ViewMode.GRID
    selected_date: Optional[date] = None
    draft_title: str = ""
    draft_description: str = ""
    loaded_title: str = ""
    loaded_description: str = ""
    print_start: Optional[date] = None
    print_end: Optional[date] = None
    report: List[ReportEntry] = field(default_factory=list)
    error: str = ""
    error_kind: Optional[str] = None

    @property
    def modal_open(self) -> bool:
        return self.view_mode is ViewMode.EDIT_MODAL


__all__ = ['ViewMode', 'SessionState', 'ReportEntry']
