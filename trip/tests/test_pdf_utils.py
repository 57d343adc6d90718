from datetime import date

from trip.domain.Plan import Plan
from trip.infra.pdf_utils import generate_pdf_for_report


def test_report_pdf_is_generated():
    entries = [
        (date(2024, 7, 2), Plan("2024-07-02", title="Arrive & <check in>", description="Flight at 10\nHotel after",
                                last_updated_by="u1")),
        (date(2024, 7, 9), Plan("2024-07-09", description="Day trip", last_updated_by="u2")),
    ]
    pdf = generate_pdf_for_report(entries, date(2024, 7, 1), date(2024, 7, 31))
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 500


def test_empty_report_still_renders():
    pdf = generate_pdf_for_report([], date(2024, 7, 1), date(2024, 7, 3))
    assert pdf.startswith(b"%PDF")
