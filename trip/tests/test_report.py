import unittest
from datetime import date, datetime, timezone

from trip.domain.Plan import Plan
from trip.logic.reporting.report import build_report, display_date, report_rows, report_title
from trip.utilities.dates import key_of
from trip.utilities.errors import ValidationFailure


def _plans(**entries):
    return {k: Plan(k, title=t, description=d, last_updated_by="u1") for k, (t, d) in entries.items()}


class TestBuildReport(unittest.TestCase):

    def setUp(self):
        self.plans = {
            "2024-07-05": Plan("2024-07-05", title="Museum", last_updated_by="u2"),
            "2024-07-02": Plan("2024-07-02", title="Arrive", description="Flight at 10", last_updated_by="u1"),
            "2024-07-03": Plan("2024-07-03", title="", description="", last_updated_by="u1"),
            "2024-06-30": Plan("2024-06-30", description="Packing", last_updated_by="u1"),
        }

    def test_only_dates_inside_range_with_content(self):
        entries = build_report(self.plans, date(2024, 7, 1), date(2024, 7, 3))
        self.assertEqual([(d, p.date_key) for d, p in entries], [(date(2024, 7, 2), "2024-07-02")])

    def test_sorted_ascending_and_inclusive_bounds(self):
        entries = build_report(self.plans, date(2024, 6, 30), date(2024, 7, 5))
        days = [d for d, _ in entries]
        self.assertEqual(days, [date(2024, 6, 30), date(2024, 7, 2), date(2024, 7, 5)])
        self.assertTrue(all(a < b for a, b in zip(days, days[1:])))

    def test_accepts_key_strings(self):
        entries = build_report(self.plans, "2024-07-01", "2024-07-03")
        self.assertEqual(len(entries), 1)

    def test_single_day_range(self):
        entries = build_report(self.plans, date(2024, 7, 5), date(2024, 7, 5))
        self.assertEqual(entries[0][1].title, "Museum")

    def test_end_before_start_is_a_validation_failure(self):
        with self.assertRaises(ValidationFailure) as ctx:
            build_report(self.plans, date(2024, 7, 3), date(2024, 7, 1))
        self.assertIn("end date", str(ctx.exception))

    def test_missing_bound_is_a_validation_failure(self):
        with self.assertRaises(ValidationFailure) as ctx:
            build_report(self.plans, None, date(2024, 7, 1))
        self.assertEqual(str(ctx.exception), "Please select a start and end date for printing.")

    def test_empty_collection(self):
        self.assertEqual(build_report({}, date(2024, 7, 1), date(2024, 7, 31)), [])

    def test_aware_bounds_use_the_local_calendar_day(self):
        bound = datetime(2024, 7, 2, 1, 0, tzinfo=timezone.utc)
        local_key = key_of(bound)
        plans = _plans(**{local_key: ("Late check-in", None)})
        entries = build_report(plans, bound, bound)
        self.assertEqual([p.date_key for _, p in entries], [local_key])

    def test_range_ending_on_last_representable_day(self):
        plans = _plans(**{"9999-12-31": ("Countdown", None)})
        entries = build_report(plans, date(9999, 12, 30), date.max)
        self.assertEqual([d for d, _ in entries], [date.max])


class TestReportFormatting(unittest.TestCase):

    def test_title_and_rows(self):
        self.assertEqual(report_title(date(2024, 7, 1), date(2024, 7, 3)),
                         "Trip Itinerary: 2024-07-01 to 2024-07-03")
        plans = _plans(**{"2024-07-04": ("Fireworks", None)})
        rows = report_rows(build_report(plans, date(2024, 7, 4), date(2024, 7, 4)))
        self.assertEqual(rows, [{
            'date': "Thu Jul 04 2024", 'date_key': "2024-07-04", 'title': "Fireworks",
            'description': "", 'last_updated_by': "u1",
        }])
        self.assertEqual(display_date(date(2024, 7, 4)), "Thu Jul 04 2024")


if __name__ == '__main__':
    unittest.main()
