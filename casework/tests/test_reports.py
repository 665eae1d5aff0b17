import unittest
from datetime import date

from casework.db import InMemoryDbClient
from casework.errors import InvalidRequest
from casework.reports import build_report
from casework.tables import APPLICANTS, FIELD_VISITS, USER_PROFILES

TODAY = date(2024, 6, 1)


class BuildReportTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.worker = self.db.insert(
            USER_PROFILES, {"email": "sam@example.org", "full_name": "Sam", "role": "staff"}
        )

    def _applicant(self, created_at, **values):
        row = {
            "full_name": "Applicant",
            "property_address": "1 Main St",
            "created_at": created_at,
        }
        row.update(values)
        return self.db.insert(APPLICANTS, row)

    def _visit(self, visit_date, staff=None, **values):
        row = {
            "staff_member": staff or self.worker["id"],
            "visit_date": visit_date,
            "visit_type": "door_knock",
            "location_address": "1 Main St",
        }
        row.update(values)
        return self.db.insert(FIELD_VISITS, row)

    def test_counts_and_breakdowns(self):
        self._applicant("2024-05-01T10:00:00+00:00", property_county="Fresno", auction_date="2024-06-05")
        self._applicant("2024-05-02T10:00:00+00:00", property_county="Fresno", status="in-progress")
        self._applicant("2024-05-03T10:00:00+00:00", property_county="Kern", status="closed", auction_date="2024-07-01")
        self._visit("2024-05-01", visit_outcome="attempt", requires_follow_up=True)
        self._visit("2024-05-02", visit_outcome="engagement", visit_type="phone")
        self._visit("2024-05-03", staff="retired-worker", visit_outcome="engagement")

        report = build_report(self.db, today=TODAY)

        self.assertEqual(report.totalApplications, 3)
        self.assertEqual(report.pendingApplications, 1)
        self.assertEqual(report.inProgressApplications, 1)
        self.assertEqual(report.closedApplications, 1)
        self.assertEqual(report.applicationsByCounty, {"Fresno": 2, "Kern": 1})
        self.assertEqual(report.urgentAuctions, 1)
        self.assertEqual(report.totalFieldVisits, 3)
        self.assertEqual(report.visitsWithFollowUp, 1)
        self.assertEqual(report.visitsByType, {"door_knock": 2, "phone": 1})
        self.assertEqual(report.visitsByWorker, {"Sam": 2, "Unknown": 1})
        self.assertEqual(report.attemptsByWorker, {"Sam": 1})
        self.assertEqual(report.engagementsByWorker, {"Sam": 1, "Unknown": 1})
        self.assertEqual(report.totalAttempts, 1)
        self.assertEqual(report.totalEngagements, 2)
        self.assertEqual(report.engagementRate, 67)

    def test_date_window(self):
        self._applicant("2024-04-30T23:00:00+00:00")
        self._applicant("2024-05-15T08:00:00+00:00")
        self._applicant("2024-05-31T23:59:00+00:00")
        self._applicant("2024-06-01T00:00:00+00:00")
        self._visit("2024-04-30")
        self._visit("2024-05-31")

        report = build_report(self.db, start_date="2024-05-01", end_date="2024-05-31", today=TODAY)
        self.assertEqual(report.totalApplications, 2)
        self.assertEqual(report.totalFieldVisits, 1)

    def test_empty_report(self):
        report = build_report(self.db, today=TODAY)
        self.assertEqual(report.totalApplications, 0)
        self.assertEqual(report.engagementRate, 0)
        self.assertEqual(report.visitsByWorker, {})

    def test_invalid_bounds(self):
        with self.assertRaises(InvalidRequest):
            build_report(self.db, start_date="last week")
        with self.assertRaises(InvalidRequest):
            build_report(self.db, end_date="2024-13-40")


if __name__ == "__main__":
    unittest.main()
