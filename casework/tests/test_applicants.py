import unittest
from datetime import date

from casework.applicants import (
    build_applicant_record,
    find_duplicate_groups,
    normalize_address,
    parse_calendar_date,
    search_applicants,
    urgent_auctions,
)
from casework.db import InMemoryDbClient
from casework.schemas import ApplicationSubmission
from casework.tables import APPLICANTS, CASE_EVENTS, FIELD_VISITS


class IntakeNormalizationTests(unittest.TestCase):
    def test_camel_case_form(self):
        form = ApplicationSubmission.model_validate(
            {
                "fullName": "Ana Ruiz",
                "propertyAddress": "5 Vine St",
                "isHOA": "unsure",
                "auctionDate": "",
                "hasNoticeOfDefault": True,
                "intake_type": "web",
                "intake_latitude": 36.7,
                "unexpectedKey": "ignored",
            }
        )
        record = build_applicant_record(form, "198.51.100.4", "Mozilla/5.0")
        self.assertEqual(record["full_name"], "Ana Ruiz")
        self.assertIsNone(record["is_hoa"])
        self.assertIsNone(record["auction_date"])
        self.assertTrue(record["has_notice_of_default"])
        self.assertEqual(record["source"], "web_application")
        self.assertEqual(record["status"], "pending")
        self.assertEqual(record["intake_latitude"], 36.7)
        self.assertNotIn("intake_type", record)
        self.assertNotIn("unexpectedKey", record)

    def test_address_normalization(self):
        self.assertEqual(normalize_address("  12  Elm St., Apt 4 "), "12 elm st apt 4")
        self.assertEqual(normalize_address(None), "")


class SearchTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        for name in ("Maria Lopez", "Mario Ruiz", "Ann Lee"):
            self.db.insert(APPLICANTS, {"full_name": name, "property_address": "1 Main St"})

    def test_short_query_returns_nothing(self):
        self.assertEqual(search_applicants(self.db, ""), [])
        self.assertEqual(search_applicants(self.db, "M"), [])

    def test_matches_newest_first_within_limit(self):
        rows = search_applicants(self.db, "mari", limit=1)
        self.assertEqual([row["full_name"] for row in rows], ["Mario Ruiz"])
        rows = search_applicants(self.db, "MAIN ST")
        self.assertEqual(len(rows), 3)

    def test_columns_outside_search_set_are_ignored(self):
        self.db.insert(
            APPLICANTS,
            {
                "full_name": "Tom Hill",
                "property_address": "8 Oak Ave",
                "property_city": "Riverside",
                "comments": "Neighbor mentioned a lien",
            },
        )
        self.assertEqual(search_applicants(self.db, "riverside"), [])
        self.assertEqual(search_applicants(self.db, "lien"), [])
        self.assertEqual([row["full_name"] for row in search_applicants(self.db, "oak")], ["Tom Hill"])


class DuplicateGroupTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def _applicant(self, name, address, **values):
        row = {"full_name": name, "property_address": address}
        row.update(values)
        return self.db.insert(APPLICANTS, row)

    def test_name_and_address_groups(self):
        a = self._applicant("Maria Lopez", "12 Elm St")
        b = self._applicant("MARIA LOPEZ", "77 Oak Ave")
        c = self._applicant("Tom Hill", "77 Oak Ave.")
        self._applicant("Closed Case", "77 oak ave", status="closed")
        self.db.insert(
            FIELD_VISITS,
            {
                "applicant_id": b["id"],
                "staff_member": "w1",
                "visit_date": "2024-01-01",
                "visit_type": "door_knock",
                "location_address": "77 Oak Ave",
            },
        )
        self.db.insert(CASE_EVENTS, {"applicant_id": a["id"], "event_type": "call", "title": "t", "event_date": "2024-01-01"})

        groups = find_duplicate_groups(self.db)
        self.assertEqual([group["matchType"] for group in groups], ["name", "address"])

        name_group, address_group = groups
        self.assertEqual([row["id"] for row in name_group["applications"]], [b["id"], a["id"]])
        self.assertEqual(name_group["matchValue"], "MARIA LOPEZ")
        self.assertEqual(name_group["applications"][0]["visit_count"], 1)
        self.assertEqual(name_group["applications"][1]["event_count"], 1)
        self.assertEqual(name_group["applications"][1]["document_count"], 0)
        self.assertEqual({row["id"] for row in address_group["applications"]}, {b["id"], c["id"]})

    def test_identical_groups_reported_once(self):
        self._applicant("Maria Lopez", "12 Elm St")
        self._applicant("maria lopez", "12 elm st.")
        groups = find_duplicate_groups(self.db)
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0]["matchType"], "name")

    def test_no_applicants(self):
        self.assertEqual(find_duplicate_groups(self.db), [])


class UrgentAuctionTests(unittest.TestCase):
    def test_window_and_order(self):
        db = InMemoryDbClient()
        later = db.insert(APPLICANTS, {"full_name": "B", "property_address": "x", "auction_date": "2024-06-20"})
        sooner = db.insert(APPLICANTS, {"full_name": "A", "property_address": "y", "auction_date": "2024-06-03T09:00:00"})
        db.insert(APPLICANTS, {"full_name": "C", "property_address": "z", "auction_date": "2024-08-01"})
        db.insert(APPLICANTS, {"full_name": "D", "property_address": "w", "auction_date": "2024-06-02", "status": "closed"})
        db.insert(APPLICANTS, {"full_name": "E", "property_address": "v", "auction_date": "soon"})

        rows = urgent_auctions(db, 30, today=date(2024, 6, 1))
        self.assertEqual([row["id"] for row in rows], [sooner["id"], later["id"]])

    def test_parse_calendar_date(self):
        self.assertEqual(parse_calendar_date("2024-06-03T09:00:00Z"), date(2024, 6, 3))
        self.assertIsNone(parse_calendar_date(None))
        self.assertIsNone(parse_calendar_date("not a date"))


if __name__ == "__main__":
    unittest.main()
