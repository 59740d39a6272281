import unittest
from datetime import datetime, timedelta, timezone

from civic.tests.helpers import ApiClientMixin, future, make_client

DESCRIPTION = "Quarterly budget review with the local government chairman."


class TownhallApiTests(ApiClientMixin, unittest.TestCase):
    def setUp(self):
        self.client = make_client()
        self.organizer = self.auth_headers("organizer")

    def create_townhall(self, days=7, title="Budget townhall", **extra):
        payload = {"title": title, "description": DESCRIPTION, "scheduled_at": future(days)}
        payload.update(extra)
        response = self.client.post(
            "/api/townhalls", json=payload, headers=self.organizer
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def test_create_townhall(self):
        townhall = self.create_townhall(zoom_link="https://zoom.us/j/123456")
        self.assertEqual(townhall["status"], "SCHEDULED")
        self.assertEqual(townhall["zoom_link"], "https://zoom.us/j/123456")
        self.assertEqual(townhall["organizer"]["username"], "organizer")

        response = self.client.get(
            f"/api/townhalls/{townhall['id']}", headers=self.organizer
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["title"], "Budget townhall")

    def test_scheduled_at_must_be_in_future(self):
        past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        response = self.client.post(
            "/api/townhalls",
            json={"title": "Budget townhall", "description": DESCRIPTION, "scheduled_at": past},
            headers=self.organizer,
        )
        self.assertEqual(response.status_code, 400)
        error = response.json()["errors"][0]
        self.assertEqual(error["field"], "scheduled_at")
        self.assertEqual(error["message"], "Scheduled date must be in the future")

    def test_invalid_zoom_link(self):
        response = self.client.post(
            "/api/townhalls",
            json={
                "title": "Budget townhall",
                "description": DESCRIPTION,
                "scheduled_at": future(),
                "zoom_link": "not a url",
            },
            headers=self.organizer,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"][0]["field"], "zoom_link")

    def test_list_soonest_first_with_date_range(self):
        self.create_townhall(days=10, title="Later townhall")
        self.create_townhall(days=2, title="Sooner townhall")
        self.create_townhall(days=30, title="Distant townhall")

        response = self.client.get("/api/townhalls", headers=self.organizer)
        self.assertEqual(response.status_code, 200)
        titles = [t["title"] for t in response.json()["data"]]
        self.assertEqual(titles, ["Sooner townhall", "Later townhall", "Distant townhall"])

        ranged = self.client.get(
            "/api/townhalls",
            params={"from_date": future(5), "to_date": future(20)},
            headers=self.organizer,
        ).json()
        self.assertEqual([t["title"] for t in ranged["data"]], ["Later townhall"])
        self.assertEqual(ranged["meta"]["total"], 1)

    def test_date_range_must_be_ordered(self):
        response = self.client.get(
            "/api/townhalls",
            params={"from_date": future(20), "to_date": future(5)},
            headers=self.organizer,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "From date must be before to date")

    def test_non_organizer_cannot_modify(self):
        townhall = self.create_townhall()
        stranger = self.auth_headers("stranger")
        update = self.client.put(
            f"/api/townhalls/{townhall['id']}",
            json={"title": "Hijacked townhall"},
            headers=stranger,
        )
        self.assertEqual(update.status_code, 403)
        delete = self.client.delete(f"/api/townhalls/{townhall['id']}", headers=stranger)
        self.assertEqual(delete.status_code, 403)

    def test_organizer_update_ignores_status(self):
        townhall = self.create_townhall()
        response = self.client.put(
            f"/api/townhalls/{townhall['id']}",
            json={"title": "Renamed townhall", "status": "LIVE"},
            headers=self.organizer,
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["title"], "Renamed townhall")
        self.assertEqual(data["status"], "SCHEDULED")

    def test_admin_can_change_status(self):
        townhall = self.create_townhall()
        admin = self.admin_headers()
        response = self.client.put(
            f"/api/townhalls/{townhall['id']}",
            json={"status": "CANCELLED"},
            headers=admin,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["status"], "CANCELLED")

        cancelled = self.client.get(
            "/api/townhalls", params={"status": "CANCELLED"}, headers=admin
        ).json()
        self.assertEqual(cancelled["meta"]["total"], 1)

    def test_update_rejects_past_schedule(self):
        townhall = self.create_townhall()
        past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        response = self.client.put(
            f"/api/townhalls/{townhall['id']}",
            json={"scheduled_at": past},
            headers=self.organizer,
        )
        self.assertEqual(response.status_code, 400)

    def test_delete_townhall(self):
        townhall = self.create_townhall()
        response = self.client.delete(
            f"/api/townhalls/{townhall['id']}", headers=self.organizer
        )
        self.assertEqual(response.status_code, 200)
        missing = self.client.get(
            f"/api/townhalls/{townhall['id']}", headers=self.organizer
        )
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["message"], "Townhall not found")


if __name__ == "__main__":
    unittest.main()
