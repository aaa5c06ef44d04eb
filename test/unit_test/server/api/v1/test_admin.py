from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from indaba.core.database.entities.moderation import FlaggedContent
from indaba.core.database.entities.nanny import HoursLog
from indaba.core.events import activity_bus

pytestmark = pytest.mark.asyncio

BASE = "/api/v1/admin"


class TestAccess:
    @pytest.mark.parametrize("path", ["/dashboard", "/users", "/flags", "/agencies", "/system-settings"])
    async def test_non_admins_forbidden(self, client: AsyncClient, parent, path):
        response = await client.get(f"{BASE}{path}", headers=parent.headers)

        assert response.status_code == 403

    async def test_content_tags_readable_by_everyone(self, client: AsyncClient, admin, nanny):
        await client.post(f"{BASE}/content-tags", json={"name": "Sleep", "category": "Routine"}, headers=admin.headers)

        response = await client.get(f"{BASE}/content-tags", headers=nanny.headers)

        assert [t["name"] for t in response.json()] == ["Sleep"]


class TestDashboard:
    async def test_stats_and_activity(self, client: AsyncClient, admin, nanny, parent, family):
        await client.post(
            "/api/v1/observations",
            json={"child_id": family.child_id, "type": "TEXT", "content": "Stacked cups"},
            headers=nanny.headers,
        )

        data = (await client.get(f"{BASE}/dashboard", headers=admin.headers)).json()

        assert data["stats"]["total_users"] == 3
        assert data["stats"]["total_nannies"] == 1
        assert data["stats"]["total_parents"] == 1
        assert data["stats"]["total_observations"] == 1
        assert data["stats"]["pending_flags"] == 0
        assert len(data["recent_users"]) == 3
        assert data["recent_activity"][0]["type"] == "observation_created"
        assert {item["type"] for item in data["recent_activity"]} == {"observation_created", "user_created"}


class TestUsers:
    async def test_list_filters_by_role_and_name(self, client: AsyncClient, admin, nanny, parent):
        nannies = (await client.get(f"{BASE}/users", params={"role": "NANNY"}, headers=admin.headers)).json()
        by_name = (await client.get(f"{BASE}/users", params={"search": "paula"}, headers=admin.headers)).json()
        by_email = (await client.get(f"{BASE}/users", params={"search": "admin"}, headers=admin.headers)).json()

        assert [u["id"] for u in nannies] == [nanny.id]
        assert [u["id"] for u in by_name] == [parent.id]
        assert by_name[0]["first_name"] == "Paula"
        assert [u["id"] for u in by_email] == [admin.id]

    async def test_get_user(self, client: AsyncClient, admin, nanny):
        found = await client.get(f"{BASE}/users/{nanny.id}", headers=admin.headers)
        missing = await client.get(f"{BASE}/users/missing", headers=admin.headers)

        assert found.json()["email"] == nanny.email
        assert found.json()["last_login_at"] is None
        assert missing.status_code == 404

    async def test_create_and_update_user(self, client: AsyncClient, admin):
        queue = activity_bus.subscribe()
        try:
            created = await client.put(
                f"{BASE}/users",
                json={
                    "email": "Fresh@Example.com",
                    "password": "password123",
                    "role": "NANNY",
                    "first_name": "Fay",
                    "last_name": "Fresh",
                },
                headers=admin.headers,
            )
            event = queue.get_nowait()
        finally:
            activity_bus.unsubscribe(queue)

        user = created.json()
        assert user["email"] == "fresh@example.com"
        assert user["first_name"] == "Fay"
        assert event.type == "user_created"
        assert event.user_name == "Fay Fresh"

        updated = await client.put(
            f"{BASE}/users",
            json={
                "id": user["id"],
                "email": "fresh@example.com",
                "role": "NANNY",
                "first_name": "Fay",
                "last_name": "Fresher",
                "phone_number": "555-0199",
            },
            headers=admin.headers,
        )
        assert updated.json()["last_name"] == "Fresher"
        assert updated.json()["phone_number"] == "555-0199"

        login = await client.post("/api/v1/auth/login", json={"email": "fresh@example.com", "password": "password123"})
        assert login.status_code == 200

    async def test_new_user_needs_password(self, client: AsyncClient, admin):
        response = await client.put(
            f"{BASE}/users",
            json={"email": "nopass@example.com", "role": "PARENT", "first_name": "N", "last_name": "P"},
            headers=admin.headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Password is required for new users"

    async def test_email_taken(self, client: AsyncClient, admin, nanny, parent):
        created = await client.put(
            f"{BASE}/users",
            json={"email": nanny.email, "password": "password123", "role": "NANNY", "first_name": "A", "last_name": "B"},
            headers=admin.headers,
        )
        updated = await client.put(
            f"{BASE}/users",
            json={"id": parent.id, "email": nanny.email, "role": "PARENT", "first_name": "A", "last_name": "B"},
            headers=admin.headers,
        )

        assert created.status_code == 409
        assert updated.status_code == 409


class TestModeration:
    async def test_flags_sorted_by_priority_then_filtered(self, client: AsyncClient, session, admin):
        for priority, reason in (("Low", "spam"), ("Urgent", "injury"), ("Medium", "language")):
            session.add(FlaggedContent(content_type="Message", content_id="m", reason=reason, priority=priority))
        await session.commit()

        ordered = (await client.get(f"{BASE}/flags", headers=admin.headers)).json()
        urgent = (await client.get(f"{BASE}/flags", params={"priority": "Urgent"}, headers=admin.headers)).json()
        searched = (await client.get(f"{BASE}/flags", params={"search": "SPAM"}, headers=admin.headers)).json()

        assert [f["priority"] for f in ordered] == ["Urgent", "Medium", "Low"]
        assert [f["reason"] for f in urgent] == ["injury"]
        assert [f["reason"] for f in searched] == ["spam"]

    async def test_moderate_flag(self, client: AsyncClient, session, admin):
        flag = FlaggedContent(content_type="Observation", content_id="o", reason="review")
        session.add(flag)
        await session.commit()
        flag_id = flag.id

        response = await client.put(
            f"{BASE}/flags/{flag_id}",
            json={"status": "Resolved", "moderator_notes": "Checked with family"},
            headers=admin.headers,
        )
        pending = (await client.get(f"{BASE}/flags", params={"status": "Pending"}, headers=admin.headers)).json()

        assert response.json()["status"] == "Resolved"
        assert response.json()["moderated_by"] == admin.id
        assert response.json()["moderator_notes"] == "Checked with family"
        assert pending == []

    async def test_unknown_flag(self, client: AsyncClient, admin):
        response = await client.put(f"{BASE}/flags/missing", json={"status": "Dismissed"}, headers=admin.headers)

        assert response.status_code == 404

    async def test_keyword_flags(self, client: AsyncClient, admin):
        created = await client.post(
            f"{BASE}/keyword-flags", json={"keyword": "  Bruise ", "severity": "high"}, headers=admin.headers
        )
        duplicate = await client.post(f"{BASE}/keyword-flags", json={"keyword": "bruise"}, headers=admin.headers)

        assert created.status_code == 201
        assert created.json()["keyword"] == "bruise"
        assert duplicate.status_code == 409

        listed = (await client.get(f"{BASE}/keyword-flags", headers=admin.headers)).json()
        assert [(k["keyword"], k["severity"]) for k in listed] == [("bruise", "high")]

        deleted = await client.delete(f"{BASE}/keyword-flags/{created.json()['id']}", headers=admin.headers)
        assert deleted.json()["success"] is True
        assert (await client.get(f"{BASE}/keyword-flags", headers=admin.headers)).json() == []


class TestResources:
    async def test_resource_with_tags(self, client: AsyncClient, admin):
        tag = (await client.post(f"{BASE}/content-tags", json={"name": "Sleep"}, headers=admin.headers)).json()
        other = (await client.post(f"{BASE}/content-tags", json={"name": "Food"}, headers=admin.headers)).json()

        created = await client.post(
            f"{BASE}/resources",
            json={
                "title": "Safe sleep guide",
                "description": "How to settle infants",
                "content_url": "https://resources.example.com/sleep",
                "resource_type": "article",
                "visible_to": ["PARENT", "NANNY"],
                "tags": [tag["id"], tag["id"]],
            },
            headers=admin.headers,
        )
        resource = created.json()
        assert resource["visible_to"] == ["PARENT", "NANNY"]
        assert [t["name"] for t in resource["tags"]] == ["Sleep"]

        updated = await client.put(
            f"{BASE}/resources/{resource['id']}",
            json={"title": "Sleep guide", "tags": [other["id"]]},
            headers=admin.headers,
        )
        assert updated.json()["title"] == "Sleep guide"
        assert [t["name"] for t in updated.json()["tags"]] == ["Food"]

    async def test_resource_filters(self, client: AsyncClient, admin):
        for title, audience in (("For parents", ["PARENT"]), ("For nannies", ["NANNY"])):
            await client.post(
                f"{BASE}/resources",
                json={
                    "title": title,
                    "description": "Guide",
                    "content_url": "https://resources.example.com/x",
                    "resource_type": "video",
                    "visible_to": audience,
                },
                headers=admin.headers,
            )

        nanny_only = (await client.get(f"{BASE}/resources", params={"visible_to": "NANNY"}, headers=admin.headers)).json()
        searched = (await client.get(f"{BASE}/resources", params={"search": "parents"}, headers=admin.headers)).json()

        assert [r["title"] for r in nanny_only] == ["For nannies"]
        assert [r["title"] for r in searched] == ["For parents"]

    async def test_unknown_tag_rejected(self, client: AsyncClient, admin):
        response = await client.post(
            f"{BASE}/resources",
            json={
                "title": "T",
                "description": "D",
                "content_url": "https://resources.example.com/t",
                "resource_type": "article",
                "visible_to": ["ADMIN"],
                "tags": ["missing"],
            },
            headers=admin.headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Unknown content tag: missing"

    async def test_duplicate_tag(self, client: AsyncClient, admin):
        await client.post(f"{BASE}/content-tags", json={"name": "Sleep"}, headers=admin.headers)

        response = await client.post(f"{BASE}/content-tags", json={"name": "SLEEP"}, headers=admin.headers)

        assert response.status_code == 409


class TestAgencies:
    async def test_agency_and_assignments(self, client: AsyncClient, session, admin, nanny):
        agency = (
            await client.post(
                f"{BASE}/agencies",
                json={"name": "Little Steps", "contact_email": "hello@littlesteps.example.com"},
                headers=admin.headers,
            )
        ).json()
        session.add(
            HoursLog(
                nanny_id=nanny.profile_id,
                date=datetime.utcnow() - timedelta(days=2),
                start_time="09:00",
                end_time="12:00",
                duration_minutes=180,
            )
        )
        await session.commit()

        assigned = await client.post(
            f"{BASE}/agencies/{agency['id']}/nannies",
            json={"nanny_id": nanny.profile_id, "role": "Lead", "pay_rate": 25.0},
            headers=admin.headers,
        )
        assert assigned.status_code == 201
        duplicate = await client.post(
            f"{BASE}/agencies/{agency['id']}/nannies", json={"nanny_id": nanny.profile_id}, headers=admin.headers
        )
        assert duplicate.status_code == 409

        agencies = (await client.get(f"{BASE}/agencies", params={"search": "steps"}, headers=admin.headers)).json()
        assert agencies[0]["nanny_assignments_count"] == 1

        nannies = (await client.get(f"{BASE}/agencies/{agency['id']}/nannies", headers=admin.headers)).json()
        assert nannies[0]["nanny"]["email"] == nanny.email
        assert nannies[0]["nanny"]["recent_hours"] == 3.0
        assert nannies[0]["role"] == "Lead"

        updated = await client.put(
            f"{BASE}/agencies/assignments/{assigned.json()['id']}", json={"status": "Inactive"}, headers=admin.headers
        )
        assert updated.json()["status"] == "Inactive"
        assert updated.json()["pay_rate"] == 25.0

    async def test_update_agency(self, client: AsyncClient, admin):
        agency = (await client.post(f"{BASE}/agencies", json={"name": "Old Name"}, headers=admin.headers)).json()

        response = await client.put(f"{BASE}/agencies/{agency['id']}", json={"name": "New Name"}, headers=admin.headers)

        assert response.json()["name"] == "New Name"

    async def test_unknown_agency_and_nanny(self, client: AsyncClient, admin):
        agency = (await client.post(f"{BASE}/agencies", json={"name": "Agency"}, headers=admin.headers)).json()

        missing_agency = await client.get(f"{BASE}/agencies/missing/nannies", headers=admin.headers)
        missing_nanny = await client.post(
            f"{BASE}/agencies/{agency['id']}/nannies", json={"nanny_id": "missing"}, headers=admin.headers
        )

        assert missing_agency.status_code == 404
        assert missing_nanny.status_code == 404


class TestReports:
    async def test_user_growth_report(self, client: AsyncClient, admin, nanny, parent):
        response = await client.get(
            f"{BASE}/reports/data", params={"report_type": "userGrowth", "date_range": "7days"}, headers=admin.headers
        )

        data = response.json()
        assert data["title"] == "Report: userGrowth"
        assert data["summary"] == {"new_users": 3, "total_users": 3}

    async def test_custom_range_requires_dates(self, client: AsyncClient, admin):
        response = await client.get(
            f"{BASE}/reports/data", params={"report_type": "observations", "date_range": "custom"}, headers=admin.headers
        )

        assert response.status_code == 400

    async def test_schedules(self, client: AsyncClient, admin):
        created = await client.post(
            f"{BASE}/reports/schedules",
            json={
                "name": "Weekly growth",
                "report_type": "userGrowth",
                "frequency": "Weekly",
                "format": ["PDF"],
                "recipients": ["ops@example.com"],
            },
            headers=admin.headers,
        )

        assert created.status_code == 201
        assert created.json()["format"] == ["PDF"]
        assert created.json()["recipients"] == ["ops@example.com"]
        schedules = (await client.get(f"{BASE}/reports/schedules", headers=admin.headers)).json()
        assert [s["name"] for s in schedules] == ["Weekly growth"]

    async def test_audit_logs(self, client: AsyncClient, admin, nanny):
        created = (
            await client.post(
                "/api/v1/nanny/hours",
                json={"date": "2024-03-01T00:00:00", "start_time": "09:00", "end_time": "10:00"},
                headers=nanny.headers,
            )
        ).json()
        await client.put(f"/api/v1/nanny/hours/{created['id']}", json={"notes": "fixed"}, headers=nanny.headers)

        data = (await client.get(f"{BASE}/audit-logs", headers=admin.headers)).json()

        assert {u["email"] for u in data["user_logins"]} == {admin.email, nanny.email}
        assert "password_hash" not in data["user_logins"][0]
        assert data["hours_log_audits"][0]["action"] == "UPDATE"
        assert data["hours_log_audits"][0]["previous_data"]["notes"] is None


class TestSystemSettings:
    async def test_defaults_then_partial_update(self, client: AsyncClient, admin):
        defaults = (await client.get(f"{BASE}/system-settings", headers=admin.headers)).json()
        assert defaults["general"]["site_name"] == "Indaba Care"

        general = dict(defaults["general"], site_name="Indaba")
        updated = (await client.put(f"{BASE}/system-settings", json={"general": general}, headers=admin.headers)).json()

        assert updated["general"]["site_name"] == "Indaba"
        assert updated["security"] == defaults["security"]

    async def test_connection_check(self, client: AsyncClient, admin):
        ok = await client.post(
            f"{BASE}/system-settings/test-connection",
            json={"channel": "ai", "provider": "openai", "config": {"api_key": "sk-test"}},
            headers=admin.headers,
        )
        missing = await client.post(
            f"{BASE}/system-settings/test-connection",
            json={"channel": "sms", "provider": "twilio", "config": {}},
            headers=admin.headers,
        )

        assert ok.json() == {"success": True, "message": "AI connection test successful"}
        assert missing.status_code == 400
