"""
API tests for the timesheet workflow.

Drive the HTTP surface end to end: routing, status codes, response shapes,
tenant isolation and problem-details error payloads.
"""
from datetime import timedelta
from fastapi import status

from .conftest import WEEK
from .test_base import BaseAPITest, TestDataFactory

API = "/api/v1"


def timesheets_url(organization_id) -> str:
    return f"{API}/organizations/{organization_id}/timesheets"


class TestHealth(BaseAPITest):
    """Health endpoints."""

    def test_root(self, client):
        response = client.get("/")

        self.assert_success_response(response)
        assert response.json()["status"] == "operational"

    def test_health(self, client):
        response = client.get("/health")

        self.assert_success_response(response)
        assert response.json()["database"] == "connected"


class TestTimesheetWorkflowAPI(BaseAPITest):
    """Timesheet lifecycle over HTTP."""

    def create_week(self, client, organization, headers, week=WEEK):
        response = client.post(timesheets_url(organization.id), json={"week_start_date": week.isoformat()},
                               headers=headers)
        self.assert_success_response(response, status.HTTP_201_CREATED)
        return response.json()

    def add_entry(self, client, organization, headers, timesheet_id, project, **overrides):
        payload = TestDataFactory.create_entry(project.id, WEEK + timedelta(days=1), **overrides)
        return client.post(f"{timesheets_url(organization.id)}/{timesheet_id}/entries", json=payload,
                           headers=headers)

    def test_full_cycle(self, client, organization, project, employee_headers, manager_headers):
        ts = self.create_week(client, organization, employee_headers, WEEK + timedelta(days=3))
        assert ts["week_start_date"] == WEEK.isoformat()
        assert ts["status"] == "draft"

        again = self.create_week(client, organization, employee_headers)
        assert again["id"] == ts["id"]

        entry = self.add_entry(client, organization, employee_headers, ts["id"], project,
                               start_time="09:00:00", end_time="12:00:00")
        self.assert_success_response(entry, status.HTTP_201_CREATED)
        assert entry.json()["duration_minutes"] == 180

        submitted = client.post(f"{timesheets_url(organization.id)}/{ts['id']}/submit", json={},
                                headers=employee_headers)
        self.assert_success_response(submitted)
        assert submitted.json()["status"] == "submitted"

        pending = client.get(f"{timesheets_url(organization.id)}/pending-approval", headers=manager_headers)
        self.assert_success_response(pending)
        assert [t["id"] for t in pending.json()] == [ts["id"]]

        approved = client.post(f"{timesheets_url(organization.id)}/{ts['id']}/approve",
                               json={"comment": "ok"}, headers=manager_headers)
        self.assert_success_response(approved)
        assert approved.json()["locked_at"] is not None
        assert approved.json()["total_hours"] == 3.0

        locked = self.add_entry(client, organization, employee_headers, ts["id"], project)
        self.assert_conflict(locked, "timesheet_not_editable")

    def test_mine_lists_own_timesheets(self, client, organization, employee_headers):
        ts = self.create_week(client, organization, employee_headers)

        response = client.get(f"{timesheets_url(organization.id)}/mine", headers=employee_headers)

        self.assert_success_response(response)
        assert [t["id"] for t in response.json()] == [ts["id"]]

    def test_submit_empty_is_validation_problem(self, client, organization, employee_headers):
        ts = self.create_week(client, organization, employee_headers)

        response = client.post(f"{timesheets_url(organization.id)}/{ts['id']}/submit", json={},
                               headers=employee_headers)

        self.assert_validation_error(response, expected_code="empty_timesheet")

    def test_approve_draft_is_conflict(self, client, organization, employee_headers, manager_headers):
        ts = self.create_week(client, organization, employee_headers)

        response = client.post(f"{timesheets_url(organization.id)}/{ts['id']}/approve", json={},
                               headers=manager_headers)

        self.assert_conflict(response, "invalid_state")

    def test_reject_without_reason_lists_field_error(self, client, organization, project,
                                                     employee_headers, manager_headers):
        ts = self.create_week(client, organization, employee_headers)
        self.add_entry(client, organization, employee_headers, ts["id"], project)
        client.post(f"{timesheets_url(organization.id)}/{ts['id']}/submit", json={}, headers=employee_headers)

        response = client.post(f"{timesheets_url(organization.id)}/{ts['id']}/reject", json={"reason": "  "},
                               headers=manager_headers)

        body = self.assert_validation_error(response, "reason", "reason_required")
        assert body["errors"]["reason"]

    def test_entry_outside_week_lists_field_error(self, client, organization, project, employee_headers):
        ts = self.create_week(client, organization, employee_headers)
        payload = TestDataFactory.create_entry(project.id, WEEK + timedelta(days=7))

        response = client.post(f"{timesheets_url(organization.id)}/{ts['id']}/entries", json=payload,
                               headers=employee_headers)

        self.assert_validation_error(response, "work_date", "work_date_out_of_range")

    def test_malformed_payload_is_422(self, client, organization, employee_headers):
        response = client.post(timesheets_url(organization.id), json={"week_start_date": "not-a-date"},
                               headers=employee_headers)

        self.assert_request_validation_error(response, "week_start_date")

    def test_offset_aware_entry_time_is_422(self, client, organization, project, employee_headers):
        ts = self.create_week(client, organization, employee_headers)
        payload = TestDataFactory.create_entry(project.id, WEEK, start_time="09:00:00Z", end_time="17:00:00")

        response = client.post(f"{timesheets_url(organization.id)}/{ts['id']}/entries", json=payload,
                               headers=employee_headers)

        self.assert_request_validation_error(response, "start_time")

    def test_patch_and_delete_entry(self, client, organization, project, employee_headers):
        ts = self.create_week(client, organization, employee_headers)
        entry = self.add_entry(client, organization, employee_headers, ts["id"], project, notes="first").json()
        entry_url = f"{timesheets_url(organization.id)}/{ts['id']}/entries/{entry['id']}"

        patched = client.patch(entry_url, json={"notes": None, "duration_minutes": 30}, headers=employee_headers)
        self.assert_success_response(patched)
        assert patched.json()["notes"] is None
        assert patched.json()["duration_minutes"] == 30

        deleted = client.delete(entry_url, headers=employee_headers)
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

        listed = client.get(f"{timesheets_url(organization.id)}/{ts['id']}/entries", headers=employee_headers)
        self.assert_success_response(listed)
        assert listed.json() == []


class TestTenantIsolationAPI(BaseAPITest):
    """Cross-organization access fails closed."""

    def test_non_member_is_forbidden(self, client, organization, outsider_headers):
        response = client.get(f"{timesheets_url(organization.id)}/mine", headers=outsider_headers)

        self.assert_forbidden(response, "not_a_member")

    def test_employee_cannot_list_org(self, client, organization, employee_headers):
        response = client.get(timesheets_url(organization.id), headers=employee_headers)

        self.assert_forbidden(response, "insufficient_role")

    def test_foreign_project_rejected_on_entry(self, client, organization, other_project, employee_headers):
        created = client.post(timesheets_url(organization.id), json={"week_start_date": WEEK.isoformat()},
                              headers=employee_headers).json()
        payload = TestDataFactory.create_entry(other_project.id, WEEK)

        response = client.post(f"{timesheets_url(organization.id)}/{created['id']}/entries", json=payload,
                               headers=employee_headers)

        self.assert_validation_error(response, "project_id", "invalid_project")

    def test_timesheet_of_other_org_not_found(self, client, organization, other_organization,
                                              outsider_headers, manager_headers):
        foreign = client.post(timesheets_url(other_organization.id), json={"week_start_date": WEEK.isoformat()},
                              headers=outsider_headers).json()

        response = client.get(f"{timesheets_url(organization.id)}/{foreign['id']}", headers=manager_headers)

        self.assert_not_found(response, "timesheet_not_found")


class TestOrganizationsAPI(BaseAPITest):
    """Organization, member and project routes."""

    def test_create_and_list(self, client, employee_headers):
        created = client.post(f"{API}/organizations", json={"name": "Initech"}, headers=employee_headers)
        self.assert_success_response(created, status.HTTP_201_CREATED)

        listed = client.get(f"{API}/organizations", headers=employee_headers)
        self.assert_success_response(listed)
        assert "Initech" in [o["name"] for o in listed.json()]

    def test_members_route(self, client, organization, employee_headers):
        response = client.get(f"{API}/organizations/{organization.id}/members", headers=employee_headers)

        self.assert_success_response(response)
        assert response.json()[0]["role"] == "admin"

    def test_duplicate_project_conflict(self, client, organization, project, manager_headers):
        response = client.post(f"{API}/organizations/{organization.id}/projects", json={"name": project.name},
                               headers=manager_headers)

        self.assert_conflict(response, "duplicate_project")

    def test_project_assignment_routes(self, client, organization, project, employee, manager_headers,
                                       employee_headers):
        url = f"{API}/organizations/{organization.id}/projects/{project.id}/assignments"

        assigned = client.post(url, json={"user_id": str(employee.id)}, headers=manager_headers)
        self.assert_success_response(assigned)
        again = client.post(url, json={"user_id": str(employee.id)}, headers=manager_headers)
        assert again.json()["id"] == assigned.json()["id"]

        listed = client.get(url, headers=employee_headers)
        self.assert_success_response(listed)
        assert [a["user_id"] for a in listed.json()] == [str(employee.id)]

        forbidden = client.post(url, json={"user_id": str(employee.id)}, headers=employee_headers)
        self.assert_forbidden(forbidden, "insufficient_role")

        removed = client.delete(f"{url}/{employee.id}", headers=manager_headers)
        assert removed.status_code == status.HTTP_204_NO_CONTENT
        missing = client.delete(f"{url}/{employee.id}", headers=manager_headers)
        self.assert_not_found(missing, "assignment_not_found")


class TestNotificationsAPI(BaseAPITest):
    """Notification routes."""

    def submit(self, client, organization, project, headers):
        ts = client.post(timesheets_url(organization.id), json={"week_start_date": WEEK.isoformat()},
                         headers=headers).json()
        client.post(f"{timesheets_url(organization.id)}/{ts['id']}/entries",
                    json=TestDataFactory.create_entry(project.id, WEEK), headers=headers)
        client.post(f"{timesheets_url(organization.id)}/{ts['id']}/submit", json={}, headers=headers)
        return ts

    def test_list_and_mark_read(self, client, organization, project, employee_headers, manager_headers):
        self.submit(client, organization, project, employee_headers)
        url = f"{API}/organizations/{organization.id}/notifications"

        listed = client.get(url, params={"unread_only": True}, headers=manager_headers)
        self.assert_success_response(listed)
        items = listed.json()
        assert len(items) == 1
        assert items[0]["type"] == "timesheet_submitted"
        assert items[0]["is_read"] is False

        first = client.post(f"{url}/mark-read", json={"ids": [items[0]["id"]]}, headers=manager_headers)
        assert first.json() == {"updated": 1}
        second = client.post(f"{url}/mark-read", json={"ids": [items[0]["id"]]}, headers=manager_headers)
        assert second.json() == {"updated": 0}

    def test_reminder(self, client, organization, project, employee_headers, manager_headers):
        self.submit(client, organization, project, employee_headers)
        url = f"{API}/organizations/{organization.id}/notifications/reminder"

        created = client.post(url, headers=manager_headers)
        self.assert_success_response(created)
        assert created.json()["type"] == "reminder"

        repeated = client.post(url, headers=manager_headers)
        assert repeated.status_code == status.HTTP_204_NO_CONTENT

        employee = client.post(url, headers=employee_headers)
        assert employee.status_code == status.HTTP_204_NO_CONTENT
