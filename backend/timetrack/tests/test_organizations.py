"""
Organization, membership and project tests.

Cover the role ordering, the fail-closed membership gate, member
administration, the per-organization project catalogue and project
assignments.
"""
import uuid

import pytest
from sqlalchemy import false

from timetrack.database.models import ProjectAssignment, Role
from timetrack.schemas.organization import (
    MemberAddRequest, MemberUpdateRequest, OrganizationCreateRequest,
    ProjectAssignRequest, ProjectCreateRequest, ProjectUpdateRequest
)
from timetrack.services import membership, organizations, projects, timesheets
from timetrack.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

from .conftest import WEEK, make_user


class TestRoles:
    """Role privilege ordering."""

    def test_ordering(self):
        assert Role.ADMIN.at_least(Role.MANAGER)
        assert Role.MANAGER.at_least(Role.EMPLOYEE)
        assert Role.MANAGER.at_least(Role.MANAGER)
        assert not Role.EMPLOYEE.at_least(Role.MANAGER)


class TestMembershipGate:
    """Membership resolution."""

    def test_active_member_resolves(self, db_session, organization, employee):
        member = membership.require_membership(db_session, employee.id, organization.id)

        assert member.role == Role.EMPLOYEE

    def test_non_member_forbidden(self, db_session, organization, outsider):
        with pytest.raises(ForbiddenError) as exc_info:
            membership.require_membership(db_session, outsider.id, organization.id)
        assert exc_info.value.code == "not_a_member"

    def test_deactivated_member_is_not_a_member(self, db_session, organization, admin, employee):
        member = membership.get_membership(db_session, employee.id, organization.id)
        organizations.update_member(db_session, admin.id, organization.id, member.id,
                                    MemberUpdateRequest(active=False))

        assert membership.get_membership(db_session, employee.id, organization.id) is None
        with pytest.raises(ForbiddenError):
            timesheets.create_timesheet(db_session, employee.id, organization.id, WEEK)

    def test_has_any_role(self, db_session, organization, manager, employee):
        assert membership.has_any_role(db_session, manager.id, organization.id, [Role.ADMIN, Role.MANAGER])
        assert not membership.has_any_role(db_session, employee.id, organization.id, [Role.ADMIN, Role.MANAGER])


class TestOrganizations:
    """Organization administration."""

    def test_creator_becomes_admin(self, db_session, employee):
        org = organizations.create_organization(db_session, employee.id, OrganizationCreateRequest(name=" Initech "))

        assert org.name == "Initech"
        assert membership.require_membership(db_session, employee.id, org.id).role == Role.ADMIN

    def test_blank_name_rejected(self, db_session, employee):
        with pytest.raises(ValidationError):
            organizations.create_organization(db_session, employee.id, OrganizationCreateRequest(name="   "))

    def test_list_my_organizations(self, db_session, organization, other_organization, employee):
        mine = organizations.list_my_organizations(db_session, employee.id)

        assert [o.id for o in mine] == [organization.id]

    def test_members_listed_by_role(self, db_session, organization, admin):
        members = organizations.list_members(db_session, admin.id, organization.id)

        assert [m.role for m in members] == [Role.ADMIN, Role.MANAGER, Role.EMPLOYEE, Role.EMPLOYEE]

    def test_late_admin_listed_before_earlier_manager(self, db_session, organization, admin, manager):
        newcomer = make_user(db_session, "late-admin@example.com")
        organizations.add_member(db_session, admin.id, organization.id,
                                 MemberAddRequest(user_id=newcomer.id, role=Role.ADMIN))

        members = organizations.list_members(db_session, admin.id, organization.id)

        assert [m.user_id for m in members][:3] == [admin.id, newcomer.id, manager.id]

    def test_only_admin_adds_members(self, db_session, organization, manager):
        newcomer = make_user(db_session, "new@example.com")

        with pytest.raises(ForbiddenError):
            organizations.add_member(db_session, manager.id, organization.id, MemberAddRequest(user_id=newcomer.id))

    def test_add_existing_member_reactivates(self, db_session, organization, admin, employee):
        member = membership.get_membership(db_session, employee.id, organization.id)
        organizations.update_member(db_session, admin.id, organization.id, member.id,
                                    MemberUpdateRequest(active=False))

        result = organizations.add_member(db_session, admin.id, organization.id,
                                          MemberAddRequest(user_id=employee.id, role=Role.MANAGER))

        assert result.id == member.id
        assert result.active is True
        assert result.role == Role.MANAGER

    def test_add_unknown_user_rejected(self, db_session, organization, admin):
        with pytest.raises(ValidationError) as exc_info:
            organizations.add_member(db_session, admin.id, organization.id, MemberAddRequest(user_id=uuid.uuid4()))
        assert "user_id" in exc_info.value.errors


class TestProjects:
    """Project catalogue."""

    def test_manager_creates_project(self, db_session, organization, manager):
        result = projects.create_project(db_session, manager.id, organization.id,
                                         ProjectCreateRequest(name="Mobile", code="MOB"))

        assert result.name == "Mobile"
        assert result.active is True

    def test_employee_cannot_create_project(self, db_session, organization, employee):
        with pytest.raises(ForbiddenError):
            projects.create_project(db_session, employee.id, organization.id, ProjectCreateRequest(name="Mobile"))

    def test_duplicate_name_conflicts(self, db_session, organization, manager, project):
        with pytest.raises(ConflictError) as exc_info:
            projects.create_project(db_session, manager.id, organization.id, ProjectCreateRequest(name=project.name))
        assert exc_info.value.code == "duplicate_project"

    def test_same_name_in_other_organization_allowed(self, db_session, other_organization, outsider, project):
        result = projects.create_project(db_session, outsider.id, other_organization.id,
                                         ProjectCreateRequest(name=project.name))

        assert result.organization_id == other_organization.id

    def test_update_clears_code_with_null(self, db_session, organization, manager):
        created = projects.create_project(db_session, manager.id, organization.id,
                                          ProjectCreateRequest(name="Mobile", code="MOB", description="App"))

        result = projects.update_project(db_session, manager.id, organization.id, created.id,
                                         ProjectUpdateRequest(code=None))

        assert result.code is None
        assert result.description == "App"

    def test_list_filters_active(self, db_session, organization, manager, employee, project):
        projects.update_project(db_session, manager.id, organization.id, project.id,
                                ProjectUpdateRequest(active=False))
        projects.create_project(db_session, manager.id, organization.id, ProjectCreateRequest(name="Mobile"))

        active = projects.list_projects(db_session, employee.id, organization.id, active=True)

        assert [p.name for p in active] == ["Mobile"]

    def test_foreign_project_not_found(self, db_session, organization, employee, other_project):
        with pytest.raises(NotFoundError):
            projects.get_project(db_session, employee.id, organization.id, other_project.id)

    def test_create_race_on_name_is_conflict(self, monkeypatch, db_session, organization, manager, project):
        monkeypatch.setattr(projects, "_ensure_unique_name", lambda *args, **kwargs: None)

        with pytest.raises(ConflictError) as exc_info:
            projects.create_project(db_session, manager.id, organization.id, ProjectCreateRequest(name=project.name))
        assert exc_info.value.code == "duplicate_project"

        assert [p.name for p in projects.list_projects(db_session, manager.id, organization.id)] == [project.name]

    def test_rename_race_on_name_is_conflict(self, monkeypatch, db_session, organization, manager, project):
        other = projects.create_project(db_session, manager.id, organization.id, ProjectCreateRequest(name="Mobile"))
        monkeypatch.setattr(projects, "_ensure_unique_name", lambda *args, **kwargs: None)

        with pytest.raises(ConflictError):
            projects.update_project(db_session, manager.id, organization.id, other.id,
                                    ProjectUpdateRequest(name=project.name))

        assert projects.get_project(db_session, manager.id, organization.id, other.id).name == "Mobile"


class TestProjectAssignments:
    """Assigning members to projects."""

    def test_manager_assigns_member(self, db_session, organization, manager, employee, project):
        result = projects.assign_user(db_session, manager.id, organization.id, project.id,
                                      ProjectAssignRequest(user_id=employee.id))

        assert result.project_id == project.id
        assert result.user_id == employee.id
        assert result.assigned_by_id == manager.id

    def test_assign_twice_returns_existing(self, db_session, organization, manager, admin, employee, project):
        first = projects.assign_user(db_session, manager.id, organization.id, project.id,
                                     ProjectAssignRequest(user_id=employee.id))
        second = projects.assign_user(db_session, admin.id, organization.id, project.id,
                                      ProjectAssignRequest(user_id=employee.id))

        assert second.id == first.id
        assert second.assigned_by_id == manager.id
        assert db_session.query(ProjectAssignment).count() == 1

    def test_employee_cannot_assign(self, db_session, organization, employee, other_employee, project):
        with pytest.raises(ForbiddenError):
            projects.assign_user(db_session, employee.id, organization.id, project.id,
                                 ProjectAssignRequest(user_id=other_employee.id))

    def test_non_member_cannot_be_assigned(self, db_session, organization, manager, outsider, project):
        with pytest.raises(ValidationError) as exc_info:
            projects.assign_user(db_session, manager.id, organization.id, project.id,
                                 ProjectAssignRequest(user_id=outsider.id))
        assert "user_id" in exc_info.value.errors

    def test_foreign_project_not_found(self, db_session, organization, manager, employee, other_project):
        with pytest.raises(NotFoundError):
            projects.assign_user(db_session, manager.id, organization.id, other_project.id,
                                 ProjectAssignRequest(user_id=employee.id))

    def test_storage_race_is_conflict(self, monkeypatch, db_session, organization, manager, admin, employee,
                                      project):
        projects.assign_user(db_session, manager.id, organization.id, project.id,
                             ProjectAssignRequest(user_id=employee.id))
        real_query = db_session.query
        misses = []

        def query_missing_assignment(*entities):
            if len(entities) == 1 and entities[0] is ProjectAssignment and not misses:
                misses.append(True)
                return real_query(ProjectAssignment).filter(false())
            return real_query(*entities)

        monkeypatch.setattr(db_session, "query", query_missing_assignment)

        with pytest.raises(ConflictError) as exc_info:
            projects.assign_user(db_session, admin.id, organization.id, project.id,
                                 ProjectAssignRequest(user_id=employee.id))
        assert exc_info.value.code == "duplicate_assignment"

    def test_list_and_unassign(self, db_session, organization, manager, employee, other_employee, project):
        for user in (employee, other_employee):
            projects.assign_user(db_session, manager.id, organization.id, project.id,
                                 ProjectAssignRequest(user_id=user.id))

        listed = projects.list_assignments(db_session, employee.id, organization.id, project.id)
        assert [a.user_id for a in listed] == [employee.id, other_employee.id]

        projects.unassign_user(db_session, manager.id, organization.id, project.id, employee.id)

        listed = projects.list_assignments(db_session, employee.id, organization.id, project.id)
        assert [a.user_id for a in listed] == [other_employee.id]

    def test_unassign_missing_not_found(self, db_session, organization, manager, employee, project):
        with pytest.raises(NotFoundError) as exc_info:
            projects.unassign_user(db_session, manager.id, organization.id, project.id, employee.id)
        assert exc_info.value.code == "assignment_not_found"

    def test_outsider_cannot_list(self, db_session, organization, outsider, project):
        with pytest.raises(ForbiddenError):
            projects.list_assignments(db_session, outsider.id, organization.id, project.id)
