"""
SQLAlchemy database models for the multitenant timesheet service.

Defines all database tables and relationships for organizations, members,
projects, project assignments, weekly timesheets, timesheet entries, and
notifications.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Date, Time, Text,
    ForeignKey, UniqueConstraint, Index, Enum
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.dialects.postgresql import UUID
import enum

Base = declarative_base()

NOTIFICATION_TITLE_MAX = 200
NOTIFICATION_MESSAGE_MAX = 2000

# Leaves room for the rejection notification text around the reason.
REJECTION_REASON_MAX = 1800


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, enum.Enum):
    """Member roles within an organization."""
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def at_least(self, other: "Role") -> bool:
        """True when this role is as privileged as ``other`` or more."""
        return self.rank >= other.rank


_ROLE_RANK = {Role.EMPLOYEE: 0, Role.MANAGER: 1, Role.ADMIN: 2}

APPROVER_ROLES = (Role.ADMIN, Role.MANAGER)


class TimesheetStatus(str, enum.Enum):
    """Timesheet lifecycle states."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


EDITABLE_STATUSES = (TimesheetStatus.DRAFT, TimesheetStatus.REJECTED)


class NotificationType(str, enum.Enum):
    """Notification type tags."""
    TIMESHEET_SUBMITTED = "timesheet_submitted"
    TIMESHEET_APPROVED = "timesheet_approved"
    TIMESHEET_REJECTED = "timesheet_rejected"
    REMINDER = "reminder"


class Organization(Base):
    """Organization (tenant) model."""
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    members = relationship("OrganizationMember", back_populates="organization", cascade="all, delete-orphan")
    projects = relationship("Project", back_populates="organization", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Organization(id={self.id}, name='{self.name}')>"


class User(Base):
    """User directory entry. Credentials live with the upstream identity provider."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    memberships = relationship("OrganizationMember", back_populates="user")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class OrganizationMember(Base):
    """A user's role and active status within one organization."""
    __tablename__ = "organization_members"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    role = Column(Enum(Role), nullable=False, default=Role.EMPLOYEE)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships")

    # Constraints
    __table_args__ = (
        UniqueConstraint('organization_id', 'user_id', name='uq_member_per_organization'),
        Index('idx_member_org_active_role', 'organization_id', 'active', 'role'),
    )

    def __repr__(self):
        return f"<OrganizationMember(org={self.organization_id}, user={self.user_id}, role={self.role})>"


class Project(Base):
    """Project that timesheet entries are logged against."""
    __tablename__ = "projects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    name = Column(String(200), nullable=False)
    code = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    organization = relationship("Organization", back_populates="projects")
    assignments = relationship(
        "ProjectAssignment", back_populates="project",
        cascade="all, delete-orphan", passive_deletes=True
    )

    # Constraints
    __table_args__ = (
        UniqueConstraint('organization_id', 'name', name='uq_project_name_per_organization'),
        Index('idx_project_org_active', 'organization_id', 'active'),
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', organization_id={self.organization_id})>"


class ProjectAssignment(Base):
    """A member assigned to work on a project."""
    __tablename__ = "project_assignments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    assigned_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    project = relationship("Project", back_populates="assignments")

    # Constraints
    __table_args__ = (
        UniqueConstraint('project_id', 'user_id', name='uq_assignment_project_user'),
        Index('idx_assignment_org_user', 'organization_id', 'user_id'),
    )

    def __repr__(self):
        return f"<ProjectAssignment(project={self.project_id}, user={self.user_id})>"


class Timesheet(Base):
    """Weekly timesheet owned by one user in one organization."""
    __tablename__ = "timesheets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    week_start_date = Column(Date, nullable=False)
    week_end_date = Column(Date, nullable=False)
    status = Column(Enum(TimesheetStatus), nullable=False, default=TimesheetStatus.DRAFT)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    submission_comment = Column(Text, nullable=True)

    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    locked_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    entries = relationship(
        "TimesheetEntry", back_populates="timesheet",
        cascade="all, delete-orphan", passive_deletes=True
    )

    # Constraints
    __table_args__ = (
        UniqueConstraint('organization_id', 'user_id', 'week_start_date', name='uq_timesheet_user_week'),
        Index('idx_timesheet_org_status', 'organization_id', 'status'),
        Index('idx_timesheet_org_week', 'organization_id', 'week_start_date'),
    )

    def __repr__(self):
        return f"<Timesheet(id={self.id}, user_id={self.user_id}, week={self.week_start_date}, status={self.status})>"


class TimesheetEntry(Base):
    """A single block of work logged on a timesheet."""
    __tablename__ = "timesheet_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    timesheet_id = Column(UUID(as_uuid=True), ForeignKey("timesheets.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False)
    work_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    timesheet = relationship("Timesheet", back_populates="entries")
    project = relationship("Project")

    # Constraints
    __table_args__ = (
        Index('idx_entry_timesheet_deleted', 'timesheet_id', 'is_deleted'),
        Index('idx_entry_work_date', 'work_date'),
    )

    def __repr__(self):
        return f"<TimesheetEntry(id={self.id}, timesheet_id={self.timesheet_id}, minutes={self.duration_minutes})>"


class Notification(Base):
    """In-app notification addressed to one member of an organization."""
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    recipient_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    actor_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    timesheet_id = Column(UUID(as_uuid=True), ForeignKey("timesheets.id", ondelete="SET NULL"), nullable=True)
    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String(NOTIFICATION_TITLE_MAX), nullable=False)
    message = Column(String(NOTIFICATION_MESSAGE_MAX), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    read_at = Column(DateTime(timezone=True), nullable=True)

    # Constraints
    __table_args__ = (
        Index('idx_notification_recipient', 'organization_id', 'recipient_user_id', 'created_at'),
    )

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def __repr__(self):
        return f"<Notification(id={self.id}, recipient={self.recipient_user_id}, type={self.type})>"
