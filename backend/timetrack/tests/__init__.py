"""
Test package for the multitenant timesheet backend application.

This package contains test suites for:
- Week normalization and entry duration rules
- Membership and role checks
- The submit/approve/reject lifecycle
- Notifications and reminders
- API routing, authentication and problem responses
"""
