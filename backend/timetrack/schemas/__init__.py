"""
Pydantic schemas for API request/response validation.

Provides data models for organizations, membership, projects, weekly
timesheets and their entries, and notifications.
"""
