"""
Domain services for organizations, projects, timesheets, entries and
notifications.
"""
