"""
Multitenant timesheet service.
"""
