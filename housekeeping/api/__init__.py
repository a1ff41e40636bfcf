"""
API routers
"""

from housekeeping.api import auth, buildings, companies, rooms, tasks, users

__all__ = [
    "auth",
    "buildings",
    "companies",
    "rooms",
    "tasks",
    "users",
]
