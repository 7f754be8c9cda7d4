"""API routers."""

from vbagen.api import auth, projects, workbooks

__all__ = [
    "auth",
    "projects",
    "workbooks",
]
