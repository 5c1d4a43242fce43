"""Weekend School attendance package.

Organized by feature modules (catalog, students, attendance, reports, auth)
with a thin Flask controller layer over service and repository layers.
"""

from .main import create_app

__all__ = ["create_app"]
