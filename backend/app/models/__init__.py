"""SQLAlchemy models package.

All ORM classes are imported here so mapper configuration (relationship
string resolution) never depends on import order.
"""

from app.models import (  # noqa: F401
    project,
    project_member,
    user,
)
