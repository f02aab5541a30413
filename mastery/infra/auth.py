"""
Unified authentication infrastructure module.

Routes import their auth decorators from here.
"""

from mastery.middleware.auth import (
    require_admin,
    require_admin_or_internal,
    require_internal_token,
)

__all__ = ["require_admin", "require_admin_or_internal", "require_internal_token"]
