"""
Infrastructure package - unified entry points for core services.

Import from the submodules:
- mastery.infra.db    (db)
- mastery.infra.auth  (require_admin, require_admin_or_internal, require_internal_token)
- mastery.infra.log   (get_logger)
"""
