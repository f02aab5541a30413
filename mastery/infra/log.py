"""
Unified logging infrastructure module.
"""

from mastery.services.structured_logging import get_logger

__all__ = ["get_logger"]
