"""
API route modules.

- system: Status and health
- webhook: Session events
- display: Raw display commands
"""

from .system import setup_system_routes
from .webhook import setup_webhook_routes
from .display import setup_display_routes


def setup_all_routes(app, controller):
    """Register all API routes with the application."""
    setup_system_routes(app, controller)
    setup_webhook_routes(app, controller)
    setup_display_routes(app, controller)


__all__ = ["setup_all_routes"]
