from .handler import SessionEventHandler
from .local import LocalSession
from .types import DashboardAPI, Layouts, Session

__all__ = [
    'DashboardAPI',
    'Layouts',
    'LocalSession',
    'Session',
    'SessionEventHandler',
]
