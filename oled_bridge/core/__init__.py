from .config_manager import ConfigManager, get_config_manager
from .errors import (
    OledBridgeError,
    LinkError,
    LinkOpenError,
    LinkWriteError,
    SendError,
    DeliveryFailedError,
    QueueAbandonedError,
)
from .logging_utils import get_module_logger
from .shutdown_coordinator import ShutdownCoordinator

__all__ = [
    'ConfigManager',
    'get_config_manager',
    'OledBridgeError',
    'LinkError',
    'LinkOpenError',
    'LinkWriteError',
    'SendError',
    'DeliveryFailedError',
    'QueueAbandonedError',
    'get_module_logger',
    'ShutdownCoordinator',
]
