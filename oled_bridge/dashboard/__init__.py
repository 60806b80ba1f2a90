from .controller import DashboardController, truncate_item

__all__ = ['DashboardController', 'truncate_item']
