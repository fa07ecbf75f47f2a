"""
Rendering and delivery module

Renderer and Dispatcher contracts with local file and log implementations,
plus console formatting.
"""

from .dispatcher import Delivery, Dispatcher, LogDispatcher
from .formatters import format_jobs_table, format_reconciliation_console, format_run_console
from .renderer import FileRenderer, Renderer, flatten

__all__ = [
    'Delivery',
    'Dispatcher',
    'FileRenderer',
    'LogDispatcher',
    'Renderer',
    'flatten',
    'format_jobs_table',
    'format_reconciliation_console',
    'format_run_console',
]
