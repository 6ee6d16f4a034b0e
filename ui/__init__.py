"""
UI Package for OMWModManager
"""

from .mod_manager_bridge import (
    ModManagerBridge,
    ToolWorker,
    LogSignalHandler,
)

__all__ = [
    'ModManagerBridge',
    'ToolWorker',
    'LogSignalHandler',
]
