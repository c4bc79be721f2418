# vaultwatch/utils/__init__.py

"""
VaultWatch Utilities
Document Activity Tracking - Utility Functions
"""
from .config import Config, load_config, save_config
from .logger import setup_logging, get_logger, log_exception
from .file_utils import (
    ContentReader, ContentStore, FileSystemContentReader, FileSystemContentStore,
    find_files, normalize_vault_path, to_vault_path
)
from .scheduler import Scheduler, AsyncioScheduler

__all__ = [
    'Config', 'load_config', 'save_config',
    'setup_logging', 'get_logger', 'log_exception',
    'ContentReader', 'ContentStore', 'FileSystemContentReader', 'FileSystemContentStore',
    'find_files', 'normalize_vault_path', 'to_vault_path',
    'Scheduler', 'AsyncioScheduler',
]
