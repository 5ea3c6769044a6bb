from .config import ReplaceConfig
from .logging import setup_file_logging
from .common import ProgressReporter, record_progress

__all__ = ['ReplaceConfig', 'setup_file_logging', 'ProgressReporter', 'record_progress']
