from .logging import configure_logging, log_error
from .settings import FXSettings

__all__ = ['FXSettings', 'configure_logging', 'log_error']
