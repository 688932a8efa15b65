from .cancel import CancelToken, guard, sleep
from .logs import configure_logging

__all__ = ["CancelToken", "guard", "sleep", "configure_logging"]
