# Common utilities
from passxc.common.logging_utils import setup_logger as setup_logger
from passxc.common.mixins import Configurable as Configurable

__all__ = ["Configurable", "setup_logger"]
