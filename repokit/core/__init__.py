from repokit.core.utils.checks import ifnone
from repokit.core.config import CoreSettings, load_settings
from repokit.core.base import Repokit, RepokitABC, RepokitMeta
from repokit.core.logging.logger import get_logger, setup_logger

setup_logger()  # Initialize the default logger

__all__ = [
    "CoreSettings",
    "get_logger",
    "ifnone",
    "load_settings",
    "Repokit",
    "RepokitABC",
    "RepokitMeta",
    "setup_logger",
]
