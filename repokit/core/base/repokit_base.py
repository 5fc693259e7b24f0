"""Repokit class. Provides unified configuration and logging for repokit components."""

from abc import ABCMeta

from repokit.core.config import CoreSettings, SettingsLike, load_settings
from repokit.core.logging.logger import get_logger

LOGGER_PARAM_NAMES = {
    "log_dir",
    "logger_level",
    "stream_level",
    "file_level",
    "file_mode",
    "propagate",
    "max_bytes",
    "backup_count",
    "use_structlog",
    "structlog_json",
    "structlog_bind",
}


class RepokitMeta(type):
    """Metaclass for Repokit class.

    The RepokitMeta metaclass lets classes deriving from Repokit use the same default logger within class methods as
    within instance methods::

        from repokit.core import Repokit

        class MyClass(Repokit):
            def instance_method(self):
                self.logger.info(f"Using logger: {self.logger.name}")  # Using logger: repokit.my_module.MyClass

            @classmethod
            def class_method(cls):
                cls.logger.info(f"Using logger: {cls.logger.name}")  # Using logger: repokit.my_module.MyClass
    """

    def __init__(cls, name, bases, attr_dict):
        super().__init__(name, bases, attr_dict)
        cls._logger = None
        cls._config = None

    @property
    def logger(cls):
        if cls._logger is None:
            cls._logger = get_logger(cls.unique_name)
        return cls._logger

    @logger.setter
    def logger(cls, new_logger):
        cls._logger = new_logger

    @property
    def unique_name(cls) -> str:
        return cls.__module__ + "." + cls.__name__

    @property
    def config(cls) -> CoreSettings:
        if cls._config is None:
            cls._config = CoreSettings()
        return cls._config

    @config.setter
    def config(cls, new_config):
        cls._config = new_config


class Repokit(metaclass=RepokitMeta):
    """Base class for all repokit components.

    Every subclass gets a logger named after its module and class, and a ``config`` holding the loaded
    ``CoreSettings`` with any ``config_overrides`` applied on top. Logger keyword arguments (``log_dir``,
    ``stream_level``, ``use_structlog``, ...) are forwarded to ``get_logger``; a ready-made ``logger`` may be passed
    instead.

    Instances can be used as context managers; exceptions raised inside the block are logged and re-raised unless
    ``suppress`` is set.
    """

    def __init__(self, suppress: bool = False, *, config_overrides: SettingsLike = None, logger=None, **kwargs):
        unknown = set(kwargs) - LOGGER_PARAM_NAMES
        if unknown:
            raise TypeError(f"Unexpected keyword arguments for {type(self).__name__}: {sorted(unknown)}")

        self.suppress = suppress
        self.config = load_settings(config_overrides)
        self.logger = logger if logger is not None else get_logger(self.unique_name, **kwargs)

    @property
    def unique_name(self) -> str:
        return self.__module__ + "." + type(self).__name__

    @property
    def name(self) -> str:
        return type(self).__name__

    def __enter__(self):
        self.logger.debug(f"Initializing {self.name} as a context manager.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.debug(f"Exiting context manager for {self.name}.")
        if exc_type is not None:
            info = (exc_type, exc_val, exc_tb)
            self.logger.exception("Exception occurred", exc_info=info)
            return self.suppress
        return False


class RepokitABCMeta(RepokitMeta, ABCMeta):
    """Metaclass that combines RepokitMeta and ABC metaclasses."""

    pass


class RepokitABC(Repokit, metaclass=RepokitABCMeta):
    """Abstract base class combining Repokit functionality with ABC support.

    Use this for abstract repokit components (error sinks, schemas) that need both the unified logger and
    ``@abstractmethod`` enforcement.
    """

    pass
