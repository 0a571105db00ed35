"""
Logging utilities for exostore.

Loggers:
--------

- :py:attr:`mylog`: The main logger for the library.
- :py:attr:`devlog`: The development logger for tracing layout decisions.

The base levels of each of these loggers may be set in the configuration. Setting the
``EXOSTORE_LOG_LEVEL`` environment variable overrides every level except that of ``devlog``.
"""
import logging
import os
import sys
from typing import Type

from exostore.utilities._typing import Instance
from exostore.utilities.config import exostore_params

LEVEL_ENVIRONMENT_VARIABLE = "EXOSTORE_LOG_LEVEL"
""" str: Environment variable that, when set, overrides the configured level of every logger
except ``devlog``."""


def _level(key: str) -> str:
    """The level of logger ``key``: the environment override, else the configured value."""
    override = os.environ.get(LEVEL_ENVIRONMENT_VARIABLE)
    if override and key != "devlog":
        return override.strip().upper()
    return exostore_params[f"logging.{key}.level"]


# @@ SETTING UP LOGGERS @@ #
# We load streams, formatters, and handlers from the configuration
# and load them dynamically.
streams = dict(
    mylog=getattr(sys, exostore_params["logging.mylog.stream"]),
    devlog=getattr(sys, exostore_params["logging.devlog.stream"]),
)
_loggers = dict(
    mylog=logging.Logger("exostore"), devlog=logging.Logger("EXOSTORE-DEV")
)

_handlers = {}

for k, v in _loggers.items():
    _handlers[k] = logging.StreamHandler(streams[k])
    _handlers[k].setFormatter(
        logging.Formatter(exostore_params[f"logging.{k}.format"])
    )

    v.addHandler(_handlers[k])
    v.setLevel(_level(k))
    v.propagate = False
    v.disabled = not exostore_params[f"logging.{k}.enabled"]

# Core logger instances.
mylog: logging.Logger = _loggers["mylog"]
""":py:class:`logging.Logger`: The main logger for ``exostore``.

The convention followed here is that the levels correspond to the following:

- ``DEBUG``: File lifecycle events (create, open, initialize, close).
- ``INFO``: Messages the user may want to see during normal operation.
- ``WARNING``: Recoverable oddities, such as an optional field read from a file that lacks it.
- ``ERROR`` / ``CRITICAL``: Failures the user must act on.
"""
devlog: logging.Logger = _loggers["devlog"]
""":py:class:`logging.Logger`: The development logger for ``exostore``.

Used for chunk geometry, cache slot allocation and other layout decisions. Disabled by default.
"""


class FileLogAdapter(logging.LoggerAdapter):
    """
    Logger adapter that prefixes every message with the path of the Exodus file it concerns.

    Instances are handed out by :py:class:`LogDescriptor` when the logger is reached through an
    open file object, so ``exo.logger.debug("Closed.")`` reads ``mesh.exo: Closed.``.
    """

    def process(self, msg, kwargs):
        return f"{self.extra['path']}: {msg}", kwargs


class LogDescriptor:
    """
    A descriptor for dynamically creating and managing loggers for a class.

    The file classes (:py:class:`~exostore.file.modes.ExodusReader` and friends) carry a
    class-specific logger through this descriptor. Accessed on the class it yields the
    :py:class:`logging.Logger` itself; accessed on an instance with a ``path`` it yields a
    :py:class:`FileLogAdapter` bound to that path.
    """

    def __get__(self, instance: Instance, owner: Type[Instance]):
        logger = logging.getLogger(f"exostore.{owner.__name__}")

        if not logger.handlers:
            handler = logging.StreamHandler(
                getattr(sys, exostore_params["logging.mylog.stream"])
            )
            handler.setFormatter(
                logging.Formatter(exostore_params["logging.code.format"])
            )
            logger.addHandler(handler)
            logger.setLevel(_level("code"))
            logger.propagate = False
            logger.disabled = not exostore_params["logging.code.enabled"]

        path = getattr(instance, "_path", None)
        if path is None:
            return logger
        return FileLogAdapter(logger, {"path": path.name})
