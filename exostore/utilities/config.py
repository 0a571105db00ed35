"""
Configuration management for exostore.

The configuration lives in ``exostore/bin/config.yaml`` and is loaded once at import time into
:py:attr:`exostore_params`. Values are looked up with dotted keys, so that

.. code-block:: python

    from exostore.utilities.config import exostore_params

    exostore_params["logging.mylog.level"]

returns the level of the main logger.
"""
import os
from pathlib import Path
from typing import Any, Union

from ruamel.yaml import YAML

# @@ LOCATING THE CONFIGURATION @@ #
# The configuration is shipped with the package in the /bin directory.
config_directory: str = os.path.join(Path(__file__).parents[1], "bin")
""" str: The directory holding the package level configuration files."""

_yaml = YAML(typ="safe")


class YAMLConfig(dict):
    """
    Dictionary view of a YAML configuration file with dotted key access.

    Parameters
    ----------
    path : str or Path
        The path to the YAML file to load.

    Notes
    -----
    Nested keys may be reached either by chaining item access (``config["a"]["b"]``) or by a
    single dotted key (``config["a.b"]``). Missing keys raise :py:class:`KeyError` naming the
    full dotted path.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

        if not self.path.exists():
            raise FileNotFoundError(f"Configuration file {self.path} does not exist.")

        with open(self.path, "r", encoding="utf-8") as fh:
            data = _yaml.load(fh) or {}

        super().__init__(data)

    def __getitem__(self, key: str) -> Any:
        if not isinstance(key, str) or "." not in key:
            return super().__getitem__(key)

        _value = self
        for _part in key.split("."):
            try:
                _value = dict.__getitem__(_value, _part)
            except (KeyError, TypeError):
                raise KeyError(f"Configuration has no key '{key}'.") from None

        return _value

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def __str__(self):
        return f"<YAMLConfig: {self.path}>"

    def __repr__(self):
        return self.__str__()


exostore_params: YAMLConfig = YAMLConfig(os.path.join(config_directory, "config.yaml"))
""":py:class:`YAMLConfig`: The global configuration for exostore."""
