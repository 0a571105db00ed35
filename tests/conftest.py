"""
Configuration for exostore unit testing structure.
"""
import os

import pytest
from _pytest.config.argparsing import Parser

from exostore import PerformanceConfig
from tests._utils import write_two_hex_mesh


# @@ PYTEST OPTIONS CONFIG @@ #
def pytest_addoption(parser: Parser) -> None:
    """
    Add custom command-line options to pytest for controlling test behavior.

    Args:
        parser (Parser): The pytest parser object.

    Returns:
        None
    """
    parser.addoption("--tmp", help="The temporary directory to use.", default=None)


# @@ SESSION FIXTURES @@ #
# These are the core fixtures which are present in every session of
# pytest.
@pytest.fixture()
def temp_dir(request) -> str:
    """Pull the temporary directory.

    If this is specified by the user, then it may be a non-temp directory which is not
    wiped after runtime. If not specified, then a temp directory is generated and wiped
    after runtime.
    """
    td = request.config.getoption("--tmp")

    if td is None:
        from tempfile import TemporaryDirectory

        td = TemporaryDirectory()

        yield td.name

        td.cleanup()
    else:
        td = os.path.abspath(td)
        os.makedirs(td, exist_ok=True)
        yield td


@pytest.fixture()
def exo_path(temp_dir, request) -> str:
    """A fresh file path, unique per test."""
    path = os.path.join(temp_dir, f"{request.node.name}.exo")
    if os.path.exists(path):
        os.remove(path)
    return path


@pytest.fixture()
def performance() -> PerformanceConfig:
    """A fixed configuration so results do not depend on the machine running the tests."""
    return PerformanceConfig.conservative()


# @@ MESH FIXTURES @@ #
@pytest.fixture()
def two_hex_mesh(exo_path, performance) -> str:
    """Path of a freshly written two-hex mesh."""
    write_two_hex_mesh(exo_path, performance)
    return exo_path
