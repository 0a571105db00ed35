"""
The three file handles: reader, writer and appender.

Each handle is a capability of the same underlying :py:class:`~exostore.file.base.ExodusFile`:

=================  ========  ========  ==========================================================
Handle             Reads     Writes    Opens
=================  ========  ========  ==========================================================
``ExodusReader``   yes       no        an existing, initialized file
``ExodusWriter``   no        yes       a new file (``put_init_params`` must be called first)
``ExodusAppender`` yes       yes       an existing, initialized file; committed structure is kept
=================  ========  ========  ==========================================================

Examples
--------
.. code-block:: python

    from exostore import ExodusWriter, ExodusReader, InitParams

    with ExodusWriter.create("mesh.exo") as exo:
        exo.put_init_params(InitParams(title="demo", num_dim=2, num_nodes=4))
        exo.put_coords([0, 1, 1, 0], [0, 0, 1, 1])

    with ExodusReader.open("mesh.exo") as exo:
        x, y = exo.coords()
"""
import os
from dataclasses import replace
from pathlib import Path
from typing import Optional, Union

from exostore.exceptions import (
    AlreadyExists,
    InvalidState,
    NotFound,
    UnderlyingIOError,
)
from exostore.file.base import ExodusFile
from exostore.file.blocks import BlockMixin
from exostore.file.maps import MapMixin
from exostore.file.sets import SetMixin
from exostore.file.variables import VariableMixin
from exostore.io import naming as nm
from exostore.io.hdf5 import ExodusContainer
from exostore.model.types import CreateMode, CreateOptions, EntityType
from exostore.performance import PerformanceConfig
from exostore.utilities.logging import mylog

PathLike = Union[str, os.PathLike]


class _ExodusHandle(VariableMixin, MapMixin, SetMixin, BlockMixin, ExodusFile):
    """Every operation of an Exodus file. Capabilities are set by the subclasses below."""


def _open_container(path: Path, mode: str, performance: PerformanceConfig) -> ExodusContainer:
    try:
        return ExodusContainer(path, mode, **performance.h5py_cache_kwargs())
    except FileExistsError:
        raise AlreadyExists(f"{path} already exists and the create mode is no-clobber.") from None
    except FileNotFoundError:
        raise NotFound(f"{path} does not exist.") from None
    except OSError as e:
        raise UnderlyingIOError(f"Failed to open {path} ({mode}): {e}") from e


def _require_existing(path: Path):
    if not path.exists():
        raise NotFound(f"{path} does not exist.")


class ExodusReader(_ExodusHandle):
    """
    Read-only handle on an existing file.

    Every write operation raises :py:class:`~exostore.exceptions.InvalidState`.
    """

    _CAN_READ = True

    @classmethod
    def open(
        cls, path: PathLike, performance: Optional[PerformanceConfig] = None
    ) -> "ExodusReader":
        """
        Open ``path`` for reading.

        Parameters
        ----------
        path : str or os.PathLike
            The file.
        performance : PerformanceConfig, optional
            Cache configuration. Defaults to the configured preset.

        Raises
        ------
        NotFound
            If ``path`` does not exist.
        UnderlyingIOError
            If the file cannot be opened as HDF5.
        """
        path = Path(path)
        _require_existing(path)
        performance = performance or PerformanceConfig.default()

        handle = _open_container(path, "r", performance)
        try:
            reader = cls(handle, performance)
        except Exception:
            handle.close()
            raise
        mylog.debug("Opened %s for reading.", path)
        return reader


class ExodusWriter(_ExodusHandle):
    """
    Write-only handle on a new file.

    The first call must be :py:meth:`~exostore.file.base.ExodusFile.put_init_params`; every other
    write before it raises :py:class:`~exostore.exceptions.InvalidState`. Every read operation
    raises :py:class:`~exostore.exceptions.InvalidState`.
    """

    _CAN_WRITE = True

    @classmethod
    def create(
        cls, path: PathLike, options: Optional[CreateOptions] = None, **overrides
    ) -> "ExodusWriter":
        """
        Create a new file.

        Parameters
        ----------
        path : str or os.PathLike
            The file to create.
        options : CreateOptions, optional
            Creation options. Defaults to :py:class:`~exostore.model.types.CreateOptions` with the
            configured defaults.
        **overrides
            Fields of :py:class:`~exostore.model.types.CreateOptions` replacing those of
            ``options``.

        Raises
        ------
        AlreadyExists
            If ``path`` exists and the mode is :py:attr:`CreateMode.NO_CLOBBER`.
        """
        path = Path(path)
        if options is None:
            options = CreateOptions(**overrides)
        elif overrides:
            options = replace(options, **overrides)

        if options.mode is CreateMode.NO_CLOBBER and path.exists():
            raise AlreadyExists(f"{path} already exists and the create mode is no-clobber.")
        performance = options.performance or PerformanceConfig.default()

        handle = _open_container(path, options.mode.value, performance)
        try:
            writer = cls(handle, performance, options)
        except Exception:
            handle.discard()
            raise
        mylog.debug("Created %s (%s).", path, options.mode.name)
        return writer


class ExodusAppender(_ExodusHandle):
    """
    Read-write handle on an existing, initialized file.

    The init parameters, coordinates and the connectivity of existing blocks are immutable. New
    blocks and sets may be added up to the reserved capacity, and variable values, names,
    properties, attributes, QA and info records may be written.
    """

    _CAN_READ = True
    _CAN_WRITE = True
    _STRUCTURE_FROZEN = True

    @classmethod
    def append(
        cls, path: PathLike, performance: Optional[PerformanceConfig] = None
    ) -> "ExodusAppender":
        """
        Open ``path`` for appending.

        Raises
        ------
        NotFound
            If ``path`` does not exist.
        InvalidState
            If the file was never initialized.
        """
        path = Path(path)
        _require_existing(path)
        performance = performance or PerformanceConfig.default()

        handle = _open_container(path, "r+", performance)
        if not handle.has_dimension(nm.DIM_NUM_DIM):
            handle.close()
            raise InvalidState(f"{path} is not an initialized Exodus file.")

        try:
            appender = cls(handle, performance)
            for entity_type in (
                EntityType.ELEM_BLOCK,
                EntityType.EDGE_BLOCK,
                EntityType.FACE_BLOCK,
            ):
                appender._frozen.update((entity_type, i) for i in appender._ids(entity_type))
        except Exception:
            handle.close()
            raise
        mylog.debug("Opened %s for appending.", path)
        return appender

    def put_coords(self, x, y=None, z=None):
        """Coordinates are committed with the file and cannot be rewritten."""
        self._require_open("put_coords")
        raise InvalidState(f"{self.path}: coordinates are immutable when appending.")

    def put_partial_coords(self, start, x, y=None, z=None):
        """Coordinates are committed with the file and cannot be rewritten, in whole or in part."""
        self._require_open("put_partial_coords")
        raise InvalidState(f"{self.path}: coordinates are immutable when appending.")
