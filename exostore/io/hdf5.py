"""
The HDF5 container underneath every Exodus file.

Dimensions are stored the netCDF-4 way: each dimension is a dataset registered as an HDF5 dimension
scale, and every variable attaches the scales of its axes. The one unlimited dimension,
``time_step``, grows together with every variable that has it as leading axis.
"""
import os
from typing import Dict, Iterable, Optional, Sequence, Tuple

import h5py
import numpy as np

from exostore.io.naming import DIM_TIME_STEP
from exostore.utilities.logging import devlog, mylog

NETCDF_DIM_LABEL = "This is a netCDF dimension but not a netCDF variable. %10d"


class ExodusContainer(h5py.File):
    r"""
    An :py:class:`h5py.File` with netCDF-style dimensions and variables.

    This class inherits from :py:class:`h5py.File`, so all methods of :py:class:`h5py.File` are
    available. Additionally, it creates and resizes dimensions, creates variables over named
    dimensions, and ensures that the file is properly closed when the object is deleted.
    """

    def __del__(self):
        """
        Ensure the HDF5 file is closed properly when the object is deleted.
        """
        try:
            self.close()
        except (ValueError, TypeError, AttributeError):
            # the low level id may already be torn down at interpreter exit
            pass

    def __str__(self) -> str:
        return f"<ExodusContainer '{self.filename}'>"

    def __repr__(self) -> str:
        return self.__str__()

    def discard(self):
        """
        Close the container and remove its file from disk.

        Used when the creation of a new file fails, so that no partially valid file remains.

        Raises
        ------
        OSError
            If there is an issue removing the file from the filesystem.
        """
        _filename = self.filename
        self.close()
        if os.path.exists(_filename):
            os.remove(_filename)
            mylog.debug("Discarded partially created file '%s'.", _filename)

    # @@ DIMENSIONS @@ #
    def create_dimension(self, name: str, size: Optional[int]) -> h5py.Dataset:
        """
        Create a dimension.

        Parameters
        ----------
        name : str
            The dimension name.
        size : int or None
            The length. ``None`` creates the unlimited dimension with length 0.
        """
        if size is None:
            ds = self.create_dataset(
                name, shape=(0,), maxshape=(None,), chunks=(1024,), dtype="f4"
            )
            size = 0
        else:
            ds = self.create_dataset(name, shape=(int(size),), dtype="f4")
        ds.make_scale(NETCDF_DIM_LABEL % size)
        return ds

    def has_dimension(self, name: str) -> bool:
        return name in self and self[name].attrs.get("CLASS") == b"DIMENSION_SCALE"

    def dimension_length(self, name: str) -> int:
        return int(self[name].shape[0])

    def optional_dimension_length(self, name: str, default: int = 0) -> int:
        """Length of dimension ``name``, or ``default`` when it does not exist."""
        if name not in self:
            return default
        return self.dimension_length(name)

    # @@ VARIABLES @@ #
    def create_variable(
        self,
        name: str,
        dims: Sequence[str],
        dtype,
        chunks: Optional[Tuple[int, ...]] = None,
        filters: Optional[Dict] = None,
        fillvalue=None,
        data=None,
    ) -> h5py.Dataset:
        """
        Create a variable over named dimensions.

        Parameters
        ----------
        name : str
            The variable name.
        dims : sequence of str
            Names of existing dimensions, one per axis. A leading ``time_step`` makes the variable
            resizable.
        dtype : numpy dtype-like
            The stored type.
        chunks : tuple of int, optional
            The chunk shape. Required for time dependent variables.
        filters : dict, optional
            Compression keywords for :py:meth:`h5py.Group.create_dataset`. Ignored for contiguous
            variables.
        fillvalue : optional
            The fill value for unwritten entries.
        data : array-like, optional
            Initial contents, which must match the shape of ``dims``.
        """
        shape = tuple(self.dimension_length(d) for d in dims)
        resizable = len(dims) > 0 and dims[0] == DIM_TIME_STEP

        kwargs = dict(shape=shape, dtype=dtype)
        if resizable:
            kwargs["maxshape"] = (None,) * len(shape)
        if chunks is not None:
            kwargs["chunks"] = tuple(chunks)
            if filters:
                kwargs.update(filters)
        if fillvalue is not None:
            kwargs["fillvalue"] = fillvalue

        ds = self.create_dataset(name, **kwargs)
        devlog.debug("Created %s%s chunks=%s.", name, shape, ds.chunks)

        for axis, dim in enumerate(dims):
            ds.dims[axis].attach_scale(self[dim])
            ds.dims[axis].label = dim

        if data is not None and np.size(data):
            ds[...] = np.asarray(data).reshape(shape)

        return ds

    def time_dependent_variables(self) -> Iterable[h5py.Dataset]:
        for key, obj in self.items():
            if (
                key != DIM_TIME_STEP
                and isinstance(obj, h5py.Dataset)
                and obj.ndim > 0
                and obj.maxshape[0] is None
            ):
                yield obj

    def resize_time(self, num_steps: int):
        """Grow the ``time_step`` dimension, and every variable over it, to ``num_steps``."""
        current = self.dimension_length(DIM_TIME_STEP)
        if num_steps <= current:
            return

        self[DIM_TIME_STEP].resize((num_steps,))
        for ds in self.time_dependent_variables():
            ds.resize(num_steps, axis=0)
        devlog.debug("Extended %s from %d to %d.", DIM_TIME_STEP, current, num_steps)
