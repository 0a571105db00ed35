"""
Storage layer of exostore.

:py:mod:`exostore.io.naming` fixes the names of every dimension, variable and attribute in a file,
:py:mod:`exostore.io.codec` converts values to and from their stored widths, and
:py:mod:`exostore.io.hdf5` provides the HDF5 container with netCDF-style dimensions.
"""
