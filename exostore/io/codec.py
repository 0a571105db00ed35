"""
Checked conversions between in-memory values and their stored representation.

Integers are checked against the range of the stored width and floats against the range of
``float32`` when the file stores single precision. Nothing is ever truncated silently: a value that
cannot be represented raises :py:class:`~exostore.exceptions.SchemaViolation`.

Text is stored the netCDF classic way, as fixed width arrays of single characters (``S1``) padded
with NUL bytes.
"""
from typing import Iterable, List, Sequence, Union

import numpy as np

from exostore.exceptions import SchemaViolation


# @@ NUMERIC CONVERSIONS @@ #
def to_int_storage(values, dtype: Union[str, np.dtype], label: str = "values") -> np.ndarray:
    """
    Convert ``values`` to a flat integer array of ``dtype``.

    Parameters
    ----------
    values : array-like
        Integral values. Floats are accepted only when every value is integral.
    dtype : str or numpy.dtype
        The stored integer width (``i4`` or ``i8``).
    label : str
        Used in error messages.

    Returns
    -------
    numpy.ndarray
        The converted, flattened array.

    Raises
    ------
    SchemaViolation
        If a value is not integral or does not fit in ``dtype``.
    """
    dtype = np.dtype(dtype)
    arr = np.asarray(values)

    if arr.size == 0:
        return np.zeros(0, dtype=dtype)

    info = np.iinfo(dtype)
    if arr.dtype.kind == "f":
        if not np.all(np.isfinite(arr)) or not np.all(arr == np.round(arr)):
            raise SchemaViolation(f"{label} must be integral.")
        # Checked while still floating point: both bounds are powers of two, exact in float64.
        if arr.min() < -(2.0 ** (info.bits - 1)) or arr.max() >= 2.0 ** (info.bits - 1):
            raise SchemaViolation(
                f"{label} range [{arr.min()}, {arr.max()}] does not fit the stored "
                f"{info.bits}-bit integers."
            )
        return arr.astype(dtype).ravel()
    if arr.dtype.kind == "b":
        arr = arr.astype(np.int64)
    elif arr.dtype.kind not in "iu":
        raise SchemaViolation(f"{label} must be integers, got dtype {arr.dtype}.")

    lo, hi = int(arr.min()), int(arr.max())
    if lo < info.min or hi > info.max:
        raise SchemaViolation(
            f"{label} range [{lo}, {hi}] does not fit the stored {info.bits}-bit integers."
        )

    return arr.astype(dtype).ravel()


def to_float_storage(values, dtype: Union[str, np.dtype], label: str = "values") -> np.ndarray:
    """
    Convert ``values`` to a flat float array of ``dtype``.

    Finite values beyond the range of ``dtype`` are rejected. Non-finite values (``nan``, ``inf``)
    pass through unchanged since they are representable at every width.
    """
    dtype = np.dtype(dtype)
    try:
        arr = np.asarray(values, dtype=np.float64).ravel()
    except (TypeError, ValueError) as e:
        raise SchemaViolation(f"{label} must be numeric: {e}") from None

    if dtype.itemsize < 8 and arr.size:
        finite = arr[np.isfinite(arr)]
        if finite.size and np.abs(finite).max() > np.finfo(dtype).max:
            raise SchemaViolation(
                f"{label} contains values beyond the range of {dtype.itemsize * 8}-bit floats."
            )

    return arr.astype(dtype)


def from_storage(dataset_values) -> np.ndarray:
    """Widen stored numbers to ``int64`` or ``float64`` for the caller."""
    arr = np.asarray(dataset_values)
    if arr.dtype.kind in "iu":
        return arr.astype(np.int64)
    if arr.dtype.kind == "f":
        return arr.astype(np.float64)
    return arr


# @@ TEXT @@ #
def encode_string(text: str, width: int, label: str = "string") -> np.ndarray:
    """
    Encode ``text`` as a NUL padded ``S1`` array of length ``width``.

    At least one NUL terminator is always kept, so ``text`` may hold at most ``width - 1``
    characters.
    """
    raw = text.encode("utf-8")
    if len(raw) > width - 1:
        raise SchemaViolation(
            f"{label} '{text}' is longer than the {width - 1} characters allowed."
        )
    out = np.zeros(width, dtype="S1")
    if raw:
        out[: len(raw)] = np.frombuffer(raw, dtype="S1")
    return out


def encode_strings(texts: Sequence[str], width: int, label: str = "string") -> np.ndarray:
    """Encode a sequence of strings as a ``(len(texts), width)`` ``S1`` array."""
    out = np.zeros((len(texts), width), dtype="S1")
    for i, text in enumerate(texts):
        out[i] = encode_string(text, width, label)
    return out


def decode_string(chars: Iterable) -> str:
    """Decode one row of characters, dropping the NUL padding and trailing blanks."""
    arr = np.asarray(chars)
    if arr.dtype.kind == "S":
        raw = b"".join(arr.ravel().tolist())
    elif arr.dtype.kind == "U":
        return "".join(arr.ravel().tolist()).rstrip("\x00 ")
    else:
        raw = arr.astype(np.uint8).tobytes()
    return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace").rstrip()


def decode_strings(chars) -> List[str]:
    """Decode every row of a 2D character array."""
    arr = np.asarray(chars)
    if arr.ndim < 2:
        return [decode_string(arr)] if arr.size else []
    return [decode_string(row) for row in arr]


def attribute_to_str(value) -> str:
    """Normalize an HDF5 string attribute (``bytes``, ``str`` or 0-d array) to ``str``."""
    if isinstance(value, np.ndarray):
        value = value.tolist()
        if isinstance(value, list):
            value = value[0] if value else ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
