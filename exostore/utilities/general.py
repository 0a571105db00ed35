"""
General utilities for exostore.
"""
import sys

import numpy as np


def get_deep_size(obj, seen_ids=None):
    """
    Recursively calculate the total memory size of an object and its nested contents.

    Parameters
    ----------
    obj : Any
        The object to calculate the size of.
    seen_ids : set, optional
        Set of object IDs that have already been processed (to handle cycles).

    Returns
    -------
    int
        The total size of the object in bytes.

    Notes
    -----
    Numpy arrays are counted by their buffer size (``nbytes``) rather than by their header,
    which is what :py:func:`sys.getsizeof` reports for views.
    """
    if seen_ids is None:
        seen_ids = set()

    object_id = id(obj)
    if object_id in seen_ids:
        return 0

    seen_ids.add(object_id)

    if isinstance(obj, np.ndarray):
        return sys.getsizeof(obj) + (obj.nbytes if obj.base is not None else 0)

    size = sys.getsizeof(obj)

    if isinstance(obj, dict):
        size += sum(
            get_deep_size(k, seen_ids) + get_deep_size(v, seen_ids)
            for k, v in obj.items()
        )
    elif isinstance(obj, (list, tuple, set, frozenset)):
        size += sum(get_deep_size(i, seen_ids) for i in obj)

    return size


def next_prime(n: int) -> int:
    """
    Return the smallest prime greater than or equal to ``n``.

    Parameters
    ----------
    n : int
        The lower bound.

    Returns
    -------
    int
        The next prime.
    """
    if n <= 2:
        return 2

    candidate = n if n % 2 else n + 1
    while True:
        _is_prime = True
        _divisor = 3
        while _divisor * _divisor <= candidate:
            if candidate % _divisor == 0:
                _is_prime = False
                break
            _divisor += 2
        if _is_prime:
            return candidate
        candidate += 2
