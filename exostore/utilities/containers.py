"""
Generic container classes for use in exostore.
"""
from collections import OrderedDict
from typing import Any, Hashable, Optional

from exostore.utilities.general import get_deep_size


class LRUCache(dict):
    """
    A dictionary-based Least Recently Used (LRU) cache with a maximum size.

    The file handles keep their metadata (entity id lists, dimension lengths) in one of these so that
    repeated id lookups do not go back to the container. Items are evicted, least recently used
    first, once the total size exceeds the configured budget.

    Parameters
    ----------
    max_size : float, optional
        The maximum size the cache permits, in megabytes (MB). If `max_size` is not specified, the cache
        will have unlimited size and behave like a standard dictionary without automatic eviction.

    Attributes
    ----------
    max_size : float
        The maximum size of the cache in MB.
    _order : collections.OrderedDict
        Tracks the order of access for LRU eviction.
    """

    def __init__(self, max_size: Optional[float] = None):
        if max_size is None:
            max_size = float("inf")

        if max_size <= 0:
            raise ValueError("max_size must be greater than 0.")

        super().__init__()
        self.max_size = max_size
        self._order = OrderedDict()

    def _evict_if_necessary(self):
        while len(self._order) > 1 and self.cache_size > self.max_size:
            oldest_key = next(iter(self._order))
            self.__delitem__(oldest_key)

    @property
    def cache_size(self) -> float:
        """
        Compute the current size of the cache in MB.

        Returns
        -------
        float
            The current size of the cache in megabytes.
        """
        return get_deep_size(dict(self)) / (1024 * 1024)

    def __getitem__(self, key: Any) -> Any:
        if key in self._order:
            self._order.move_to_end(key)
            return super().__getitem__(key)
        raise KeyError(f"Key {key} not found in the cache.")

    def __setitem__(self, key: Any, value: Any) -> None:
        if key in self._order:
            self._order.move_to_end(key)
        else:
            self._order[key] = None

        super().__setitem__(key, value)
        self._evict_if_necessary()

    def __delitem__(self, key: Any) -> None:
        if key in self._order:
            del self._order[key]
        super().__delitem__(key)

    def get(self, key: Any, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def invalidate(self, key_prefix: Hashable) -> None:
        """
        Drop every entry whose key is ``key_prefix`` or a tuple starting with it.

        Parameters
        ----------
        key_prefix : Hashable
            The leading component of the keys to drop.
        """
        for key in list(self._order):
            if key == key_prefix or (
                isinstance(key, tuple) and len(key) and key[0] == key_prefix
            ):
                self.__delitem__(key)

    def clear(self) -> None:
        self._order.clear()
        super().clear()

    def __len__(self) -> int:
        return len(self._order)
