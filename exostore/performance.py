"""
I/O performance tuning: chunk cache and chunk geometry.

The configuration is resolved once, when a file is created or opened, and handed to the container:

- :py:class:`CacheConfig` becomes the ``rdcc_*`` keywords of :py:class:`h5py.File`.
- :py:class:`ChunkConfig` becomes the ``chunks=`` shape of every bulk dataset when it is created. Chunk
  geometry cannot change once a dataset exists.

The execution environment is detected by :py:meth:`NodeType.detect`, which reads only the job-scheduler
markers of the environment it is given. It is a plain function of its input; callers that need a
stable answer should keep the returned value.

Examples
--------
.. code-block:: python

    from exostore.performance import PerformanceConfig

    config = PerformanceConfig.conservative().override(cache_mb=32, node_chunk_size=20_000)
    print(config.summary())
"""
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping, Optional, Sequence, Tuple

from exostore.exceptions import SchemaViolation
from exostore.utilities.config import exostore_params
from exostore.utilities.general import next_prime
from exostore.utilities.logging import devlog

_MB = 1024 * 1024

# @@ ENVIRONMENT MARKERS @@ #
# Any of these set means we are inside a batch job.
COMPUTE_MARKERS = ("SLURM_JOB_ID", "FLUX_URI", "PBS_JOBID", "LSB_JOBID")
# Any of these set (outside a job) means a scheduler is installed: a login node.
LOGIN_MARKERS = ("SLURM_CONF", "FLUX_EXEC_PATH", "PBS_SERVER", "LSF_ENVDIR")


class NodeType(Enum):
    """Classification of the machine the process runs on."""

    LOGIN = "login"
    COMPUTE = "compute"
    UNKNOWN = "unknown"

    @classmethod
    def detect(cls, environ: Optional[Mapping[str, str]] = None) -> "NodeType":
        """
        Classify the execution environment from its job-scheduler markers.

        Parameters
        ----------
        environ : Mapping[str, str], optional
            The environment to inspect. Defaults to :py:data:`os.environ`.

        Returns
        -------
        NodeType
            ``COMPUTE`` inside a batch job, ``LOGIN`` where a scheduler is configured but no job is
            running, ``UNKNOWN`` otherwise.
        """
        environ = os.environ if environ is None else environ

        if any(marker in environ for marker in COMPUTE_MARKERS):
            return cls.COMPUTE
        if any(marker in environ for marker in LOGIN_MARKERS):
            return cls.LOGIN
        return cls.UNKNOWN

    @property
    def default_cache_size(self) -> int:
        return {NodeType.LOGIN: 4 * _MB, NodeType.COMPUTE: 128 * _MB}.get(self, 16 * _MB)

    @property
    def default_chunk_nodes(self) -> int:
        return {NodeType.LOGIN: 1_000, NodeType.COMPUTE: 10_000}.get(self, 5_000)

    @property
    def default_chunk_elements(self) -> int:
        return {NodeType.LOGIN: 1_000, NodeType.COMPUTE: 10_000}.get(self, 5_000)


def _check_non_negative(value, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchemaViolation(f"{label} must be an integer, got {value!r}.")
    if value < 0:
        raise SchemaViolation(f"{label} must be non-negative, got {value}.")
    return value


@dataclass(frozen=True)
class CacheConfig:
    """
    Chunk cache parameters.

    Parameters
    ----------
    cache_size : int
        Cache budget in bytes.
    num_slots : int
        Number of hash slots. ``0`` selects :py:meth:`auto_slots` at open time.
    preemption : float
        Eviction weight in ``[0, 1]``. ``0`` keeps partially written chunks longest, ``1`` evicts
        fully read or written chunks first.
    """

    cache_size: int
    num_slots: int = 0
    preemption: float = field(
        default_factory=lambda: float(exostore_params["performance.preemption"])
    )

    def __post_init__(self):
        _check_non_negative(self.cache_size, "cache_size")
        _check_non_negative(self.num_slots, "num_slots")
        try:
            preemption = float(self.preemption)
        except (TypeError, ValueError):
            raise SchemaViolation(f"preemption must be a number, got {self.preemption!r}.") from None
        if not 0.0 <= preemption <= 1.0:
            raise SchemaViolation(f"preemption must be in [0, 1], got {preemption}.")
        object.__setattr__(self, "preemption", preemption)

    def auto_slots(self, typical_chunk_bytes: int) -> int:
        """
        Slot count for a cache holding chunks of ``typical_chunk_bytes``.

        HDF5 recommends a prime about 100 times the number of chunks that fit in the cache.
        """
        if typical_chunk_bytes <= 0:
            return 521
        return next_prime((self.cache_size // typical_chunk_bytes) * 100)

    def resolved_slots(self, typical_chunk_bytes: int) -> int:
        return self.num_slots if self.num_slots > 0 else self.auto_slots(typical_chunk_bytes)


@dataclass(frozen=True)
class ChunkConfig:
    """
    Chunk extents along the node, element and time axes.

    ``time_chunk_size`` of ``0`` stores one time step per chunk.
    """

    node_chunk_size: int
    element_chunk_size: int
    time_chunk_size: int = 0

    def __post_init__(self):
        _check_non_negative(self.node_chunk_size, "node_chunk_size")
        _check_non_negative(self.element_chunk_size, "element_chunk_size")
        _check_non_negative(self.time_chunk_size, "time_chunk_size")

    @staticmethod
    def calculate_optimal_chunk(total_size: int, target_chunk_bytes: int) -> int:
        """
        Chunk extent for ``total_size`` nodes so that one chunk of xyz doubles is about
        ``target_chunk_bytes``, kept within ``[1000, 100000]`` and never above ``total_size``.
        """
        bytes_per_node = 8 * 3
        chunk = min(max(target_chunk_bytes // bytes_per_node, 1_000), 100_000)
        return min(chunk, total_size)

    def extent_for(self, axis_kind: str) -> Optional[int]:
        """Configured chunk extent for an axis of kind ``node``, ``element`` or ``time``."""
        if axis_kind == "node":
            return self.node_chunk_size
        if axis_kind == "element":
            return self.element_chunk_size
        if axis_kind == "time":
            return max(1, self.time_chunk_size)
        return None

    def chunk_shape(
        self,
        shape: Sequence[int],
        axis_kinds: Sequence[Optional[str]],
        resizable: bool = False,
    ) -> Optional[Tuple[int, ...]]:
        """
        Resolve the chunk shape of a dataset.

        Parameters
        ----------
        shape : sequence of int
            The dataset shape at creation.
        axis_kinds : sequence of str or None
            Per axis, ``node``, ``element``, ``time`` or ``None`` (one chunk spans the axis).
        resizable : bool
            Whether the dataset has an unlimited axis. Resizable datasets must be chunked.

        Returns
        -------
        tuple of int or None
            The chunk shape, or ``None`` for contiguous storage. Configured extents larger than the
            axis are clamped to the axis.
        """
        if not resizable and (len(shape) == 0 or 0 in shape):
            return None

        chunks = []
        for extent, kind in zip(shape, axis_kinds):
            configured = self.extent_for(kind)
            if kind == "time":
                chunks.append(configured)
            elif configured is None or configured == 0:
                chunks.append(max(1, extent))
            else:
                chunks.append(max(1, min(configured, extent)))

        return tuple(chunks)


@dataclass(frozen=True)
class PerformanceConfig:
    """
    The complete I/O tuning of a file handle.

    Build one from a preset (:py:meth:`auto`, :py:meth:`conservative`, :py:meth:`aggressive`,
    :py:meth:`for_node_type`) and adjust individual fields with :py:meth:`override`.
    """

    node_type: NodeType
    cache: CacheConfig
    chunks: ChunkConfig

    @classmethod
    def for_node_type(cls, node_type: NodeType) -> "PerformanceConfig":
        node_type = NodeType(node_type)
        return cls(
            node_type=node_type,
            cache=CacheConfig(node_type.default_cache_size),
            chunks=ChunkConfig(
                node_type.default_chunk_nodes, node_type.default_chunk_elements, 0
            ),
        )

    @classmethod
    def auto(cls, environ: Optional[Mapping[str, str]] = None) -> "PerformanceConfig":
        """Defaults for the node type detected from ``environ``."""
        return cls.for_node_type(NodeType.detect(environ))

    @classmethod
    def conservative(cls) -> "PerformanceConfig":
        """Login node defaults: small cache, small chunks."""
        return cls.for_node_type(NodeType.LOGIN)

    @classmethod
    def aggressive(cls) -> "PerformanceConfig":
        """Compute node defaults: large cache, large chunks."""
        return cls.for_node_type(NodeType.COMPUTE)

    @classmethod
    def preset(cls, name: str, environ: Optional[Mapping[str, str]] = None):
        """Build a named preset (``auto``, ``conservative`` or ``aggressive``)."""
        name = str(name).lower()
        if name == "auto":
            return cls.auto(environ)
        if name == "conservative":
            return cls.conservative()
        if name == "aggressive":
            return cls.aggressive()
        raise SchemaViolation(f"Unknown performance preset '{name}'.")

    @classmethod
    def default(cls) -> "PerformanceConfig":
        """The preset named in the configuration file."""
        return cls.preset(exostore_params["performance.preset"])

    def override(self, **fields) -> "PerformanceConfig":
        """
        Return a copy with individual fields replaced.

        Accepted keywords are ``cache_size``, ``cache_mb``, ``num_slots``, ``preemption``,
        ``node_chunk_size``, ``element_chunk_size`` and ``time_chunk_size``. Every value is validated
        before the copy is returned.
        """
        cache_fields, chunk_fields = {}, {}

        for key, value in fields.items():
            if key == "cache_mb":
                cache_fields["cache_size"] = _check_non_negative(value, "cache_mb") * _MB
            elif key in ("cache_size", "num_slots", "preemption"):
                cache_fields[key] = value
            elif key in ("node_chunk_size", "element_chunk_size", "time_chunk_size"):
                chunk_fields[key] = value
            else:
                raise SchemaViolation(f"Unknown performance field '{key}'.")

        return replace(
            self,
            cache=replace(self.cache, **cache_fields),
            chunks=replace(self.chunks, **chunk_fields),
        )

    def h5py_cache_kwargs(self, typical_chunk_bytes: Optional[int] = None) -> dict:
        """Keyword arguments of :py:class:`h5py.File` realizing the cache configuration."""
        if typical_chunk_bytes is None:
            typical_chunk_bytes = int(exostore_params["performance.target_chunk_bytes"])

        slots = self.cache.resolved_slots(typical_chunk_bytes)
        devlog.debug(
            "Chunk cache: %d bytes, %d slots, w0=%.2f.",
            self.cache.cache_size,
            slots,
            self.cache.preemption,
        )
        return dict(
            rdcc_nbytes=self.cache.cache_size,
            rdcc_nslots=slots,
            rdcc_w0=self.cache.preemption,
        )

    def summary(self) -> str:
        slots = self.cache.num_slots if self.cache.num_slots else "auto"
        return (
            "Performance Config:\n"
            f" - Node Type: {self.node_type.value}\n"
            f" - Cache Size: {self.cache.cache_size / _MB:g} MB\n"
            f" - Cache Slots: {slots}\n"
            f" - Cache Preemption: {self.cache.preemption:.2f}\n"
            f" - Node Chunk Size: {self.chunks.node_chunk_size} nodes\n"
            f" - Element Chunk Size: {self.chunks.element_chunk_size} elements\n"
            f" - Time Chunk Size: {self.chunks.time_chunk_size} steps"
        )
