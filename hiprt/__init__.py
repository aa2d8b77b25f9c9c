"""
hiprt - safe Python bindings for the HIP runtime

Typed wrappers around the HIP runtime C API providing error-code
translation into exceptions, ownership-tracked device memory, streams and
memory pools, and NumPy host transfers.

Example:
    >>> import hiprt
    >>> import numpy as np
    >>>
    >>> hiprt.initialize()
    >>> count = hiprt.get_device_count()
    >>> if count > 0:
    ...     hiprt.set_device(0)
    ...     with hiprt.allocate(4 * 1024) as ptr:
    ...         ptr.copy_from_host(np.arange(1024, dtype=np.float32))
    ...         result = ptr.copy_to_host(dtype=np.float32)
    ...         print(f"Result: {result[:5]}")
"""

import logging

from .version import __version__

# Errors
from .errors import ErrorKind, HipError, ReleasedResourceError, LibraryNotFoundError

# Runtime
from .runtime import RuntimeVersion, initialize, runtime_get_version, driver_get_version

# Devices
from .device import (
    ComputeCapability,
    Device,
    DeviceAttribute,
    DeviceP2PAttribute,
    get_device_count,
    get_device,
    set_device,
    synchronize,
    get_device_by_pci_bus_id,
    get_device_p2p_attribute,
)

# Memory
from .memory import (
    DeviceMallocFlag,
    MemoryCopyKind,
    MemoryPointer,
    allocate,
    allocate_with_flags,
    allocate_async,
    free,
    mem_get_info,
)

# Streams and pools
from .stream import Stream, StreamStatus
from .mempool import (
    MemAllocationHandleType,
    MemAllocationType,
    MemLocationType,
    MemPool,
    MemPoolProps,
    get_default_mem_pool,
)

# Platform utilities
from . import library
from .library import HipPlatform, is_amd_available, is_nvidia_available, get_default_platform

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Errors
    "ErrorKind",
    "HipError",
    "ReleasedResourceError",
    "LibraryNotFoundError",
    # Runtime
    "RuntimeVersion",
    "initialize",
    "runtime_get_version",
    "driver_get_version",
    # Devices
    "ComputeCapability",
    "Device",
    "DeviceAttribute",
    "DeviceP2PAttribute",
    "get_device_count",
    "get_device",
    "set_device",
    "synchronize",
    "get_device_by_pci_bus_id",
    "get_device_p2p_attribute",
    # Memory
    "DeviceMallocFlag",
    "MemoryCopyKind",
    "MemoryPointer",
    "allocate",
    "allocate_with_flags",
    "allocate_async",
    "free",
    "mem_get_info",
    # Streams and pools
    "Stream",
    "StreamStatus",
    "MemAllocationHandleType",
    "MemAllocationType",
    "MemLocationType",
    "MemPool",
    "MemPoolProps",
    "get_default_mem_pool",
    # Platform utilities
    "library",
    "HipPlatform",
    "is_amd_available",
    "is_nvidia_available",
    "get_default_platform",
    # Metadata
    "__version__",
]
