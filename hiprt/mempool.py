"""
Stream-ordered memory pools.
"""

import ctypes
import logging
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Optional

from . import _bindings
from .errors import check
from .memory import MemoryPointer
from .resource import NativeResource

logger = logging.getLogger(__name__)


class MemAllocationType(IntEnum):
    INVALID = 0
    PINNED = 1


class MemAllocationHandleType(IntEnum):
    NONE = 0
    POSIX_FILE_DESCRIPTOR = 1
    WIN32 = 2


class MemLocationType(IntEnum):
    INVALID = 0
    DEVICE = 1


@dataclass(frozen=True)
class MemPoolProps:
    """
    Properties for :meth:`MemPool.create`.

    Defaults describe a pinned, device-0 pool exportable as a POSIX file
    descriptor with the system default maximum size.

    Example:
        >>> props = MemPoolProps().with_location(MemLocationType.DEVICE, 1).with_max_size(1 << 30)
    """

    alloc_type: MemAllocationType = MemAllocationType.PINNED
    handle_types: MemAllocationHandleType = MemAllocationHandleType.POSIX_FILE_DESCRIPTOR
    location_type: MemLocationType = MemLocationType.DEVICE
    location_id: int = 0
    max_size: int = 0

    def with_alloc_type(self, alloc_type: MemAllocationType) -> "MemPoolProps":
        return replace(self, alloc_type=alloc_type)

    def with_handle_types(self, handle_types: MemAllocationHandleType) -> "MemPoolProps":
        return replace(self, handle_types=handle_types)

    def with_location(self, location_type: MemLocationType, location_id: int) -> "MemPoolProps":
        return replace(self, location_type=location_type, location_id=location_id)

    def with_max_size(self, max_size: int) -> "MemPoolProps":
        if max_size < 0:
            raise ValueError(f"max_size must be non-negative, got {max_size}")
        return replace(self, max_size=max_size)

    def to_native(self) -> _bindings.hipMemPoolProps:
        """Build the native structure; ctypes zero-fills the reserved bytes."""
        props = _bindings.hipMemPoolProps()
        props.allocType = int(self.alloc_type)
        props.handleTypes = int(self.handle_types)
        props.location.type = int(self.location_type)
        props.location.id = self.location_id
        props.win32SecurityAttributes = None
        props.maxSize = self.max_size
        return props


class MemPool(NativeResource):
    """
    Owning wrapper around a ``hipMemPool_t``.

    Create with :meth:`create`, or borrow a device's default pool with
    :meth:`default_for`. Borrowed pools are never destroyed by this
    wrapper.
    """

    _kind = "memory pool"

    def __init__(self, handle: ctypes.c_void_p, props: Optional[MemPoolProps], owned: bool):
        super().__init__(handle, owned=owned)
        self._props = props

    @classmethod
    def create(cls, props: Optional[MemPoolProps] = None) -> "MemPool":
        """
        Create a new memory pool.

        Args:
            props: Pool properties; defaults to ``MemPoolProps()``

        Returns:
            An owning :class:`MemPool`

        Raises:
            HipError: If the runtime rejects the properties
        """
        props = props or MemPoolProps()
        native_props = props.to_native()
        handle = ctypes.c_void_p()
        code = _bindings.get_library().hipMemPoolCreate(ctypes.byref(handle), ctypes.byref(native_props))
        check(code)
        pool = cls(handle, props, owned=True)
        logger.debug("Created memory pool %s on device %d", pool._describe_handle(), props.location_id)
        return pool

    @classmethod
    def default_for(cls, device_id: int) -> "MemPool":
        """Borrow the runtime-owned default pool of a device."""
        handle = ctypes.c_void_p()
        code = _bindings.get_library().hipDeviceGetDefaultMemPool(ctypes.byref(handle), device_id)
        check(code)
        return cls(handle, None, owned=False)

    @property
    def props(self) -> Optional[MemPoolProps]:
        """Creation properties; None for a borrowed default pool."""
        return self._props

    @property
    def owned(self) -> bool:
        return self._owned

    @property
    def is_null(self) -> bool:
        return self._handle.value is None

    def allocate_async(self, size: int, stream) -> MemoryPointer:
        """
        Allocate from this pool in stream order.

        Args:
            size: Size in bytes
            stream: :class:`~hiprt.stream.Stream` the allocation is ordered on

        Returns:
            An owning :class:`MemoryPointer`
        """
        self._check_active()
        return MemoryPointer._allocate(
            "hipMallocFromPoolAsync", size, self._handle, stream.handle
        )

    def trim_to(self, min_bytes_to_keep: int) -> None:
        """Return unused pool memory to the OS, keeping at least ``min_bytes_to_keep``."""
        self._check_active()
        if min_bytes_to_keep < 0:
            raise ValueError(f"min_bytes_to_keep must be non-negative, got {min_bytes_to_keep}")
        check(_bindings.get_library().hipMemPoolTrimTo(self._handle, min_bytes_to_keep))

    def destroy(self) -> None:
        """Destroy the pool (alias for :meth:`release`)."""
        self.release()

    def _release_native(self) -> None:
        check(_bindings.get_library().hipMemPoolDestroy(self._handle))


def get_default_mem_pool(device) -> MemPool:
    """
    Borrow the default memory pool of a device.

    Args:
        device: :class:`~hiprt.device.Device` or device ordinal

    Raises:
        TypeError: If ``device`` is neither a Device nor an int
    """
    from .device import _device_id

    device_id = _device_id(device)
    return MemPool.default_for(device_id)
