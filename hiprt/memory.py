"""
Device memory allocation and transfers.

A :class:`MemoryPointer` owns one device allocation. It is only handed
out by the allocation functions in this module (or a memory pool), and
it frees the allocation exactly once.

Example:
    >>> import numpy as np
    >>> import hiprt
    >>>
    >>> with hiprt.allocate(4096) as ptr:
    ...     ptr.copy_from_host(np.arange(1024, dtype=np.float32))
    ...     result = ptr.copy_to_host(dtype=np.float32)
"""

import ctypes
import logging
from enum import IntEnum, IntFlag
from typing import Any, Optional, Tuple

import numpy as np

from . import _bindings
from .errors import ErrorKind, HipError, check
from .resource import NativeResource, native_pointer

logger = logging.getLogger(__name__)


class MemoryCopyKind(IntEnum):
    """Direction of a copy (``hipMemcpyKind``)."""

    HOST_TO_HOST = 0
    HOST_TO_DEVICE = 1
    DEVICE_TO_HOST = 2
    DEVICE_TO_DEVICE = 3
    DEFAULT = 4
    DEVICE_TO_DEVICE_NO_CU = 1024


class DeviceMallocFlag(IntFlag):
    """Flags for :func:`allocate_with_flags` (``hipExtMallocWithFlags``)."""

    DEFAULT = 0x0
    FINEGRAINED = 0x1
    SIGNAL_MEMORY = 0x2
    UNCACHED = 0x3
    CONTIGUOUS = 0x4


def _validate_size(size: Any) -> int:
    if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
        raise TypeError(f"Size must be an integer, got {type(size).__name__}")
    size = int(size)
    if size < 0:
        raise ValueError(f"Size must be non-negative, got {size}")
    return size


class MemoryPointer(NativeResource):
    """
    Owning wrapper around a device allocation.

    Attributes:
        size: Allocation size in bytes
    """

    _kind = "device allocation"

    def __init__(self, handle: ctypes.c_void_p, size: int):
        super().__init__(handle)
        self.size = size

    @classmethod
    def _allocate(cls, entry_point: str, size: int, *extra: Any) -> "MemoryPointer":
        """
        Run one of the ``(void** ptr, size_t size, ...)`` allocators.

        Zero-byte requests go to the runtime unchanged; whatever it
        answers is what the caller gets.
        """
        size = _validate_size(size)
        handle = ctypes.c_void_p()
        allocator = getattr(_bindings.get_library(), entry_point)
        check(allocator(ctypes.byref(handle), size, *extra))
        pointer = cls(handle, size)
        logger.debug("%s allocated %d bytes at %s", entry_point, size, pointer._describe_handle())
        return pointer

    @property
    def address(self) -> Optional[int]:
        """Device address, or None for a null allocation."""
        self._check_active()
        return native_pointer(self._handle)

    @property
    def nbytes(self) -> int:
        return self.size

    def __len__(self) -> int:
        return self.size

    def _check_fits(self, nbytes: int, what: str) -> None:
        if nbytes > self.size:
            raise HipError.from_kind(
                ErrorKind.INVALID_VALUE, f"{what} of {nbytes} bytes exceeds {self.size}-byte allocation"
            )

    def copy_to(self, destination: "MemoryPointer", kind: MemoryCopyKind = MemoryCopyKind.DEVICE_TO_DEVICE) -> None:
        """
        Copy this whole allocation into ``destination``.

        Args:
            destination: Allocation at least as large as this one
            kind: Copy direction

        Raises:
            HipError: ``INVALID_VALUE`` for a null pointer or a destination
                that is too small (checked before any native call)
        """
        if self.address is None or destination.address is None:
            raise HipError.from_kind(ErrorKind.INVALID_VALUE, "Cannot copy to or from a null device pointer")
        destination._check_fits(self.size, "Copy")

        code = _bindings.get_library().hipMemcpy(destination._handle, self._handle, self.size, int(kind))
        check(code)

    def copy_from_host(self, array: np.ndarray) -> None:
        """
        Copy a host NumPy array into the start of this allocation.

        Args:
            array: Any array; it is made C-contiguous first if needed

        Raises:
            HipError: ``INVALID_VALUE`` if the array does not fit
        """
        self._check_active()
        host = np.ascontiguousarray(array)
        self._check_fits(host.nbytes, "Host array")
        if host.nbytes == 0:
            return

        code = _bindings.get_library().hipMemcpy(
            self._handle, host.ctypes.data_as(ctypes.c_void_p), host.nbytes, int(MemoryCopyKind.HOST_TO_DEVICE)
        )
        check(code)

    def copy_to_host(self, dtype: Any = np.uint8, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Copy device contents back to the host.

        Args:
            dtype: Element type of the returned array when ``out`` is omitted
            out: Optional C-contiguous, writable destination array

        Returns:
            The filled host array

        Raises:
            ValueError: If ``out`` is not C-contiguous and writable, or the
                allocation size is not a multiple of the dtype's item size
            HipError: ``INVALID_VALUE`` if ``out`` is larger than the allocation
        """
        self._check_active()
        if out is None:
            dtype = np.dtype(dtype)
            if self.size % dtype.itemsize:
                raise ValueError(f"{self.size}-byte allocation is not a whole number of {dtype} elements")
            out = np.empty(self.size // dtype.itemsize, dtype=dtype)
        else:
            if not out.flags.c_contiguous or not out.flags.writeable:
                raise ValueError("out must be a C-contiguous, writable array")
            self._check_fits(out.nbytes, "Output array")

        if out.nbytes == 0:
            return out

        code = _bindings.get_library().hipMemcpy(
            out.ctypes.data_as(ctypes.c_void_p), self._handle, out.nbytes, int(MemoryCopyKind.DEVICE_TO_HOST)
        )
        check(code)
        return out

    def memset(self, value: int, size: Optional[int] = None) -> None:
        """
        Fill the first ``size`` bytes with ``value``.

        Args:
            value: Byte value, 0-255
            size: Number of bytes; defaults to the whole allocation

        Raises:
            TypeError: If ``size`` is not an integer
            ValueError: If ``value`` is not a byte or ``size`` is negative
            HipError: ``INVALID_VALUE`` if ``size`` exceeds the allocation
        """
        self._check_active()
        if not 0 <= value <= 0xFF:
            raise ValueError(f"memset value must be a byte, got {value}")
        size = self.size if size is None else _validate_size(size)
        self._check_fits(size, "memset")
        if size == 0:
            return

        check(_bindings.get_library().hipMemset(self._handle, value, size))

    def free(self) -> None:
        """
        Free the allocation.

        Raises:
            ReleasedResourceError: If it was already freed
            HipError: If the runtime reports a failure
        """
        self.release()

    def _release_native(self) -> None:
        check(_bindings.get_library().hipFree(self._handle))

    def __repr__(self) -> str:
        state = "released" if self._freed else "active"
        return f"<MemoryPointer {self._describe_handle()} size={self.size} {state}>"


def allocate(size: int) -> MemoryPointer:
    """
    Allocate device memory on the current device.

    Args:
        size: Size in bytes. Zero is passed to the runtime as is.

    Returns:
        An owning :class:`MemoryPointer`

    Raises:
        HipError: ``OUT_OF_MEMORY`` or any other runtime failure
    """
    return MemoryPointer._allocate("hipMalloc", size)


def allocate_with_flags(size: int, flags: DeviceMallocFlag = DeviceMallocFlag.DEFAULT) -> MemoryPointer:
    """Allocate device memory with AMD extended allocation flags."""
    return MemoryPointer._allocate("hipExtMallocWithFlags", size, int(flags))


def allocate_async(size: int, stream) -> MemoryPointer:
    """
    Allocate device memory ordered on ``stream``.

    Args:
        size: Size in bytes
        stream: :class:`~hiprt.stream.Stream` to order the allocation on
    """
    return MemoryPointer._allocate("hipMallocAsync", size, stream.handle)


def free(pointer: MemoryPointer) -> None:
    """
    Free a device allocation.

    Raises:
        ReleasedResourceError: On a second free of the same pointer
    """
    if not isinstance(pointer, MemoryPointer):
        raise TypeError(f"Expected MemoryPointer, got {type(pointer).__name__}")
    pointer.free()


def mem_get_info() -> Tuple[int, int]:
    """
    Free and total memory of the current device.

    Returns:
        ``(free_bytes, total_bytes)``
    """
    free_bytes = ctypes.c_size_t(0)
    total_bytes = ctypes.c_size_t(0)
    code = _bindings.get_library().hipMemGetInfo(ctypes.byref(free_bytes), ctypes.byref(total_bytes))
    check(code)
    return free_bytes.value, total_bytes.value
