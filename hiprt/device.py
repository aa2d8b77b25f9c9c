"""
Device enumeration, selection and property queries.

The runtime owns which device is current for the calling host thread.
Nothing here caches it: :func:`get_device` asks the runtime every time.
"""

import ctypes
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import NamedTuple, Union
from uuid import UUID

from . import _bindings
from .errors import ErrorKind, HipError, check
from .mempool import MemPool

logger = logging.getLogger(__name__)


class ComputeCapability(NamedTuple):
    major: int
    minor: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


class DeviceP2PAttribute(IntEnum):
    """Peer-to-peer attributes (``hipDeviceP2PAttr``)."""

    PERFORMANCE_RANK = 0
    ACCESS_SUPPORTED = 1
    NATIVE_ATOMIC_SUPPORTED = 2
    HIP_ARRAY_ACCESS_SUPPORTED = 3


class DeviceAttribute(IntEnum):
    """Commonly queried device attributes (``hipDeviceAttribute_t``)."""

    ECC_ENABLED = 0
    ASYNC_ENGINE_COUNT = 2
    CAN_MAP_HOST_MEMORY = 3
    CLOCK_RATE = 5
    COMPUTE_MODE = 6
    CONCURRENT_KERNELS = 8
    COOPERATIVE_LAUNCH = 10
    INTEGRATED = 16
    L2_CACHE_SIZE = 19
    COMPUTE_CAPABILITY_MAJOR = 23
    MANAGED_MEMORY = 24
    MAX_BLOCK_DIM_X = 26
    MAX_BLOCK_DIM_Y = 27
    MAX_BLOCK_DIM_Z = 28
    MAX_GRID_DIM_X = 29
    MAX_GRID_DIM_Y = 30
    MAX_GRID_DIM_Z = 31
    MAX_THREADS_PER_BLOCK = 56
    MAX_THREADS_PER_MULTIPROCESSOR = 57
    MEMORY_BUS_WIDTH = 59
    MEMORY_CLOCK_RATE = 60
    COMPUTE_CAPABILITY_MINOR = 61
    MULTIPROCESSOR_COUNT = 63


@dataclass(frozen=True)
class Device:
    """
    A HIP device ordinal.

    Devices are owned by the runtime; this object only carries the id.
    Range checking happens in :func:`set_device`; the query methods
    forward the id and let the runtime reject it.
    """

    id: int

    def name(self) -> str:
        """Marketing name of the device, e.g. ``AMD Instinct MI300X``."""
        buffer = ctypes.create_string_buffer(_bindings.DEVICE_NAME_LENGTH)
        code = _bindings.get_library().hipDeviceGetName(buffer, len(buffer), self.id)
        check(code)
        return buffer.value.decode("utf-8", errors="replace")

    def total_mem(self) -> int:
        """Total device memory in bytes."""
        size = ctypes.c_size_t(0)
        code = _bindings.get_library().hipDeviceTotalMem(ctypes.byref(size), self.id)
        check(code)
        return size.value

    def compute_capability(self) -> ComputeCapability:
        major = ctypes.c_int(-1)
        minor = ctypes.c_int(-1)
        code = _bindings.get_library().hipDeviceComputeCapability(
            ctypes.byref(major), ctypes.byref(minor), self.id
        )
        check(code)
        return ComputeCapability(major.value, minor.value)

    def uuid(self) -> UUID:
        """
        Unique identifier of the device.

        Returns:
            The 16 raw UUID bytes as a :class:`uuid.UUID`
        """
        raw = _bindings.hipUUID()
        code = _bindings.get_library().hipDeviceGetUuid(ctypes.byref(raw), self.id)
        check(code)
        # bytes() of the struct keeps embedded NULs that field access would drop
        return UUID(bytes=bytes(raw))

    def pci_bus_id(self) -> str:
        """PCI bus id string in ``domain:bus:device.function`` form."""
        buffer = ctypes.create_string_buffer(_bindings.PCI_BUS_ID_LENGTH)
        code = _bindings.get_library().hipDeviceGetPCIBusId(buffer, len(buffer), self.id)
        check(code)
        return buffer.value.decode("ascii")

    def attribute(self, attr: Union[DeviceAttribute, int]) -> int:
        """
        Query an integer device attribute.

        Args:
            attr: A :class:`DeviceAttribute` or a raw ``hipDeviceAttribute_t``

        Returns:
            Attribute value
        """
        value = ctypes.c_int(0)
        code = _bindings.get_library().hipDeviceGetAttribute(ctypes.byref(value), int(attr), self.id)
        check(code)
        return value.value

    def get_default_mem_pool(self) -> MemPool:
        """
        Default memory pool of this device.

        The pool belongs to the runtime: releasing the returned wrapper
        retires it without destroying the pool.
        """
        return MemPool.default_for(self.id)


DeviceLike = Union[Device, int]


def _device_id(device: DeviceLike) -> int:
    if isinstance(device, Device):
        return device.id
    if isinstance(device, bool) or not isinstance(device, int):
        raise TypeError(f"Expected Device or int, got {type(device).__name__}")
    return device


def get_device_count() -> int:
    """
    Number of devices visible to the runtime.

    Returns:
        Device count; 0 is a valid answer on a machine without GPUs
    """
    count = ctypes.c_int(0)
    code = _bindings.get_library().hipGetDeviceCount(ctypes.byref(count))
    check(code)
    return count.value


def get_device() -> Device:
    """Device currently active for the calling host thread."""
    device_id = ctypes.c_int(-1)
    code = _bindings.get_library().hipGetDevice(ctypes.byref(device_id))
    check(code)
    return Device(device_id.value)


def set_device(device: DeviceLike) -> Device:
    """
    Make a device current for the calling host thread.

    The id is range checked against :func:`get_device_count` first, and
    an out-of-range id never reaches ``hipSetDevice``.

    Args:
        device: Device or device ordinal

    Returns:
        The now-active :class:`Device`

    Raises:
        HipError: ``INVALID_DEVICE`` when out of range, or any failure
            the runtime reports
    """
    device_id = _device_id(device)
    count = get_device_count()
    if not 0 <= device_id < count:
        raise HipError.from_kind(
            ErrorKind.INVALID_DEVICE,
            f"Device {device_id} out of range: {count} device(s) visible",
        )

    check(_bindings.get_library().hipSetDevice(device_id))
    logger.debug("Active device set to %d", device_id)
    return Device(device_id)


def synchronize() -> None:
    """Block until all work on the current device has completed."""
    check(_bindings.get_library().hipDeviceSynchronize())


def get_device_by_pci_bus_id(pci_bus_id: str) -> Device:
    """
    Look up a device by its PCI bus id string.

    Raises:
        HipError: If no device matches
    """
    device_id = ctypes.c_int(-1)
    code = _bindings.get_library().hipDeviceGetByPCIBusId(
        ctypes.byref(device_id), pci_bus_id.encode("ascii")
    )
    check(code)
    return Device(device_id.value)


def get_device_p2p_attribute(attr: DeviceP2PAttribute, src: DeviceLike, dst: DeviceLike) -> int:
    """
    Query a peer-to-peer attribute between two devices.

    Args:
        attr: Attribute to query
        src: Source device
        dst: Destination device

    Returns:
        Attribute value
    """
    value = ctypes.c_int(-1)
    code = _bindings.get_library().hipDeviceGetP2PAttribute(
        ctypes.byref(value), int(attr), _device_id(src), _device_id(dst)
    )
    check(code)
    return value.value
