"""
Raw declarations for the HIP runtime C API.

Mirrors the native signatures used by hiprt and nothing more: every entry
point returns a ``hipError_t`` and hands results back through pointer
out-parameters. Behaviour (error translation, ownership) lives in the
safe wrapper modules.
"""

import ctypes
import logging
from ctypes import POINTER, Structure, c_char, c_char_p, c_int, c_size_t, c_uint, c_ubyte, c_void_p
from typing import Any, Optional

from .library import find_library

logger = logging.getLogger(__name__)

hipError_t = c_int
hipStream_t = c_void_p
hipMemPool_t = c_void_p

# Status codes
hipSuccess = 0
hipErrorNotReady = 600

PCI_BUS_ID_LENGTH = 16
DEVICE_NAME_LENGTH = 256


class hipUUID(Structure):
    _fields_ = [("bytes", c_char * 16)]


class hipMemLocation(Structure):
    _fields_ = [("type", c_int), ("id", c_int)]


class hipMemPoolProps(Structure):
    _fields_ = [
        ("allocType", c_int),
        ("handleTypes", c_int),
        ("location", hipMemLocation),
        ("win32SecurityAttributes", c_void_p),
        ("maxSize", c_size_t),
        ("reserved", c_ubyte * 56),
    ]


# name -> (restype, *argtypes)
API_PROTOTYPES = {
    # hipError_t hipInit(unsigned int flags)
    "hipInit": (hipError_t, c_uint),
    # hipError_t hipRuntimeGetVersion(int* runtimeVersion)
    "hipRuntimeGetVersion": (hipError_t, POINTER(c_int)),
    # hipError_t hipDriverGetVersion(int* driverVersion)
    "hipDriverGetVersion": (hipError_t, POINTER(c_int)),
    # hipError_t hipGetDeviceCount(int* count)
    "hipGetDeviceCount": (hipError_t, POINTER(c_int)),
    # hipError_t hipGetDevice(int* deviceId)
    "hipGetDevice": (hipError_t, POINTER(c_int)),
    # hipError_t hipSetDevice(int deviceId)
    "hipSetDevice": (hipError_t, c_int),
    # hipError_t hipDeviceSynchronize(void)
    "hipDeviceSynchronize": (hipError_t,),
    # hipError_t hipDeviceGetName(char* name, int len, hipDevice_t device)
    "hipDeviceGetName": (hipError_t, c_char_p, c_int, c_int),
    # hipError_t hipDeviceTotalMem(size_t* bytes, hipDevice_t device)
    "hipDeviceTotalMem": (hipError_t, POINTER(c_size_t), c_int),
    # hipError_t hipDeviceComputeCapability(int* major, int* minor, hipDevice_t device)
    "hipDeviceComputeCapability": (hipError_t, POINTER(c_int), POINTER(c_int), c_int),
    # hipError_t hipDeviceGetUuid(hipUUID* uuid, hipDevice_t device)
    "hipDeviceGetUuid": (hipError_t, POINTER(hipUUID), c_int),
    # hipError_t hipDeviceGetPCIBusId(char* pciBusId, int len, int device)
    "hipDeviceGetPCIBusId": (hipError_t, c_char_p, c_int, c_int),
    # hipError_t hipDeviceGetByPCIBusId(int* device, const char* pciBusId)
    "hipDeviceGetByPCIBusId": (hipError_t, POINTER(c_int), c_char_p),
    # hipError_t hipDeviceGetAttribute(int* pi, hipDeviceAttribute_t attr, int deviceId)
    "hipDeviceGetAttribute": (hipError_t, POINTER(c_int), c_int, c_int),
    # hipError_t hipDeviceGetP2PAttribute(int* value, hipDeviceP2PAttr attr, int src, int dst)
    "hipDeviceGetP2PAttribute": (hipError_t, POINTER(c_int), c_int, c_int, c_int),
    # hipError_t hipDeviceGetDefaultMemPool(hipMemPool_t* mem_pool, int device)
    "hipDeviceGetDefaultMemPool": (hipError_t, POINTER(hipMemPool_t), c_int),
    # hipError_t hipMalloc(void** ptr, size_t size)
    "hipMalloc": (hipError_t, POINTER(c_void_p), c_size_t),
    # hipError_t hipExtMallocWithFlags(void** ptr, size_t sizeBytes, unsigned int flags)
    "hipExtMallocWithFlags": (hipError_t, POINTER(c_void_p), c_size_t, c_uint),
    # hipError_t hipMallocAsync(void** dev_ptr, size_t size, hipStream_t stream)
    "hipMallocAsync": (hipError_t, POINTER(c_void_p), c_size_t, hipStream_t),
    # hipError_t hipFree(void* ptr)
    "hipFree": (hipError_t, c_void_p),
    # hipError_t hipMemcpy(void* dst, const void* src, size_t sizeBytes, hipMemcpyKind kind)
    "hipMemcpy": (hipError_t, c_void_p, c_void_p, c_size_t, c_int),
    # hipError_t hipMemset(void* dst, int value, size_t sizeBytes)
    "hipMemset": (hipError_t, c_void_p, c_int, c_size_t),
    # hipError_t hipMemGetInfo(size_t* free, size_t* total)
    "hipMemGetInfo": (hipError_t, POINTER(c_size_t), POINTER(c_size_t)),
    # hipError_t hipStreamCreate(hipStream_t* stream)
    "hipStreamCreate": (hipError_t, POINTER(hipStream_t)),
    # hipError_t hipStreamDestroy(hipStream_t stream)
    "hipStreamDestroy": (hipError_t, hipStream_t),
    # hipError_t hipStreamQuery(hipStream_t stream)
    "hipStreamQuery": (hipError_t, hipStream_t),
    # hipError_t hipStreamSynchronize(hipStream_t stream)
    "hipStreamSynchronize": (hipError_t, hipStream_t),
    # hipError_t hipMemPoolCreate(hipMemPool_t* mem_pool, const hipMemPoolProps* pool_props)
    "hipMemPoolCreate": (hipError_t, POINTER(hipMemPool_t), POINTER(hipMemPoolProps)),
    # hipError_t hipMemPoolDestroy(hipMemPool_t mem_pool)
    "hipMemPoolDestroy": (hipError_t, hipMemPool_t),
    # hipError_t hipMemPoolTrimTo(hipMemPool_t mem_pool, size_t min_bytes_to_hold)
    "hipMemPoolTrimTo": (hipError_t, hipMemPool_t, c_size_t),
    # hipError_t hipMallocFromPoolAsync(void** dev_ptr, size_t size, hipMemPool_t mem_pool, hipStream_t stream)
    "hipMallocFromPoolAsync": (hipError_t, POINTER(c_void_p), c_size_t, hipMemPool_t, hipStream_t),
}


class HipLibrary:
    """
    A loaded HIP runtime shared library with prototypes applied.

    Entry points are resolved on first attribute access, so a runtime
    that lacks an optional symbol still loads.
    """

    def __init__(self, path: Optional[str]):
        self.path = path
        self._dll = ctypes.CDLL(path)

    def __getattr__(self, name: str) -> Any:
        try:
            restype, *argtypes = API_PROTOTYPES[name]
        except KeyError:
            raise AttributeError(f"'{name}' is not a declared HIP runtime entry point") from None

        func = getattr(self._dll, name)
        func.restype = restype
        func.argtypes = argtypes
        # Cache on the instance so __getattr__ is only hit once per symbol
        setattr(self, name, func)
        return func

    def __repr__(self) -> str:
        return f"HipLibrary(path={self.path!r})"


_library: Optional[Any] = None


def load_library(path: Optional[str] = None) -> HipLibrary:
    """
    Load the HIP runtime library.

    Args:
        path: Explicit library path. When omitted, the configured search
            order in :func:`hiprt.library.find_library` is used.

    Returns:
        A new :class:`HipLibrary`

    Raises:
        LibraryNotFoundError: If no runtime library can be located
        OSError: If the library exists but cannot be loaded
    """
    if path is None:
        path = find_library()
    logger.debug("Loading HIP runtime from %s", path)
    return HipLibrary(path)


def get_library() -> Any:
    """Return the process-wide runtime library, loading it on first use."""
    global _library
    if _library is None:
        _library = load_library()
    return _library


def set_library(library: Optional[Any]) -> None:
    """
    Replace the process-wide runtime library.

    Any object exposing the entry points in ``API_PROTOTYPES`` works,
    which is how the test suite substitutes a fake runtime. Passing
    ``None`` forces the next :func:`get_library` call to reload.
    """
    global _library
    _library = library
