"""
Shared fixtures for hiprt tests.

The tests never touch a real GPU. ``FakeHipRuntime`` stands in for the
loaded runtime library: it exposes the same entry points, fills
out-parameters through the ``ctypes.byref`` objects the wrappers pass,
returns HIP status codes, and counts calls per entry point.
"""

import ctypes
from collections import Counter

import pytest

from hiprt import _bindings

SUCCESS = 0
INVALID_VALUE = 1
OUT_OF_MEMORY = 2
INVALID_DEVICE = 101
INVALID_HANDLE = 400
NOT_READY = 600

HIP_VERSION = 60032830  # 6.0.32830


def _store(ref, value):
    """Write through a ctypes.byref() out-parameter."""
    ref._obj.value = value


class FakeHipRuntime:
    """In-process stand-in for libamdhip64."""

    def __init__(self, device_count=2, total_mem=1 << 20):
        self.device_count = device_count
        self.total_mem = total_mem
        self.current_device = 0
        self.initialized = False
        self.calls = Counter()
        self.failures = {}
        self.allocations = {}
        self.streams = {}
        self.pools = {}
        self.default_pools = {}
        self.stream_query_code = SUCCESS
        self.zero_size_code = SUCCESS
        self._next_handle = 0x7F0000000000

    # -- test controls ---------------------------------------------------

    def fail_next(self, name, code):
        """Make the next call to ``name`` return ``code``."""
        self.failures[name] = code

    def _enter(self, name):
        self.calls[name] += 1
        return self.failures.pop(name, SUCCESS)

    def _new_handle(self):
        self._next_handle += 0x1000
        return self._next_handle

    def _valid_device(self, device_id):
        return 0 <= device_id < self.device_count

    def _allocate(self, ref, size):
        if size == 0:
            if self.zero_size_code == SUCCESS:
                _store(ref, None)
            return self.zero_size_code
        if size > self.total_mem - self.used_bytes:
            return OUT_OF_MEMORY
        address = self._new_handle()
        self.allocations[address] = bytearray(size)
        _store(ref, address)
        return SUCCESS

    @property
    def used_bytes(self):
        return sum(len(buf) for buf in self.allocations.values())

    # -- runtime ---------------------------------------------------------

    def hipInit(self, flags):
        code = self._enter("hipInit")
        if code:
            return code
        self.initialized = True
        return SUCCESS

    def hipRuntimeGetVersion(self, ref):
        code = self._enter("hipRuntimeGetVersion")
        if code:
            return code
        _store(ref, HIP_VERSION)
        return SUCCESS

    def hipDriverGetVersion(self, ref):
        code = self._enter("hipDriverGetVersion")
        if code:
            return code
        _store(ref, HIP_VERSION)
        return SUCCESS

    # -- devices ---------------------------------------------------------

    def hipGetDeviceCount(self, ref):
        code = self._enter("hipGetDeviceCount")
        if code:
            return code
        _store(ref, self.device_count)
        return SUCCESS

    def hipGetDevice(self, ref):
        code = self._enter("hipGetDevice")
        if code:
            return code
        _store(ref, self.current_device)
        return SUCCESS

    def hipSetDevice(self, device_id):
        code = self._enter("hipSetDevice")
        if code:
            return code
        if not self._valid_device(device_id):
            return INVALID_DEVICE
        self.current_device = device_id
        return SUCCESS

    def hipDeviceSynchronize(self):
        return self._enter("hipDeviceSynchronize")

    def hipDeviceGetName(self, buffer, length, device_id):
        code = self._enter("hipDeviceGetName")
        if code:
            return code
        if not self._valid_device(device_id):
            return INVALID_DEVICE
        buffer.value = f"Fake Instinct {device_id}".encode()[: length - 1]
        return SUCCESS

    def hipDeviceTotalMem(self, ref, device_id):
        code = self._enter("hipDeviceTotalMem")
        if code:
            return code
        if not self._valid_device(device_id):
            return INVALID_DEVICE
        _store(ref, self.total_mem)
        return SUCCESS

    def hipDeviceComputeCapability(self, major_ref, minor_ref, device_id):
        code = self._enter("hipDeviceComputeCapability")
        if code:
            return code
        if not self._valid_device(device_id):
            return INVALID_DEVICE
        _store(major_ref, 9)
        _store(minor_ref, 4)
        return SUCCESS

    def device_uuid(self, device_id):
        return bytes([device_id, 0]) + bytes(range(1, 15))

    def hipDeviceGetUuid(self, ref, device_id):
        code = self._enter("hipDeviceGetUuid")
        if code:
            return code
        if not self._valid_device(device_id):
            return INVALID_DEVICE
        ctypes.memmove(ctypes.addressof(ref._obj), self.device_uuid(device_id), 16)
        return SUCCESS

    def pci_bus_id(self, device_id):
        return f"0000:{device_id + 3:02x}:00.0"

    def hipDeviceGetPCIBusId(self, buffer, length, device_id):
        code = self._enter("hipDeviceGetPCIBusId")
        if code:
            return code
        if not self._valid_device(device_id):
            return INVALID_DEVICE
        buffer.value = self.pci_bus_id(device_id).encode()
        return SUCCESS

    def hipDeviceGetByPCIBusId(self, ref, bus_id):
        code = self._enter("hipDeviceGetByPCIBusId")
        if code:
            return code
        for device_id in range(self.device_count):
            if self.pci_bus_id(device_id).encode() == bus_id:
                _store(ref, device_id)
                return SUCCESS
        return INVALID_DEVICE

    def hipDeviceGetAttribute(self, ref, attr, device_id):
        code = self._enter("hipDeviceGetAttribute")
        if code:
            return code
        if not self._valid_device(device_id):
            return INVALID_DEVICE
        _store(ref, {56: 1024, 63: 304}.get(attr, 0))
        return SUCCESS

    def hipDeviceGetP2PAttribute(self, ref, attr, src, dst):
        code = self._enter("hipDeviceGetP2PAttribute")
        if code:
            return code
        if not (self._valid_device(src) and self._valid_device(dst)):
            return INVALID_DEVICE
        if src == dst:
            return INVALID_VALUE
        _store(ref, 1)
        return SUCCESS

    def hipDeviceGetDefaultMemPool(self, ref, device_id):
        code = self._enter("hipDeviceGetDefaultMemPool")
        if code:
            return code
        if not self._valid_device(device_id):
            return INVALID_DEVICE
        handle = self.default_pools.setdefault(device_id, self._new_handle())
        _store(ref, handle)
        return SUCCESS

    # -- memory ----------------------------------------------------------

    def hipMalloc(self, ref, size):
        code = self._enter("hipMalloc")
        if code:
            return code
        return self._allocate(ref, size)

    def hipExtMallocWithFlags(self, ref, size, flags):
        code = self._enter("hipExtMallocWithFlags")
        if code:
            return code
        if flags not in (0, 1, 2, 3, 4):
            return INVALID_VALUE
        return self._allocate(ref, size)

    def hipMallocAsync(self, ref, size, stream):
        code = self._enter("hipMallocAsync")
        if code:
            return code
        if stream.value not in self.streams:
            return INVALID_HANDLE
        return self._allocate(ref, size)

    def hipFree(self, pointer):
        code = self._enter("hipFree")
        if code:
            return code
        if pointer.value is None:
            return SUCCESS
        if self.allocations.pop(pointer.value, None) is None:
            return INVALID_VALUE
        return SUCCESS

    def hipMemcpy(self, dst, src, size, kind):
        code = self._enter("hipMemcpy")
        if code:
            return code
        if size < 0:
            return INVALID_VALUE
        if kind == 1:
            buf = self.allocations.get(dst.value)
            if buf is None or size > len(buf):
                return INVALID_VALUE
            buf[:size] = ctypes.string_at(src.value, size)
        elif kind == 2:
            buf = self.allocations.get(src.value)
            if buf is None or size > len(buf):
                return INVALID_VALUE
            ctypes.memmove(dst.value, bytes(buf[:size]), size)
        elif kind == 3:
            src_buf = self.allocations.get(src.value)
            dst_buf = self.allocations.get(dst.value)
            if src_buf is None or dst_buf is None or size > len(src_buf) or size > len(dst_buf):
                return INVALID_VALUE
            dst_buf[:size] = src_buf[:size]
        else:
            return INVALID_VALUE
        return SUCCESS

    def hipMemset(self, pointer, value, size):
        code = self._enter("hipMemset")
        if code:
            return code
        buf = self.allocations.get(pointer.value)
        if buf is None or size < 0 or size > len(buf):
            return INVALID_VALUE
        buf[:size] = bytes([value]) * size
        return SUCCESS

    def hipMemGetInfo(self, free_ref, total_ref):
        code = self._enter("hipMemGetInfo")
        if code:
            return code
        _store(free_ref, self.total_mem - self.used_bytes)
        _store(total_ref, self.total_mem)
        return SUCCESS

    # -- streams ---------------------------------------------------------

    def hipStreamCreate(self, ref):
        code = self._enter("hipStreamCreate")
        if code:
            return code
        handle = self._new_handle()
        self.streams[handle] = self.stream_query_code
        _store(ref, handle)
        return SUCCESS

    def hipStreamQuery(self, stream):
        code = self._enter("hipStreamQuery")
        if code:
            return code
        if stream.value not in self.streams:
            return INVALID_HANDLE
        return self.streams[stream.value]

    def hipStreamSynchronize(self, stream):
        code = self._enter("hipStreamSynchronize")
        if code:
            return code
        if stream.value not in self.streams:
            return INVALID_HANDLE
        self.streams[stream.value] = SUCCESS
        return SUCCESS

    def hipStreamDestroy(self, stream):
        code = self._enter("hipStreamDestroy")
        if code:
            return code
        if self.streams.pop(stream.value, None) is None:
            return INVALID_HANDLE
        return SUCCESS

    # -- memory pools ----------------------------------------------------

    def hipMemPoolCreate(self, ref, props_ref):
        code = self._enter("hipMemPoolCreate")
        if code:
            return code
        props = props_ref._obj
        if props.location.type != 1 or not self._valid_device(props.location.id):
            return INVALID_VALUE
        handle = self._new_handle()
        self.pools[handle] = {
            "alloc_type": props.allocType,
            "handle_types": props.handleTypes,
            "device": props.location.id,
            "max_size": props.maxSize,
            "reserved_zeroed": not any(props.reserved),
            "trimmed_to": None,
        }
        _store(ref, handle)
        return SUCCESS

    def hipMemPoolDestroy(self, pool):
        code = self._enter("hipMemPoolDestroy")
        if code:
            return code
        if self.pools.pop(pool.value, None) is None:
            return INVALID_HANDLE
        return SUCCESS

    def hipMemPoolTrimTo(self, pool, min_bytes):
        code = self._enter("hipMemPoolTrimTo")
        if code:
            return code
        if pool.value not in self.pools:
            return INVALID_HANDLE
        self.pools[pool.value]["trimmed_to"] = min_bytes
        return SUCCESS

    def hipMallocFromPoolAsync(self, ref, size, pool, stream):
        code = self._enter("hipMallocFromPoolAsync")
        if code:
            return code
        if pool.value not in self.pools and pool.value not in self.default_pools.values():
            return INVALID_HANDLE
        if stream.value not in self.streams:
            return INVALID_HANDLE
        return self._allocate(ref, size)


@pytest.fixture
def fake_runtime():
    """A two-device fake runtime installed as the process-wide library."""
    runtime = FakeHipRuntime(device_count=2)
    _bindings.set_library(runtime)
    yield runtime
    _bindings.set_library(None)


@pytest.fixture
def no_device_runtime():
    """A fake runtime on a machine without GPUs."""
    runtime = FakeHipRuntime(device_count=0)
    _bindings.set_library(runtime)
    yield runtime
    _bindings.set_library(None)
