#!/usr/bin/env python3
"""
Basic usage example for hiprt.

Demonstrates:
- Runtime initialization and device enumeration
- Device selection and property queries
- Device allocation with NumPy transfers
- Streams and stream-ordered pool allocation
"""

import numpy as np
import hiprt


def main():
    print("=" * 60)
    print("hiprt - Basic Usage Example")
    print("=" * 60)
    print()

    # Check available platforms
    print("Available platforms:")
    print(f"  AMD: {hiprt.is_amd_available()}")
    print(f"  NVIDIA: {hiprt.is_nvidia_available()}")
    print(f"  Default: {hiprt.get_default_platform()}")
    print()

    print("Initializing HIP runtime...")
    hiprt.initialize()
    print(f"  Runtime version: {hiprt.runtime_get_version()}")
    print(f"  Driver version: {hiprt.driver_get_version()}")
    print()

    count = hiprt.get_device_count()
    print(f"Found {count} device(s)")
    if count == 0:
        print("No HIP devices available - nothing else to do")
        return

    for device_id in range(count):
        device = hiprt.Device(device_id)
        print(f"  [{device_id}] {device.name()}")
        print(f"      arch: {device.compute_capability()}, memory: {device.total_mem() >> 20} MiB")
        print(f"      PCI bus: {device.pci_bus_id()}")
    print()

    # Selecting a device past the end is rejected
    try:
        hiprt.set_device(count)
    except hiprt.HipError as err:
        print(f"set_device({count}) failed as expected: {err}")
    device = hiprt.set_device(0)
    print(f"Selected {device}")
    print()

    # Allocate and transfer
    print("Allocating device memory (1024 float32 elements)...")
    data = np.arange(1024, dtype=np.float32)
    with hiprt.allocate(data.nbytes) as src, hiprt.allocate(data.nbytes) as dst:
        print(f"  src: {src}")
        print(f"  dst: {dst}")
        src.copy_from_host(data)
        src.copy_to(dst)
        result = dst.copy_to_host(dtype=np.float32)
        print(f"  result[:5] = {result[:5]}")
        np.testing.assert_array_equal(result, data)
        print("  ✓ Round trip matches!")
    print()

    free_bytes, total_bytes = hiprt.mem_get_info()
    print(f"Memory: {free_bytes >> 20} MiB free of {total_bytes >> 20} MiB")
    print()

    # Stream-ordered allocation from the default pool
    print("Allocating from the default memory pool on a stream...")
    pool = device.get_default_mem_pool()
    with hiprt.Stream.create() as stream:
        with pool.allocate_async(1 << 20, stream) as ptr:
            ptr.memset(0)
        stream.synchronize()
        print(f"  Stream status: {stream.query().name}")
    print()

    # Automatic cleanup when context exits
    print("=" * 60)
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
