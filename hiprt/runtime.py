"""
Runtime initialization and version queries.
"""

import ctypes
import logging
from typing import NamedTuple

from . import _bindings
from .errors import check

logger = logging.getLogger(__name__)


class RuntimeVersion(NamedTuple):
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def decode_hip_version(version: int) -> RuntimeVersion:
    """
    Split a packed HIP version number.

    HIP packs versions as ``major * 10_000_000 + minor * 100_000 + patch``;
    for example 60032830 is 6.0.32830. A negative value (never filled in)
    decodes to 0.0.0.
    """
    if version < 0:
        return RuntimeVersion(0, 0, 0)
    major, rest = divmod(version, 10_000_000)
    minor, patch = divmod(rest, 100_000)
    return RuntimeVersion(major, minor, patch)


def initialize() -> None:
    """
    Initialize the HIP runtime.

    Safe to call repeatedly; the runtime treats repeated initialization
    as a no-op.

    Raises:
        HipError: If the runtime reports a failure
        LibraryNotFoundError: If the runtime library cannot be located
    """
    lib = _bindings.get_library()
    check(lib.hipInit(0))
    logger.debug("HIP runtime initialized")


def runtime_get_version() -> RuntimeVersion:
    """
    Get the version of the loaded HIP runtime.

    Returns:
        Decoded :class:`RuntimeVersion`
    """
    version = ctypes.c_int(-1)
    code = _bindings.get_library().hipRuntimeGetVersion(ctypes.byref(version))
    check(code)
    return decode_hip_version(version.value)


def driver_get_version() -> RuntimeVersion:
    """Get the version of the installed GPU driver as seen by HIP."""
    version = ctypes.c_int(-1)
    code = _bindings.get_library().hipDriverGetVersion(ctypes.byref(version))
    check(code)
    return decode_hip_version(version.value)
