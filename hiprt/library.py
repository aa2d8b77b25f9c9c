"""
HIP platform detection and runtime library discovery.

Provides the platform enumeration and the search order used to locate
the HIP runtime shared library.
"""

import os
import sys
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .errors import LibraryNotFoundError

LIBRARY_ENV = "HIPRT_LIBRARY"
PLATFORM_ENV = "HIP_PLATFORM"


class HipPlatform(Enum):
    """Platforms the HIP runtime can target."""

    AMD = "amd"
    NVIDIA = "nvidia"
    AUTO = "auto"

    def __str__(self) -> str:
        return self.value


def _smi_lists_gpu(command: List[str]) -> bool:
    """Run a vendor management tool and report whether it listed a GPU."""
    import subprocess

    try:
        result = subprocess.run(
            command,
            capture_output=True,
            timeout=1,
            env={**os.environ, 'LANG': 'C'}
        )
        return result.returncode == 0 and b'GPU' in result.stdout
    except (OSError, subprocess.TimeoutExpired):
        return False


def is_amd_available() -> bool:
    """
    Check if an AMD GPU is visible through ROCm.

    Returns:
        True if rocm-smi runs and reports at least one GPU, False otherwise.
    """
    return _smi_lists_gpu(['rocm-smi', '--showid'])


def is_nvidia_available() -> bool:
    """
    Check if an NVIDIA GPU is available for the HIP-on-CUDA platform.

    Returns:
        True if nvidia-smi runs and lists at least one GPU, False otherwise.
    """
    return _smi_lists_gpu(['nvidia-smi', '-L'])


def get_default_platform() -> str:
    """
    Get the default HIP platform based on available hardware.

    Returns best available platform in order:
    1. AMD (if rocm-smi reports a GPU)
    2. NVIDIA (if nvidia-smi reports a GPU)
    3. AMD (fallback, the native HIP platform)

    Returns:
        Platform string: "amd" or "nvidia"
    """
    if is_amd_available():
        return "amd"
    elif is_nvidia_available():
        return "nvidia"
    else:
        return "amd"


def validate_platform(platform: str) -> str:
    """
    Validate and normalize platform string.

    Args:
        platform: Platform string ("amd", "nvidia", "auto")

    Returns:
        Normalized platform string

    Raises:
        ValueError: If platform is invalid
    """
    platform_lower = platform.lower()

    if platform_lower == "auto":
        return get_default_platform()

    valid_platforms = {"amd", "nvidia"}
    if platform_lower not in valid_platforms:
        raise ValueError(
            f"Invalid platform '{platform}'. "
            f"Must be one of: {', '.join(sorted(valid_platforms))}, or 'auto'"
        )

    return platform_lower


def library_candidates(platform: Optional[str] = None) -> List[str]:
    """
    List library paths to try, most specific first.

    Args:
        platform: Platform override; defaults to $HIP_PLATFORM or "auto".
            Only an explicit "nvidia" skips the ROCm search; "auto" searches
            the ROCm locations without probing the hardware.

    Returns:
        Absolute candidate paths for ``ctypes.CDLL``
    """
    requested = platform or os.environ.get(PLATFORM_ENV, "auto")
    if requested.lower() != "auto":
        requested = validate_platform(requested)

    if requested == "nvidia":
        # HIP over CUDA is header-only; only $HIPRT_LIBRARY can name a shim
        return []

    if sys.platform == "win32":
        names = ["amdhip64_6.dll", "amdhip64.dll"]
    else:
        names = ["libamdhip64.so.6", "libamdhip64.so"]

    roots = []
    for var in ("ROCM_PATH", "HIP_PATH"):
        root = os.environ.get(var)
        if root:
            roots.append(Path(root))
    roots.append(Path("/opt/rocm"))

    candidates = []
    for root in roots:
        for sub in ("lib", "bin"):
            for name in names:
                candidates.append(str(root / sub / name))
    return candidates


def find_library(platform: Optional[str] = None) -> str:
    """
    Locate the HIP runtime shared library.

    $HIPRT_LIBRARY wins when set. Otherwise the first existing candidate
    from :func:`library_candidates` is returned, falling back to whatever
    ``ctypes.util.find_library`` resolves.

    Raises:
        LibraryNotFoundError: If nothing can be found
    """
    explicit = os.environ.get(LIBRARY_ENV)
    if explicit:
        if not Path(explicit).exists():
            raise LibraryNotFoundError(f"{LIBRARY_ENV} points to a missing file: {explicit}")
        return explicit

    candidates = library_candidates(platform)
    for candidate in candidates:
        if Path(candidate).exists():
            return candidate

    if candidates:
        import ctypes.util

        found = ctypes.util.find_library("amdhip64")
        if found:
            return found

    raise LibraryNotFoundError(
        "HIP runtime library not found. "
        f"Set {LIBRARY_ENV} or ROCM_PATH. Tried: {', '.join(candidates) or 'nothing'}"
    )
