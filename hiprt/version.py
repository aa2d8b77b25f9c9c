"""
hiprt - safe Python bindings for the HIP runtime

Version information for the hiprt package.
"""

__version__ = "0.1.0"
