"""
Error translation for HIP runtime return codes.

Every native call returns a ``hipError_t``. :func:`check` is the single
place those codes are inspected: success hands back the out-parameter,
anything else raises :class:`HipError`. The mapping is total, so a code
introduced by a newer runtime surfaces as ``ErrorKind.UNKNOWN`` with the
raw code preserved rather than breaking the translation.
"""

from enum import Enum
from typing import Dict, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(Enum):
    """Typed categories of HIP runtime status codes."""

    SUCCESS = 0
    INVALID_VALUE = 1
    OUT_OF_MEMORY = 2
    NOT_INITIALIZED = 3
    DEINITIALIZED = 4
    NO_DEVICE = 100
    INVALID_DEVICE = 101
    FILE_NOT_FOUND = 301
    INVALID_HANDLE = 400
    NOT_READY = 600
    NOT_SUPPORTED = 801
    UNKNOWN = 999

    @classmethod
    def from_code(cls, code: int) -> "ErrorKind":
        """Map a raw status code to its kind; unmapped codes give UNKNOWN."""
        return _KIND_BY_CODE.get(code, cls.UNKNOWN)

    @property
    def label(self) -> str:
        """CamelCase name matching the runtime's hipError* spelling."""
        return "".join(part.capitalize() for part in self.name.split("_"))


_KIND_BY_CODE: Dict[int, ErrorKind] = {kind.value: kind for kind in ErrorKind}


class HipError(Exception):
    """
    A HIP runtime call returned a failure code.

    Attributes:
        code: Raw status code as returned by the runtime
        kind: Translated :class:`ErrorKind`
    """

    def __init__(self, code: int, message: Optional[str] = None):
        self.code = int(code)
        self.kind = ErrorKind.from_code(self.code)
        if message is None:
            message = f"HIP status: {self.kind.label} (code: {self.code})"
        super().__init__(message)

    @classmethod
    def from_kind(cls, kind: ErrorKind, message: Optional[str] = None) -> "HipError":
        """Build an error for a condition detected before any native call."""
        return cls(kind.value, message)

    def __reduce__(self):
        return (type(self), (self.code, str(self)))

    def __repr__(self) -> str:
        return f"HipError(kind={self.kind.name}, code={self.code})"


class ReleasedResourceError(RuntimeError):
    """
    A native resource wrapper was used after it was released.

    Signals a caller bug rather than a runtime status, and is not a
    :class:`HipError`.
    """


class LibraryNotFoundError(OSError):
    """The HIP runtime shared library could not be located."""


def check(code: int, value: Optional[T] = None) -> Optional[T]:
    """
    Translate a native status code.

    Args:
        code: Status code returned by a runtime entry point
        value: Out-parameter result to hand back on success

    Returns:
        ``value`` when ``code`` is success

    Raises:
        HipError: For any nonzero code
    """
    if code == ErrorKind.SUCCESS.value:
        return value
    raise HipError(code)


__all__ = [
    "ErrorKind",
    "HipError",
    "ReleasedResourceError",
    "LibraryNotFoundError",
    "check",
]
