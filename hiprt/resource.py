"""
Ownership tracking for native runtime handles.

Memory allocations, streams and memory pools share one lifecycle:
Uninitialized -> Active -> Released. A wrapper only exists once the
native create/allocate call has succeeded, so construction is the
Uninitialized -> Active step. Release happens exactly once, through an
explicit call, a ``with`` block, or garbage collection.
"""

import logging
from typing import Any, Optional

from .errors import HipError, ReleasedResourceError

logger = logging.getLogger(__name__)


class NativeResource:
    """
    Base class for wrappers that own a native runtime handle.

    Subclasses implement :meth:`_release_native`, which makes the native
    destroy/free call and raises :class:`~hiprt.errors.HipError` on a
    failure code.
    """

    _kind = "resource"

    def __init__(self, handle: Any, owned: bool = True):
        self._handle = handle
        self._owned = owned
        self._freed = False

    @property
    def released(self) -> bool:
        return self._freed

    @property
    def handle(self) -> Any:
        """Raw native handle; only valid while the wrapper is active."""
        self._check_active()
        return self._handle

    def _check_active(self) -> None:
        if self._freed:
            raise ReleasedResourceError(
                f"{type(self).__name__} was already released; "
                f"the {self._kind} cannot be used again"
            )

    def _release_native(self) -> None:
        raise NotImplementedError

    def release(self) -> None:
        """
        Release the native resource.

        Raises:
            ReleasedResourceError: If already released
            HipError: If the runtime reports a failure. The wrapper is
                marked released either way, since the handle must not be
                presented to the runtime a second time.
        """
        self._check_active()
        self._freed = True
        if self._owned:
            logger.debug("Releasing %s %s", self._kind, self._describe_handle())
            self._release_native()

    def _describe_handle(self) -> str:
        value = getattr(self._handle, "value", self._handle)
        return hex(value) if isinstance(value, int) else str(value)

    def __enter__(self):
        self._check_active()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self._freed:
            return False
        if exc_type is None:
            self.release()
            return False
        # The body's exception wins; a release failure on top of it is logged
        try:
            self.release()
        except HipError as exc:
            logger.error("Failed to release %s after %s: %s", self._kind, exc_type.__name__, exc)
        return False

    def __del__(self):
        # Finalizers cannot raise, so a failed release is logged instead
        if getattr(self, "_freed", True):
            return
        try:
            self.release()
        except Exception as exc:
            logger.error("Failed to release %s during finalization: %s", self._kind, exc)

    def __repr__(self) -> str:
        state = "released" if self._freed else "active"
        return f"<{type(self).__name__} {self._describe_handle()} {state}>"


def native_pointer(handle: Optional[Any]) -> Optional[int]:
    """Integer address of a ``c_void_p``-style handle, None for null."""
    return getattr(handle, "value", handle)
