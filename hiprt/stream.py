"""
HIP streams.
"""

import ctypes
import logging
from enum import Enum

from . import _bindings
from .errors import check
from .resource import NativeResource

logger = logging.getLogger(__name__)


class StreamStatus(Enum):
    """Outcome of a non-blocking :meth:`Stream.query`."""

    COMPLETE = "complete"
    NOT_READY = "not_ready"


class Stream(NativeResource):
    """
    Owning wrapper around a ``hipStream_t``.

    Example:
        >>> with hiprt.Stream.create() as stream:
        ...     ptr = hiprt.allocate_async(1024, stream)
        ...     stream.synchronize()
    """

    _kind = "stream"

    @classmethod
    def create(cls) -> "Stream":
        """
        Create a new stream on the current device.

        Raises:
            HipError: If the runtime cannot create the stream
        """
        handle = ctypes.c_void_p()
        check(_bindings.get_library().hipStreamCreate(ctypes.byref(handle)))
        stream = cls(handle)
        logger.debug("Created stream %s", stream._describe_handle())
        return stream

    def query(self) -> StreamStatus:
        """
        Check whether all work on the stream has finished, without waiting.

        Returns:
            ``StreamStatus.COMPLETE`` or ``StreamStatus.NOT_READY``

        Raises:
            HipError: For any status other than success or not-ready
        """
        self._check_active()
        code = _bindings.get_library().hipStreamQuery(self._handle)
        if code == _bindings.hipErrorNotReady:
            return StreamStatus.NOT_READY
        check(code)
        return StreamStatus.COMPLETE

    def synchronize(self) -> None:
        """Block the calling thread until all work on the stream has finished."""
        self._check_active()
        check(_bindings.get_library().hipStreamSynchronize(self._handle))

    def destroy(self) -> None:
        """Destroy the stream (alias for :meth:`release`)."""
        self.release()

    def _release_native(self) -> None:
        check(_bindings.get_library().hipStreamDestroy(self._handle))
