import sniffio
from .base import AsyncSocket, AsyncBackend, wrap_exceptions

__all__ = ["AsyncSocket", "AsyncBackend", "wrap_exceptions", "get_backend"]


def get_backend() -> AsyncBackend:
    """Gets the backend for the event loop that's currently running."""
    try:
        async_lib = sniffio.current_async_library()
    except sniffio.AsyncLibraryNotFoundError:
        raise RuntimeError("asyncaws must be used from within an event loop") from None
    if async_lib == "trio":
        from .trio import TrioBackend

        return TrioBackend()
    raise RuntimeError(f"unsupported async library '{async_lib}', use trio")
