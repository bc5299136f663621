"""Request bodies for uploads.

Callers hand operations a body in whatever shape they have it: bytes or
text, an open file, a function producing bytes on demand, or an iterable of
chunks. A 'BodySource' normalizes each of these into one pull interface,
'await source.next(max_bytes)', that returns b"" at end-of-stream.

'resolve_length()' works out how many bytes a source will produce without
consuming it (or trusts the caller's 'ContentLength'), and
'build_request_body()' combines the two into the 'RequestBody' the transport
drives. A source whose length can't be determined is read into memory by
'build_request_body()' and nowhere else.
"""

import collections.abc
import io
import logging
import os
import stat
import typing

from .exceptions import (
    InvalidLengthOverride,
    RequestBodyReleased,
    SourceReadFailure,
    UnrewindableBodyError,
)
from .utils import CHUNK_SIZE, guess_content_type, sync_or_async

logger = logging.getLogger(__name__)

BytesLike = typing.Union[bytes, bytearray, memoryview, str]
ProducerType = typing.Callable[
    [int], typing.Union[BytesLike, typing.Awaitable[BytesLike]]
]
BodyType = typing.Union[
    None,
    BytesLike,
    typing.BinaryIO,
    typing.TextIO,
    ProducerType,
    typing.Iterable[BytesLike],
    typing.AsyncIterable[BytesLike],
    "BodySource",
]


def _to_bytes(data: typing.Any) -> bytes:
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    raise TypeError(f"expected bytes or str, got '{type(data).__name__}'")


def _check_max_bytes(max_bytes: int) -> None:
    if isinstance(max_bytes, bool) or not isinstance(max_bytes, int) or max_bytes <= 0:
        raise ValueError(f"max_bytes must be a positive integer, got {max_bytes!r}")


class BodySource:
    """Uniform pull-based view over a caller supplied body.

    Sub-classes implement '_read()'. This class takes care of the
    end-of-stream bookkeeping, wrapping errors from the underlying
    resource and refusing reads after the source was released.
    """

    #: Whether 'rewind()' can put the source back at its first byte.
    restartable = False

    def __init__(self) -> None:
        self._eof = False
        self._released = False
        self.bytes_read = 0

    async def next(self, max_bytes: int) -> bytes:
        """Returns up to 'max_bytes' bytes, or b"" once the source is exhausted.
        Calling again after end-of-stream keeps returning b"".
        """
        _check_max_bytes(max_bytes)
        if self._released:
            raise RequestBodyReleased("body source was already released")
        if self._eof:
            return b""

        try:
            data = await self._read(max_bytes)
        except SourceReadFailure:
            raise
        except Exception as e:
            raise SourceReadFailure(
                f"reading from {self!r} failed: {e!r}", error=e
            ) from e

        if not data:
            self._eof = True
            return b""
        self.bytes_read += len(data)
        return data

    @property
    def started(self) -> bool:
        return self.bytes_read > 0

    async def intrinsic_length(self) -> typing.Optional[int]:
        """Number of bytes the source will produce if that can be
        known without reading it, otherwise 'None'.
        """
        return None

    async def content_type(self) -> typing.Optional[str]:
        return None

    async def rewind(self) -> None:
        """Puts the source back to where it started so a request can be
        sent again. Raises 'UnrewindableBodyError' if bytes were already
        pulled from a source that can't be restarted.
        """
        if self._released:
            raise RequestBodyReleased("body source was already released")
        if not self.started and not self._eof:
            return
        if not self.restartable:
            raise UnrewindableBodyError(
                f"{self!r} was partially consumed and can't be rewound"
            )
        await self._rewind()
        self._eof = False
        self.bytes_read = 0

    async def release(self) -> None:
        """Gives up the underlying resource. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        await self._release()

    @property
    def released(self) -> bool:
        return self._released

    async def _read(self, max_bytes: int) -> bytes:
        raise NotImplementedError()

    async def _rewind(self) -> None:
        raise NotImplementedError()

    async def _release(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class BufferSource(BodySource):
    """Class representing the simplest data-type, bytes already in memory."""

    restartable = True

    def __init__(self, data: BytesLike = b""):
        super().__init__()
        self._data = _to_bytes(data)
        self._cursor = 0

    async def _read(self, max_bytes: int) -> bytes:
        data = self._data[self._cursor : self._cursor + max_bytes]
        self._cursor += len(data)
        return data

    async def _rewind(self) -> None:
        self._cursor = 0

    async def intrinsic_length(self) -> int:
        return len(self._data)

    async def content_type(self) -> typing.Optional[str]:
        return guess_content_type(self._data[:CHUNK_SIZE])

    def __repr__(self) -> str:
        return f"<BufferSource length={len(self._data)}>"


class HandleSource(BodySource):
    """Class representing a file-like interface. Works with both regular
    file objects and objects whose methods return awaitables like
    'trio.open_file()'.

    The position of the handle when it's first used is taken down so
    the size query and 'rewind()' are relative to it.
    """

    def __init__(self, fp: typing.Any):
        super().__init__()
        self._fp = fp
        mode = getattr(fp, "mode", None)
        self._is_text = isinstance(fp, io.TextIOBase) or (
            isinstance(mode, str) and "b" not in mode
        )
        # Initial location of the file pointer before data
        # transmission starts.
        self._fp_begin: typing.Optional[int] = None
        self._content_type: typing.Optional[str] = None
        self._pending = bytearray()

    @property
    def restartable(self) -> bool:
        return self._seekable()

    async def _read(self, max_bytes: int) -> bytes:
        await self._get_fp_begin()
        if not self._is_text:
            return _to_bytes(await sync_or_async(self._fp.read, max_bytes))

        # Encoded characters can take up more bytes than were asked for.
        while len(self._pending) < max_bytes:
            text = await sync_or_async(self._fp.read, max_bytes)
            if not text:
                break
            self._pending += _to_bytes(text)
        data = bytes(self._pending[:max_bytes])
        del self._pending[:max_bytes]
        return data

    async def _rewind(self) -> None:
        self._pending = bytearray()
        await sync_or_async(self._fp.seek, await self._get_fp_begin(), 0)

    async def intrinsic_length(self) -> typing.Optional[int]:
        # Characters and bytes don't line up for text handles.
        if self._is_text:
            return None
        fp_begin = await self._get_fp_begin()
        if fp_begin is None:
            return None

        size = self._fstat_size()
        if size is None and self._seekable():
            await sync_or_async(self._fp.seek, 0, 2)
            size = await sync_or_async(self._fp.tell)
            await sync_or_async(self._fp.seek, fp_begin, 0)
        if size is None:
            return None
        return max(size - fp_begin, 0)

    async def content_type(self) -> typing.Optional[str]:
        if self._content_type is None:
            head = b""
            # Only peek at the contents if we can put them back.
            if not self._is_text and self._seekable() and not self.started:
                fp_begin = await self._get_fp_begin()
                head = _to_bytes(await sync_or_async(self._fp.read, CHUNK_SIZE))
                await sync_or_async(self._fp.seek, fp_begin, 0)
            name = getattr(self._fp, "name", None)
            self._content_type = guess_content_type(
                head, name if isinstance(name, str) else None
            )
        return self._content_type

    async def _release(self) -> None:
        close = getattr(self._fp, "aclose", None) or getattr(self._fp, "close", None)
        if close is not None:
            await sync_or_async(close)
            logger.debug("closed handle %r", self._fp)

    async def _get_fp_begin(self) -> typing.Optional[int]:
        if self._fp_begin is None and self._seekable():
            self._fp_begin = await sync_or_async(self._fp.tell)
        return self._fp_begin

    def _seekable(self) -> bool:
        seekable = getattr(self._fp, "seekable", None)
        if seekable is not None:
            try:
                return bool(seekable())
            except (OSError, ValueError):
                return False
        return hasattr(self._fp, "seek") and hasattr(self._fp, "tell")

    def _fstat_size(self) -> typing.Optional[int]:
        try:
            st = os.fstat(self._fp.fileno())
        except (AttributeError, OSError, ValueError, io.UnsupportedOperation):
            return None
        if not stat.S_ISREG(st.st_mode):
            return None
        return st.st_size

    def __repr__(self) -> str:
        return f"<HandleSource {self._fp!r}>"


class ProducerSource(BodySource):
    """Calls 'producer(length_hint)' each time bytes are requested.
    An empty result ends the stream, after which the producer is
    never called again. Bytes returned beyond the hint are handed out
    by the following calls before the producer is asked again.
    """

    def __init__(self, producer: ProducerType):
        super().__init__()
        self._producer = producer
        self._pending = b""

    async def _read(self, max_bytes: int) -> bytes:
        if not self._pending:
            self._pending = _to_bytes(await sync_or_async(self._producer, max_bytes))
        data, self._pending = self._pending[:max_bytes], self._pending[max_bytes:]
        return data

    async def _release(self) -> None:
        self._pending = b""

    def __repr__(self) -> str:
        return f"<ProducerSource {self._producer!r}>"


class ChunkSequenceSource(BodySource):
    """Pulls chunks from a (sync or async) iterable and re-slices them so
    that every call returns exactly 'max_bytes' bytes except the last.
    Chunks larger than requested are split and the remainder is kept for
    the next call.
    """

    def __init__(
        self,
        chunks: typing.Union[
            typing.Iterable[BytesLike], typing.AsyncIterable[BytesLike]
        ],
    ):
        super().__init__()
        self._chunks = chunks
        self._iterator: typing.Any = None
        self._exhausted = False
        self._remainder = bytearray()

    async def _read(self, max_bytes: int) -> bytes:
        while len(self._remainder) < max_bytes and not self._exhausted:
            chunk = await self._next_chunk()
            if chunk is None:
                self._exhausted = True
            else:
                self._remainder += chunk

        data = bytes(self._remainder[:max_bytes])
        del self._remainder[:max_bytes]
        return data

    async def _next_chunk(self) -> typing.Optional[bytes]:
        if self._iterator is None:
            if hasattr(self._chunks, "__aiter__"):
                self._iterator = self._chunks.__aiter__()
            else:
                self._iterator = iter(self._chunks)

        if hasattr(self._iterator, "__anext__"):
            try:
                return _to_bytes(await self._iterator.__anext__())
            except StopAsyncIteration:
                return None
        try:
            return _to_bytes(next(self._iterator))
        except StopIteration:
            return None

    async def _release(self) -> None:
        self._remainder = bytearray()
        iterator = self._iterator if self._iterator is not None else self._chunks
        close = getattr(iterator, "aclose", None) or getattr(iterator, "close", None)
        if close is not None:
            await sync_or_async(close)

    def __repr__(self) -> str:
        return f"<ChunkSequenceSource {self._chunks!r}>"


def create_body_source(value: BodyType) -> BodySource:
    """Changes whatever was passed as a body into a 'BodySource'
    based on the shape of the value.
    """
    if value is None:
        return BufferSource(b"")
    elif isinstance(value, BodySource):
        return value
    elif isinstance(value, (bytes, bytearray, memoryview, str)):
        return BufferSource(value)
    elif hasattr(value, "read"):
        return HandleSource(value)
    elif callable(value):
        return ProducerSource(value)
    elif isinstance(value, collections.abc.Mapping):
        raise TypeError("a mapping can't be used as a request body")
    elif hasattr(value, "__aiter__") or hasattr(value, "__iter__"):
        return ChunkSequenceSource(value)
    raise TypeError(f"unsupported request body type '{type(value).__name__}'")


def parse_length_override(override: typing.Any) -> typing.Optional[int]:
    """Validates a caller supplied 'ContentLength'. Accepts non-negative
    integers and strings of digits, 'None' means no override.
    """
    if override is None:
        return None
    if isinstance(override, str) and override.strip().isdecimal():
        return int(override.strip())
    if isinstance(override, bool) or not isinstance(override, int):
        raise InvalidLengthOverride(
            f"ContentLength must be a non-negative integer, got {override!r}"
        )
    if override < 0:
        raise InvalidLengthOverride(
            f"ContentLength must be a non-negative integer, got {override!r}"
        )
    return override


async def resolve_length(
    source: BodySource, override: typing.Any = None
) -> typing.Optional[int]:
    """Returns the number of bytes the body will be sent with.

    An explicit override always wins, the value isn't checked against
    the source: a mismatch is left for the transport and AWS to reject.
    Without one the source's own size is used, and 'None' means the
    length can't be known before reading the whole source.
    """
    length = parse_length_override(override)
    if length is not None:
        return length
    return await source.intrinsic_length()


class RequestBody:
    """The object handed to the transport. Streams from its source
    through 'next()' and declares 'content_length' up front.

    A 'RequestBody' owns its source: 'close()' (or leaving
    'async with') releases it, after which it can't be read again.
    """

    def __init__(self, source: BodySource, content_length: int):
        self.source = source
        self.content_length = content_length

    async def next(self, max_bytes: int = CHUNK_SIZE) -> bytes:
        return await self.source.next(max_bytes)

    async def rewind(self) -> None:
        await self.source.rewind()

    async def close(self) -> None:
        if not self.source.released:
            logger.debug("releasing %r", self.source)
        await self.source.release()

    @property
    def bytes_sent(self) -> int:
        return self.source.bytes_read

    def __aiter__(self) -> typing.AsyncIterator[bytes]:
        return self._iter_chunks()

    async def _iter_chunks(self) -> typing.AsyncIterator[bytes]:
        data = await self.next(CHUNK_SIZE)
        while data:
            yield data
            data = await self.next(CHUNK_SIZE)

    async def __aenter__(self) -> "RequestBody":
        return self

    async def __aexit__(self, *_: typing.Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<RequestBody content_length={self.content_length} {self.source!r}>"


async def build_request_body(
    source: BodySource, length: typing.Optional[int]
) -> RequestBody:
    """Creates the 'RequestBody' for a source whose length was resolved.

    When the length is unknown the source is read to the end into memory
    and released, and the body is sent from that buffer instead.
    """
    if length is not None:
        return RequestBody(source, length)

    logger.debug("length of %r is unknown, buffering it in memory", source)
    buffer = bytearray()
    try:
        data = await source.next(CHUNK_SIZE)
        while data:
            buffer += data
            data = await source.next(CHUNK_SIZE)
    finally:
        await source.release()
    return RequestBody(BufferSource(bytes(buffer)), len(buffer))
