import codecs
import functools
import mimetypes
import os
import typing

import chardet
import filetype

CHUNK_SIZE = 65536

RetType = typing.TypeVar("RetType")
AsyncCallable = typing.Union[
    typing.Callable[..., RetType], typing.Callable[..., typing.Awaitable[RetType]],
]


def _int_to_uri_enc() -> typing.Dict[int, bytes]:
    """Creates a mapping of ordinals to bytes encoded the way AWS
    expects URI components: only the RFC 3986 unreserved set is
    kept as-is, everything else (including space) is percent-encoded.
    """
    values = {}
    unreserved = {0x2D, 0x2E, 0x5F, 0x7E}
    for byte in range(256):
        if (
            (0x61 <= byte <= 0x7A)
            or (0x41 <= byte <= 0x5A)
            or (0x30 <= byte <= 0x39)
            or (byte in unreserved)
        ):
            values[byte] = bytes((byte,))
        else:
            values[byte] = b"%" + hex(byte)[2:].upper().zfill(2).encode()
    return values


INT_TO_URIENC = _int_to_uri_enc()


def uri_encode(value: str, safe: str = "") -> str:
    safe_bytes = {ord(x) for x in safe}
    return b"".join(
        [
            bytes((byte,)) if byte in safe_bytes else INT_TO_URIENC[byte]
            for byte in value.encode("utf-8")
        ]
    ).decode("ascii")


class MimeType(typing.NamedTuple):
    type: str
    subtype: str
    suffix: str
    parameters: typing.Dict[str, typing.Optional[str]]

    def __str__(self) -> str:
        """Renders the mime type without parameters"""
        if not self.type:
            return ""
        return (
            f"{self.type}"
            f"{'/' + self.subtype if self.subtype else ''}"
            f"{'+' + self.suffix if self.suffix else ''}"
        )


def parse_mimetype(mimetype: str) -> MimeType:
    if not mimetype:
        return MimeType(type="", subtype="", suffix="", parameters={})

    parts = mimetype.split(";")
    params = {}
    for item in parts[1:]:
        if not item:
            continue
        key, value = typing.cast(
            typing.Tuple[str, typing.Optional[str]],
            item.split("=", 1) if "=" in item else (item, None),
        )
        params[key.lower().strip()] = value.strip(' "') if value else value

    mimetype_no_params = parts[0].strip().lower()
    type, subtype = typing.cast(
        typing.Tuple[str, str],
        mimetype_no_params.split("/", 1)
        if "/" in mimetype_no_params
        else (mimetype_no_params, ""),
    )
    subtype, suffix = typing.cast(
        typing.Tuple[str, str],
        subtype.split("+", 1) if "+" in subtype else (subtype, ""),
    )
    return MimeType(type=type, subtype=subtype, suffix=suffix, parameters=params)


@functools.lru_cache(128)
def is_known_encoding(encoding: str) -> typing.Optional[str]:
    """Given an encoding type, return either it's normalized name
    if we understand the codec otherwise return 'None'.
    """
    try:
        return codecs.lookup(encoding).name
    except LookupError:
        return None


def detect_encoding(data: bytes) -> str:
    """Runs chardet over a payload that didn't declare a charset.
    Falls back to 'utf-8' when chardet isn't confident.
    """
    if not data:
        return "ascii"
    detector = chardet.UniversalDetector()
    detector.feed(data)
    detector.close()
    return is_known_encoding(detector.result["encoding"] or "utf-8") or "utf-8"


def guess_content_type(
    head: bytes, name: typing.Optional[str] = None
) -> typing.Optional[str]:
    """Guesses a 'Content-Type' from the first bytes of a payload
    and, failing that, from the name of the file it came from.
    """
    content_type = filetype.guess_mime(head) if head else None

    # Couldn't guess by the contents of the file, so
    # we try the name of the file as a last-ditch effort.
    if content_type is None and name:
        content_type, _ = mimetypes.guess_type(os.path.basename(name), strict=False)
    return content_type


def user_agent() -> str:
    from . import __version__

    return f"python-asyncaws/{__version__}"


async def sync_or_async(
    f: AsyncCallable, *args: typing.Any, **kwargs: typing.Any
) -> RetType:
    ret = f(*args, **kwargs)
    if hasattr(ret, "__await__"):
        ret = await ret
    return ret
