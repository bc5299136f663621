import enum
import json
import os
import ssl
import typing
import urllib.parse

from .exceptions import HTTPError, URLError
from .utils import is_known_encoding, parse_mimetype, detect_encoding, uri_encode

if typing.TYPE_CHECKING:
    from .body import BodySource

CACertsType = typing.Union[str, "os.PathLike[str]", bytes]
HeadersType = typing.Union[
    typing.Mapping[str, typing.Optional[str]],
    typing.Mapping[bytes, typing.Optional[bytes]],
    typing.Iterable[typing.Tuple[str, typing.Optional[str]]],
    typing.Iterable[typing.Tuple[bytes, typing.Optional[bytes]]],
    "Headers",
]
URLType = typing.Union[str, "URL"]


class _ParamNoValue(object):
    def __bool__(self) -> bool:
        # We want this sentinel to evaluate as 'falsy'
        return False

    def __repr__(self) -> str:
        return "asyncaws.PARAM_NO_VALUE"

    __str__ = __repr__


# Query parameters like S3's '?uploads' are sent without '=value'.
PARAM_NO_VALUE = _ParamNoValue()
ParamsValueType = typing.Union[str, _ParamNoValue]
ParamsType = typing.Union[
    typing.Sequence[typing.Tuple[str, ParamsValueType]],
    typing.Mapping[str, ParamsValueType],
    "Params",
]


class Origin(typing.NamedTuple):
    scheme: str
    host: str
    port: int


KT = typing.TypeVar("KT")
VT = typing.TypeVar("VT")
NormKT = typing.TypeVar("NormKT")
NormVT = typing.TypeVar("NormVT")
MultiMappingType = typing.Union[
    typing.Mapping[KT, VT], typing.Iterable[typing.Tuple[KT, VT]]
]


class MultiMapping(typing.Generic[KT, VT, NormKT, NormVT]):
    def __init__(self, values: MultiMappingType = ()):
        self._internal: typing.Dict[
            NormKT, typing.List[typing.Tuple[NormKT, NormVT]]
        ] = {}
        if values:
            self.extend(values)

    def get_one(
        self, key: KT, default: typing.Optional[NormVT] = None
    ) -> typing.Optional[NormVT]:
        try:
            return self._internal[self._normalize_key(key)][0][1]
        except (KeyError, IndexError):
            return default

    get = get_one

    def get_all(self, key: KT) -> typing.List[NormVT]:
        try:
            return [x[1] for x in self._internal[self._normalize_key(key)]]
        except KeyError:
            return []

    def add(self, key: KT, value: VT) -> None:
        key = self._normalize_key(key)
        self._internal.setdefault(key, []).append((key, self._normalize_value(value)))

    def extend(self, items: MultiMappingType) -> None:
        for k, v in items.items() if hasattr(items, "items") else items:
            self.add(k, v)

    def keys(self) -> typing.Iterable[NormKT]:
        for items in self._internal.values():
            if items:
                yield items[0][0]

    def items(self) -> typing.Iterable[typing.Tuple[NormKT, NormVT]]:
        for items in self._internal.values():
            for k, v in items:
                yield k, v

    def setdefault(self, key: KT, value: VT) -> NormVT:
        key = self._normalize_key(key)
        items = self._internal.setdefault(key, [(key, self._normalize_value(value))])
        return items[0][1]

    def copy(self):
        return type(self)(list(self.items()))

    def __contains__(self, item: KT) -> bool:
        return bool(self._internal.get(self._normalize_key(item), None))

    def __getitem__(self, item: KT) -> NormVT:
        try:
            return self._internal[self._normalize_key(item)][0][1]
        except (KeyError, IndexError):
            raise KeyError(item) from None

    def __setitem__(self, key: KT, value: VT) -> None:
        key = self._normalize_key(key)
        self._internal[key] = [(key, self._normalize_value(value))]

    def __delitem__(self, key: KT) -> None:
        self._internal.pop(self._normalize_key(key), None)

    def __iter__(self) -> typing.Iterator[NormKT]:
        return iter(list(self.keys()))

    def __len__(self) -> int:
        return sum(len(x) for x in self._internal.values())

    def _normalize_key(self, key: KT) -> NormKT:
        return key

    def _normalize_value(self, value: VT) -> NormVT:
        return value


class Headers(
    MultiMapping[
        typing.Union[str, bytes],
        typing.Optional[typing.Union[str, bytes]],
        str,
        typing.Optional[str],
    ]
):
    def _normalize_key(self, key):
        if isinstance(key, bytes):
            key = key.decode("utf-8")
        return key.lower()

    def _normalize_value(self, value):
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def get_folded(self, key: str) -> str:
        return ", ".join([x for x in self.get_all(key) if x is not None])

    def __repr__(self) -> str:
        return f"<Headers {[(k, v) for k, v in self.items()]!r}>"

    __str__ = __repr__


class Params(MultiMapping[str, ParamsValueType, str, ParamsValueType]):
    def render(self) -> str:
        """Renders the query string with AWS-style percent-encoding"""
        return "&".join(
            uri_encode(k) if v is PARAM_NO_VALUE else f"{uri_encode(k)}={uri_encode(v)}"
            for k, v in self.items()
        )

    def __repr__(self) -> str:
        return f"<Params {[(k, v) for k, v in self.items()]!r}>"

    __str__ = __repr__


class URL:
    DEFAULT_PORT_BY_SCHEME: typing.Dict[str, int] = {
        "http": 80,
        "https": 443,
    }

    def __init__(
        self,
        *,
        scheme: typing.Optional[str] = None,
        host: typing.Optional[str] = None,
        port: typing.Optional[int] = None,
        path: str = "/",
        params: typing.Optional[ParamsType] = None,
    ):
        self.scheme = scheme
        self.host = host
        self.port = port
        self.path = path
        self.params = Params(params or ())

    @classmethod
    def parse(cls, url: URLType) -> "URL":
        if isinstance(url, URL):
            return url.copy()
        try:
            parts = urllib.parse.urlsplit(url)
            port = parts.port
        except ValueError as e:
            raise URLError(f"could not parse URL '{url}'", error=e) from None
        if parts.scheme not in cls.DEFAULT_PORT_BY_SCHEME or not parts.hostname:
            raise URLError(f"'{url}' is not an absolute http(s) URL")
        return cls(
            scheme=parts.scheme,
            host=parts.hostname,
            port=port,
            path=parts.path or "/",
            params=urllib.parse.parse_qsl(parts.query, keep_blank_values=True),
        )

    @property
    def origin(self) -> Origin:
        if self.scheme is None or self.host is None:
            raise HTTPError("Origin cannot be determined for non-absolute URLs")
        if self.port is None:
            if self.scheme not in self.DEFAULT_PORT_BY_SCHEME:
                raise HTTPError(f"Unknown default port for scheme '{self.scheme}'")
            port = self.DEFAULT_PORT_BY_SCHEME[self.scheme]
        else:
            port = self.port
        return Origin(self.scheme, self.host, port)

    @property
    def netloc(self) -> str:
        if self.port is None or self.port == self.DEFAULT_PORT_BY_SCHEME.get(
            self.scheme, None
        ):
            return self.host
        return f"{self.host}:{self.port}"

    @property
    def target(self) -> str:
        query = self.params.render()
        return f"{self.path or '/'}{'?' + query if query else ''}"

    def join(self, path: str, params: typing.Optional[ParamsType] = None) -> "URL":
        """Appends an already-encoded path (and optionally query parameters)
        to this URL, keeping any base path the endpoint was configured with.
        """
        url = self.copy()
        url.path = self.path.rstrip("/") + "/" + path.lstrip("/")
        if params:
            url.params.extend(params)
        return url

    def copy(self) -> "URL":
        return URL(
            scheme=self.scheme,
            host=self.host,
            port=self.port,
            path=self.path,
            params=self.params.copy(),
        )

    def __str__(self) -> str:
        return f"{self.scheme}://{self.netloc}{self.target}"

    def __repr__(self) -> str:
        return f"<URL {str(self)!r}>"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            return str(self) == other
        if not isinstance(other, URL):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))


class Request:
    """The method, URL and headers of an HTTP request together with the
    body source supplied for it. The body isn't normalized into a
    'RequestBody' until right before the transport is called, and
    'content_length' is the caller's explicit override (if any).
    """

    def __init__(
        self,
        method: str,
        url: URLType,
        *,
        headers: typing.Optional[HeadersType] = None,
        body: typing.Optional["BodySource"] = None,
        content_length: typing.Any = None,
    ):
        self.method = method
        self.url = url
        self.headers = headers or ()
        self.body = body
        self.content_length = content_length

    @property
    def url(self) -> URL:
        return self._url

    @url.setter
    def url(self, value: URLType) -> None:
        if not isinstance(value, URL):
            value = URL.parse(value)
        self._url = value

    @property
    def headers(self) -> Headers:
        return self._headers

    @headers.setter
    def headers(self, value: HeadersType) -> None:
        if not isinstance(value, Headers):
            value = Headers(value)
        self._headers = value

    @property
    def target(self) -> str:
        return self.url.target

    def __repr__(self) -> str:
        return f"<Request [{self.method}]>"


class Response:
    def __init__(
        self,
        status_code: int,
        http_version: str,
        headers: HeadersType,
        request: typing.Optional[Request] = None,
        data: bytes = b"",
    ):
        self.status_code = status_code
        self.http_version = http_version
        self.headers = headers
        self.request = request
        self.data = data

        self._encoding: typing.Optional[str] = None

    @property
    def headers(self) -> Headers:
        return self._headers

    @headers.setter
    def headers(self, value: HeadersType) -> None:
        if not isinstance(value, Headers):
            value = Headers(value)
        self._headers = value

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str:
        """Gets the effective 'Content-Type' of the response either from headers
        or returns 'application/octet-stream' if no such header if found.
        """
        if "content-type" not in self.headers:
            return "application/octet-stream"
        return str(parse_mimetype(self.headers.get_folded("content-type")))

    @property
    def content_length(self) -> typing.Optional[int]:
        if "content-length" in self.headers:
            values = self.headers.get_all("content-length")
            if len(set(values)) == 1 and values[0].isdigit():
                return int(values[0])
        return None

    @property
    def encoding(self) -> str:
        """Returns the 'encoding' of the response body.
        - If encoding has been set manually, always use that value.
        - If there is a 'charset=X' within the 'Content-Type' header
          and its an encoding that Python understands.
        - Otherwise the body is fed to chardet.
        """
        if self._encoding:
            return self._encoding
        if "content-type" in self.headers:
            mimetype = parse_mimetype(self.headers.get_folded("content-type"))
            charset = mimetype.parameters.get("charset")
            if charset:
                self._encoding = is_known_encoding(charset)
        if self._encoding is None:
            self._encoding = detect_encoding(self.data)
        return self._encoding

    @encoding.setter
    def encoding(self, value: str) -> None:
        self._encoding = value

    def text(self) -> str:
        return self.data.decode(self.encoding, errors="replace")

    def json(self) -> typing.Any:
        """Decodes the body as JSON. An empty body decodes to '{}'
        which is what AWS JSON protocols mean by it.
        """
        if not self.data.strip():
            return {}
        return json.loads(self.text())

    def __repr__(self) -> str:
        return "<Response [%d]>" % self.status_code


class TLSVersion(enum.Enum):
    """Version specifier for TLS. Unless attempting to connect
    with only a single TLS version 'tls_max_version' should
    be 'MAXIMUM_SUPPORTED'
    """

    MINIMUM_SUPPORTED = "MINIMUM_SUPPORTED"
    TLSv1_2 = "TLSv1.2"
    TLSv1_3 = "TLSv1.3"
    MAXIMUM_SUPPORTED = "MAXIMUM_SUPPORTED"

    def to_ssl(self) -> ssl.TLSVersion:
        return getattr(ssl.TLSVersion, self.name)


def create_ssl_context(
    ca_certs: typing.Optional[CACertsType],
    tls_min_version: TLSVersion,
    tls_max_version: TLSVersion,
) -> ssl.SSLContext:
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

    if ca_certs:
        if isinstance(ca_certs, bytes):
            ctx.load_verify_locations(cadata=ca_certs)
        elif os.path.isdir(ca_certs):
            ctx.load_verify_locations(capath=ca_certs)
        elif os.path.isfile(ca_certs):
            ctx.load_verify_locations(cafile=ca_certs)
        else:
            raise ValueError(f"ca_certs '{ca_certs}' is not a file or directory")
    else:
        ctx.load_default_certs()

    ctx.minimum_version = tls_min_version.to_ssl()
    ctx.maximum_version = tls_max_version.to_ssl()
    ctx.set_alpn_protocols(["http/1.1"])
    ctx.verify_mode = ssl.CERT_REQUIRED
    ctx.check_hostname = True
    return ctx
