from .body import (
    BodySource,
    BufferSource,
    HandleSource,
    ProducerSource,
    ChunkSequenceSource,
    RequestBody,
    create_body_source,
    resolve_length,
    build_request_body,
)
from .client import AwsClient
from .exceptions import (
    AsyncAwsError,
    BodyError,
    SourceReadFailure,
    InvalidLengthOverride,
    UnrewindableBodyError,
    RequestBodyReleased,
    InvalidArgument,
    HTTPError,
    LocalProtocolError,
    RemoteProtocolError,
    ServiceError,
    TimeoutError,
    ReadTimeout,
    ConnectTimeout,
    ConnectionError,
    NameResolutionError,
    TLSError,
    CertificateError,
    URLError,
)
from .models import URL, Headers, Params, Request, Response, TLSVersion, PARAM_NO_VALUE
from .transport import Transport, HTTPTransport
from .services import S3Client, DynamoDbClient

__all__ = [
    "BodySource",
    "BufferSource",
    "HandleSource",
    "ProducerSource",
    "ChunkSequenceSource",
    "RequestBody",
    "create_body_source",
    "resolve_length",
    "build_request_body",
    "AwsClient",
    "S3Client",
    "DynamoDbClient",
    "Transport",
    "HTTPTransport",
    "URL",
    "Headers",
    "Params",
    "Request",
    "Response",
    "TLSVersion",
    "PARAM_NO_VALUE",
    "AsyncAwsError",
    "BodyError",
    "SourceReadFailure",
    "InvalidLengthOverride",
    "UnrewindableBodyError",
    "RequestBodyReleased",
    "InvalidArgument",
    "HTTPError",
    "LocalProtocolError",
    "RemoteProtocolError",
    "ServiceError",
    "TimeoutError",
    "ReadTimeout",
    "ConnectTimeout",
    "ConnectionError",
    "NameResolutionError",
    "TLSError",
    "CertificateError",
    "URLError",
]

__version__ = "0.1.0"
