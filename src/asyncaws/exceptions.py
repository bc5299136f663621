import typing

if typing.TYPE_CHECKING:
    from .models import Request, Response


class AsyncAwsError(Exception):
    """Base error type for 'asyncaws' which may carry the Request
    that was being sent, the Response that was received, and the
    encapsulated error if this error wraps a different exception.
    """

    def __init__(
        self,
        message: str,
        request: typing.Optional["Request"] = None,
        response: typing.Optional["Response"] = None,
        error: typing.Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.request = request
        self.response = response
        self.error = error


class BodyError(AsyncAwsError):
    """Generic error relating to a request body"""


class SourceReadFailure(BodyError):
    """Error raised when the resource behind a body source (file,
    producer, chunk sequence) fails while being read. The original
    exception is available via '.error'.
    """


class InvalidLengthOverride(BodyError):
    """Error raised when an explicit 'ContentLength' is negative or not a number"""


class UnrewindableBodyError(BodyError):
    """Error raised when a request needs to be sent again due to retry
    but the request body cannot be rewound.
    """


class RequestBodyReleased(BodyError):
    """Error raised when reading from a body after its source was released"""


class InvalidArgument(AsyncAwsError):
    """Error raised when an operation input is missing a required
    parameter or carries a value that isn't allowed.
    """


class HTTPError(AsyncAwsError):
    """Generic error relating to HTTP"""


class LocalProtocolError(HTTPError):
    """Error raised when the HTTP/1.1 protocol is violated locally"""


class RemoteProtocolError(HTTPError):
    """Error raised when the remote peer violates the HTTP/1.1 protocol"""


class ServiceError(HTTPError):
    """Error response returned by an AWS service"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int,
        request_id: typing.Optional[str] = None,
        **kwargs: typing.Any,
    ):
        super().__init__(message, **kwargs)

        self.code = code
        self.status_code = status_code
        self.request_id = request_id

    def __str__(self) -> str:
        return f"{self.code} ({self.status_code}): {self.message}"


class TimeoutError(AsyncAwsError):
    """Error raised when an operation times out"""


class ReadTimeout(TimeoutError):
    """Error raised when reading from a socket times out"""


class ConnectTimeout(TimeoutError):
    """Error raised when a socket connection times out"""


class ConnectionError(AsyncAwsError):
    """Generic error raised while attempting to setup a connection"""


class NameResolutionError(ConnectionError):
    """Error raised when DNS fails to resolve a hostname"""


class TLSError(ConnectionError):
    """Generic error related to the TLS protocol"""


class CertificateError(TLSError):
    """Generic error related to certificate verification"""


class URLError(AsyncAwsError):
    """Error while parsing a URL"""
