import logging
import os
import typing

import certifi

from .body import BufferSource, build_request_body, resolve_length
from .exceptions import AsyncAwsError, ServiceError
from .input import Input
from .models import (
    URL,
    CACertsType,
    Headers,
    HeadersType,
    Request,
    Response,
    TLSVersion,
    URLType,
)
from .transport import HTTPTransport, Transport
from .utils import sync_or_async, user_agent

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"

AuthType = typing.Callable[
    [Request], typing.Union[Request, typing.Awaitable[Request]]
]


class AwsClient:
    """
    The central instance for one AWS service. Binds operation inputs to
    the service endpoint, turns their bodies into a 'RequestBody' and
    hands everything to the transport.

    Request signing isn't done here: pass 'auth=' a (sync or async)
    callable that receives the prepared 'Request' and returns it with
    whatever headers it needs.
    """

    #: Endpoint prefix of the service, e.g. 's3' or 'dynamodb'.
    service = ""

    def __init__(
        self,
        *,
        region: typing.Optional[str] = None,
        endpoint: typing.Optional[URLType] = None,
        headers: typing.Optional[HeadersType] = None,
        auth: typing.Optional[AuthType] = None,
        timeout: float = 10.0,
        retries: int = 0,
        ca_certs: typing.Optional[CACertsType] = certifi.where(),
        tls_min_version: TLSVersion = TLSVersion.TLSv1_2,
        tls_max_version: TLSVersion = TLSVersion.MAXIMUM_SUPPORTED,
        trust_env: bool = True,
        transport: typing.Optional[Transport] = None,
    ):
        if trust_env:
            region = (
                region
                or os.environ.get("AWS_REGION")
                or os.environ.get("AWS_DEFAULT_REGION")
            )
            endpoint = endpoint or os.environ.get("AWS_ENDPOINT_URL")

        self.region = region or DEFAULT_REGION
        self.endpoint = URL.parse(endpoint or self.default_endpoint())
        self.headers = Headers(headers or ())
        self.auth = auth
        self.transport = transport or HTTPTransport(
            timeout=timeout,
            retries=retries,
            ca_certs=ca_certs,
            tls_min_version=tls_min_version,
            tls_max_version=tls_max_version,
        )

    def default_endpoint(self) -> str:
        return f"https://{self.service}.{self.region}.amazonaws.com"

    async def send(self, input: Input) -> Response:
        """Sends an operation input and returns the successful response.
        Error responses are raised as 'ServiceError'.
        """
        request = input.request()
        source = request.body if request.body is not None else BufferSource(b"")

        # The source is owned from here on and released if sending fails.
        try:
            request = await self.prepare_request(request)
            length = await resolve_length(source, request.content_length)
            body = await build_request_body(source, length)
        except BaseException:
            await source.release()
            raise

        async with body:
            try:
                response = await self.transport.send(request, body)
            except AsyncAwsError as e:
                if e.request is None:
                    e.request = request
                raise

        logger.debug("%r %s -> %r", request, request.url, response)
        if not response.is_success:
            error = self.parse_error(response)
            error.request = request
            error.response = response
            raise error
        return response

    async def prepare_request(self, request: Request) -> Request:
        """Moves an operation's request onto the endpoint and merges in
        the client level headers and auth.
        """
        request.url = self.endpoint.join(request.url.path, request.url.params)

        headers = self.headers.copy()
        for k, v in request.headers.items():
            headers[k] = v
        request.headers = headers

        request.headers.setdefault("host", request.url.netloc)
        request.headers.setdefault("user-agent", user_agent())
        if "content-type" not in request.headers and request.body is not None:
            request.headers["content-type"] = (
                await request.body.content_type() or "application/octet-stream"
            )

        if self.auth is not None:
            request = await sync_or_async(self.auth, request)
        return request

    def parse_error(self, response: Response) -> ServiceError:
        return ServiceError(
            response.text() or "unknown error",
            code="UnknownError",
            status_code=response.status_code,
        )

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> "AwsClient":
        return self

    async def __aexit__(self, *_: typing.Any) -> None:
        await self.aclose()
