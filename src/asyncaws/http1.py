import typing

import h11

from ._backends import AsyncSocket
from .body import RequestBody
from .exceptions import LocalProtocolError, RemoteProtocolError
from .models import Request, Response
from .utils import CHUNK_SIZE


class HTTP11Transaction:
    """Sends one request over a socket and reads back its response.

    The request body is pulled from 'RequestBody.next()' one chunk at
    a time and written out before the next chunk is requested, so at
    most one chunk of the body is held here at any moment.
    """

    def __init__(self, socket: AsyncSocket, read_timeout: float):
        self.socket = socket
        self.read_timeout = read_timeout
        self.h11 = h11.Connection(h11.CLIENT)

    async def send_request(self, request: Request, body: RequestBody) -> Response:
        _set_framing_headers(request, body)
        try:
            await self.socket.send_all(self.h11.send(_request_to_h11_event(request)))

            data = await body.next(CHUNK_SIZE)
            while data:
                await self.socket.send_all(self.h11.send(h11.Data(data=data)))
                data = await body.next(CHUNK_SIZE)

            # h11 refuses to end a message that doesn't match 'Content-Length'.
            await self.socket.send_all(self.h11.send(h11.EndOfMessage()))
        except h11.LocalProtocolError as e:
            raise LocalProtocolError(str(e), request=request, error=e) from e

        try:
            return await self._receive_response(request)
        except h11.RemoteProtocolError as e:
            raise RemoteProtocolError(str(e), request=request, error=e) from e

    async def _receive_response(self, request: Request) -> Response:
        response: typing.Optional[Response] = None
        response_data: typing.List[bytes] = []

        while True:
            event = self.h11.next_event()
            if event is h11.NEED_DATA:
                self.h11.receive_data(
                    await self.socket.receive_some(self.read_timeout)
                )
            elif isinstance(event, h11.InformationalResponse):
                continue
            elif isinstance(event, h11.Response):
                response = Response(
                    status_code=event.status_code,
                    headers=event.headers,
                    http_version=f"HTTP/{event.http_version.decode()}",
                    request=request,
                )
            elif isinstance(event, h11.Data):
                response_data.append(bytes(event.data))
            elif isinstance(event, h11.EndOfMessage):
                break
            else:
                raise RemoteProtocolError(
                    f"connection closed before the response completed: {event!r}",
                    request=request,
                )

        assert response is not None
        response.data = b"".join(response_data)
        return response

    def reusable(self) -> bool:
        """Readies the connection for a different transaction if possible."""
        try:
            self.h11.start_next_cycle()
        except h11.LocalProtocolError:
            return False
        return True


def _set_framing_headers(request: Request, body: RequestBody) -> None:
    if (
        "transfer-encoding" not in request.headers
        and "content-length" not in request.headers
    ):
        if body.content_length is None:
            request.headers["transfer-encoding"] = "chunked"
        else:
            request.headers["content-length"] = str(body.content_length)


def _request_to_h11_event(request: Request) -> h11.Request:
    # Put the 'Host' header first in the request as it's required.
    h11_headers = [(b"host", request.headers["host"].encode())]
    for k, v in request.headers.items():
        if k != "host" and v is not None:
            h11_headers.append((k.encode(), v.encode()))
    return h11.Request(
        method=request.method.encode(),
        target=request.target.encode(),
        headers=h11_headers,
    )
