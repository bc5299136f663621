import logging
import ssl
import typing

from ._backends import AsyncBackend, AsyncSocket, get_backend
from .body import RequestBody
from .http1 import HTTP11Transaction
from .models import (
    CACertsType,
    Origin,
    Request,
    Response,
    TLSVersion,
    create_ssl_context,
)

logger = logging.getLogger(__name__)


class ConnectionConfig(typing.NamedTuple):
    """Everything a pooled connection must agree on to be reused"""

    origin: Origin
    ca_certs: typing.Optional[CACertsType]
    tls_min_version: TLSVersion
    tls_max_version: TLSVersion


class ConnectionManager:
    """Keeps idle keep-alive connections per 'ConnectionConfig' and
    runs each request as an 'HTTP11Transaction' on one of them.
    """

    def __init__(self, backend: typing.Optional[AsyncBackend] = None):
        self.pool: typing.Dict[ConnectionConfig, typing.List[AsyncSocket]] = {}
        self._backend = backend
        self._ssl_contexts: typing.Dict[ConnectionConfig, ssl.SSLContext] = {}

    @property
    def backend(self) -> AsyncBackend:
        if self._backend is None:
            self._backend = get_backend()
        return self._backend

    async def send(
        self,
        conn_config: ConnectionConfig,
        request: Request,
        body: RequestBody,
        timeout: float,
    ) -> Response:
        socket = await self._get_socket(conn_config, timeout)
        transaction = HTTP11Transaction(socket, read_timeout=timeout)
        try:
            response = await transaction.send_request(request, body)
        except BaseException:
            await socket.aclose()
            raise

        if transaction.reusable():
            self.pool.setdefault(conn_config, []).append(socket)
        else:
            await socket.aclose()
        return response

    async def aclose(self) -> None:
        pool, self.pool = self.pool, {}
        for sockets in pool.values():
            for socket in sockets:
                await socket.aclose()

    async def _get_socket(
        self, conn_config: ConnectionConfig, timeout: float
    ) -> AsyncSocket:
        sockets = self.pool.get(conn_config, [])
        while sockets:
            socket = sockets.pop()
            if socket.is_connected():
                logger.debug("reusing connection to %s", conn_config.origin)
                return socket
            # Drop the connections that are defunct.
            await socket.aclose()
        return await self._new_socket(conn_config, timeout)

    async def _new_socket(
        self, conn_config: ConnectionConfig, timeout: float
    ) -> AsyncSocket:
        scheme, host, port = conn_config.origin
        ssl_context = None
        if scheme == "https":
            ssl_context = self._ssl_contexts.get(conn_config)
            if ssl_context is None:
                ssl_context = create_ssl_context(
                    ca_certs=conn_config.ca_certs,
                    tls_min_version=conn_config.tls_min_version,
                    tls_max_version=conn_config.tls_max_version,
                )
                self._ssl_contexts[conn_config] = ssl_context

        logger.debug("opening connection to %s", conn_config.origin)
        return await self.backend.connect(
            host,
            port,
            connect_timeout=timeout,
            ssl_context=ssl_context,
            server_hostname=host,
        )
