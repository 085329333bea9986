import contextlib
import dataclasses as dc
import logging
import socket
import ssl

import httpx

from relaywire._version import __version__

logger = logging.getLogger(__name__)


def _base_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=100,
        max_keepalive_connections=20,
        keepalive_expiry=15,
    )


def _base_timeouts() -> httpx.Timeout:
    return httpx.Timeout(
        connect=5.0,
        read=10.0,
        write=10.0,
        pool=5.0,
    )


def _default_headers() -> dict[str, str]:
    return {
        'Accept': 'application/json',
    }


def get_socket_options() -> list[tuple]:
    '''
    cross platform socket options for TCP connections

    Returns
    -------
    list[SockOpt]
    '''
    opts = []

    if hasattr(socket, "TCP_NODELAY"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_NODELAY, 1))

    if hasattr(socket, "SO_KEEPALIVE"):
        opts.append((socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1))

    if hasattr(socket, "TCP_KEEPIDLE"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, 60))

    if hasattr(socket, "TCP_KEEPINTVL"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, 10))

    return opts


def api_ssl_context() -> ssl.SSLContext:
    '''
    creates the SSL context used by the default transport; TLS 1.2
    is the floor, ALPN offers http 2 before http 1.1 and hostname
    verification is always on.

    Returns
    -------
    ssl.SSLContext
    '''
    ctx = ssl.create_default_context(purpose=ssl.Purpose.SERVER_AUTH)

    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED

    with contextlib.suppress(NotImplementedError):
        ctx.set_alpn_protocols(["h2", "http/1.1"])

    ctx.options |= ssl.OP_NO_COMPRESSION
    return ctx


class RelaywireTransport(httpx.AsyncBaseTransport):
    '''
    The default transport for both strategies, an `httpx.AsyncHTTPTransport`
    with keepalive socket options and a strict TLS context. Connection level
    retries are disabled, a failed exchange is always reported to the caller.
    '''
    def __init__(
        self,
        *,
        http2: bool = True,
        trust_env: bool = False,
    ) -> None:
        self._inner: httpx.AsyncHTTPTransport = httpx.AsyncHTTPTransport(
            http2=http2,
            socket_options=get_socket_options(),
            verify=api_ssl_context(),
            trust_env=trust_env,
            retries=0,
        )

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        logger.debug(f'Sending request: {request.method} {request.url}')
        return await self._inner.handle_async_request(request)

    async def aclose(self) -> None:
        await self._inner.aclose()


@dc.dataclass(slots=True)
class ClientConfig:
    '''
    Configuration options shared by the transport strategies.
    Good defaults are provided for most use cases.

    `follow_redirects` only applies to the fetch strategy, the
    legacy strategy never follows a redirect.
    '''
    timeout: httpx.Timeout = dc.field(default_factory=_base_timeouts)
    limits: httpx.Limits = dc.field(default_factory=_base_limits)
    headers: dict[str, str] = dc.field(default_factory=_default_headers)
    user_agent: str = f'relaywire/{__version__}'
    http2: bool = True
    follow_redirects: bool = True
    trust_env: bool = False
    transport: httpx.AsyncBaseTransport | None = None


class RelaywireClient(httpx.AsyncClient):
    '''
    Thin wrapper around httpx.AsyncClient configured
    from a `ClientConfig`.
    '''

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        follow_redirects: bool | None = None,
    ) -> None:
        self._config: ClientConfig = config or ClientConfig()

        transport = transport or self._config.transport or RelaywireTransport(
            http2=self._config.http2,
            trust_env=self._config.trust_env,
        )

        all_headers = {'User-Agent': self._config.user_agent}
        all_headers.update(self._config.headers)

        if follow_redirects is None:
            follow_redirects = self._config.follow_redirects

        super().__init__(
            transport=transport,
            limits=self._config.limits,
            timeout=self._config.timeout,
            headers=all_headers,
            follow_redirects=follow_redirects,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config
