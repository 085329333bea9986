import asyncio
import logging
import re
from typing import Any

import httpx

from relaywire.http._client import ClientConfig, RelaywireClient
from relaywire.http._descriptor import NormalizedResponse, RequestDescriptor
from relaywire.http._errors import GatewayTimeoutError, HttpError, classify_error
from relaywire.http._headers import collect_headers
from relaywire.http._strategy import TransportStrategy

logger = logging.getLogger(__name__)


_JSON_TYPE = re.compile(r'application/json')
_TEXT_TYPE = re.compile(r'^text/|charset=utf-8$')


async def read_buffer(response: httpx.Response) -> bytes:
    '''
    The binary-payload reader, returns the raw response body.
    '''
    return await response.aread()


async def read_payload(response: httpx.Response) -> Any:
    '''
    Read a successful response body according to its content type:
    JSON is parsed, text (or an absent content type) is decoded and
    anything else is returned as raw bytes.

    Parameters
    ----------
    response : httpx.Response

    Returns
    -------
    Any
    '''
    content_type = response.headers.get('content-type')

    if content_type and _JSON_TYPE.search(content_type):
        await response.aread()
        return response.json()

    if not content_type or _TEXT_TYPE.search(content_type):
        await response.aread()
        return response.text

    return await read_buffer(response)


class FetchStrategy(TransportStrategy):
    '''
    The awaitable transport: one `send` on an httpx client, then the
    response is mapped into a `NormalizedResponse`.
    '''

    def __init__(self, config: ClientConfig | None = None) -> None:
        self._config: ClientConfig = config or ClientConfig()
        self._client: RelaywireClient | None = None

    @property
    def client(self) -> RelaywireClient:
        if self._client is None:
            self._client = RelaywireClient(self._config)
        return self._client

    def _client_for(self, descriptor: RequestDescriptor) -> RelaywireClient:
        if descriptor.agent is None:
            return self.client

        # the agent belongs to the caller, closing this client would close it
        return RelaywireClient(self._config, transport=descriptor.agent)

    async def execute(self, descriptor: RequestDescriptor) -> NormalizedResponse:
        meta: dict[str, str] = {}
        try:
            async with asyncio.timeout(descriptor.timeout or None):
                return await self._exchange(descriptor, meta)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise GatewayTimeoutError(meta) from exc
        except HttpError:
            raise
        except Exception as exc:
            raise classify_error(exc, meta) from exc

    async def _exchange(
        self,
        descriptor: RequestDescriptor,
        meta: dict[str, str],
    ) -> NormalizedResponse:
        client = self._client_for(descriptor)

        options = {}
        if descriptor.timeout:
            options['timeout'] = descriptor.timeout

        request = client.build_request(
            method=descriptor.method,
            url=descriptor.url,
            headers=descriptor.headers,
            content=descriptor.body,
            **options,
        )
        response = await client.send(request, stream=True)
        try:
            return await self._map_response(descriptor, response, meta)
        finally:
            await response.aclose()

    async def _map_response(
        self,
        descriptor: RequestDescriptor,
        response: httpx.Response,
        meta: dict[str, str],
    ) -> NormalizedResponse:
        collect_headers(response.headers, meta)
        status = response.status_code
        logger.debug(f'Received {status} for {descriptor.method} {descriptor.url}')

        if status == 204:
            return NormalizedResponse(None, meta, status, str(response.url))

        if status == 304:
            descriptor.url = meta.get('location', descriptor.url)
            raise HttpError('Not modified', status, meta)

        if status >= 400:
            await response.aread()
            raise HttpError(response.text, status, meta)

        data = await read_payload(response)
        return NormalizedResponse(data, meta, status, str(response.url))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

