'''
**relaywire.http._legacy**
---------

The callback driven transport. `LegacyRequest` is a small XHR-like handle
running on the asyncio event loop: it is opened, configured, sent, and then
reports progress through its ready state and three callbacks. The
`LegacyStrategy` wires those callbacks to a single future so the caller still
awaits one result.
'''
import asyncio
import enum
import json
import logging
import re
from collections.abc import Callable
from typing import Any
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from relaywire.http._client import ClientConfig, RelaywireClient
from relaywire.http._descriptor import (
    NormalizedResponse,
    RequestDescriptor,
    ResponseType,
)
from relaywire.http._errors import (
    GatewayTimeoutError,
    HttpError,
    RelaywireError,
    UnsupportedPayloadError,
    classify_error,
)
from relaywire.http._headers import format_raw_headers, parse_raw_headers
from relaywire.http._strategy import TransportStrategy

logger = logging.getLogger(__name__)


class ReadyState(enum.IntEnum):
    UNSENT = 0
    OPENED = 1
    SENT = 2
    HEADERS_RECEIVED = 3
    LOADING = 4
    DONE = 5


_DOCUMENT_TYPES = ('html', 'xml')
_JSON_TYPE = re.compile(r'application/json')
_BODYLESS_METHODS = ('GET', 'HEAD')


class LegacyRequest:
    '''
    An XHR-like handle for a single exchange.

    The handle moves forward through `ReadyState` and calls
    `on_ready_state_change` after every transition. A failure before
    `DONE` calls `on_error` (or `on_timeout` once `timeout` seconds
    have elapsed) instead, and the handle never reaches `DONE`.
    Redirects are never followed.
    '''

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client
        self.ready_state: ReadyState = ReadyState.UNSENT
        self.status: int = 0
        self.timeout: float = 0
        self.response_type: ResponseType = ''

        self.on_ready_state_change: Callable[[], Any] | None = None
        self.on_error: Callable[[BaseException], Any] | None = None
        self.on_timeout: Callable[[], Any] | None = None

        self._method: str = 'GET'
        self._url: str = ''
        self._headers: dict[str, str] = {}
        self._response_headers: httpx.Headers | None = None
        self._payload: Any = None
        self._text: str | None = None
        self._document: BeautifulSoup | None = None
        self._task: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def open(self, method: str, url: str) -> None:
        self._method = method.upper()
        self._url = url
        self._transition(ReadyState.OPENED)

    def set_request_header(self, name: str, value: str) -> None:
        if self.ready_state is not ReadyState.OPENED:
            raise RelaywireError(
                f'Cannot set request headers in state {self.ready_state.name}'
            )
        self._headers[name] = value

    def send(self, body: str | bytes | None = None) -> None:
        '''
        Start the exchange on the running event loop and return
        immediately; the outcome is reported through the callbacks.

        Parameters
        ----------
        body : str | bytes | None, optional
            ignored for GET and HEAD requests
        '''
        if self.ready_state is not ReadyState.OPENED:
            raise RelaywireError(f'Cannot send in state {self.ready_state.name}')

        if self._method in _BODYLESS_METHODS:
            body = None

        self._transition(ReadyState.SENT)
        self._task = asyncio.get_running_loop().create_task(self._run(body))

    def abort(self) -> None:
        '''
        Cancel an exchange that has not completed. The handle moves
        straight to `DONE` with a status of 0.
        '''
        if self._task is not None:
            self._task.cancel()

        if self.ready_state in (ReadyState.UNSENT, ReadyState.DONE):
            return

        self.status = 0
        self._transition(ReadyState.DONE)

    def get_all_response_headers(self) -> str:
        if self._response_headers is None:
            return ''
        return format_raw_headers(self._response_headers)

    @property
    def response(self) -> Any:
        if self.ready_state is not ReadyState.DONE:
            return None

        match self.response_type:
            case '' | 'text':
                return self._text
            case 'document':
                return self._document
            case _:
                return self._payload

    @property
    def response_text(self) -> str | None:
        if self.response_type not in ('', 'text'):
            raise RelaywireError(
                f'response_text is unavailable for response type {self.response_type!r}'
            )
        return self._text

    @property
    def response_xml(self) -> BeautifulSoup | None:
        if self.response_type not in ('', 'document'):
            raise RelaywireError(
                f'response_xml is unavailable for response type {self.response_type!r}'
            )
        return self._document

    def _transition(self, state: ReadyState) -> None:
        logger.debug(f'{self._method} {self._url}: {self.ready_state.name} -> {state.name}')
        self.ready_state = state
        if self.on_ready_state_change is not None:
            self.on_ready_state_change()

    async def _run(self, body: str | bytes | None) -> None:
        try:
            async with asyncio.timeout(self.timeout or None):
                await self._exchange(body)
        except (TimeoutError, httpx.TimeoutException):
            logger.debug(f'{self._method} {self._url}: timed out')
            if self.on_timeout is not None:
                self.on_timeout()
        except Exception as exc:
            logger.debug(f'{self._method} {self._url}: failed with {exc!r}')
            if self.on_error is not None:
                self.on_error(exc)

    async def _exchange(self, body: str | bytes | None) -> None:
        options = {}
        if self.timeout:
            options['timeout'] = self.timeout

        request = self._client.build_request(
            method=self._method,
            url=self._url,
            headers=self._headers,
            content=body,
            **options,
        )
        response = await self._client.send(request, stream=True, follow_redirects=False)
        try:
            self.status = response.status_code
            self._response_headers = response.headers
            self._transition(ReadyState.HEADERS_RECEIVED)

            self._transition(ReadyState.LOADING)
            content = await response.aread()
        finally:
            await response.aclose()

        self._load(response, content)
        self._transition(ReadyState.DONE)

    def _load(self, response: httpx.Response, content: bytes) -> None:
        match self.response_type:
            case 'arraybuffer':
                self._payload = content
            case 'json':
                self._payload = json.loads(self._decode(response, content)) if content else None
            case 'document':
                self._document = self._parse_document(response, content)
            case _:
                self._text = self._decode(response, content)
                self._document = self._parse_document(response, content)

    def _decode(self, response: httpx.Response, content: bytes) -> str:
        encoding = response.encoding or 'utf-8'
        try:
            return content.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise UnsupportedPayloadError(
                f'Cannot read {response.headers.get("content-type", "response")} '
                f'body as {encoding} text'
            ) from exc

    def _parse_document(
        self,
        response: httpx.Response,
        content: bytes,
    ) -> BeautifulSoup | None:
        content_type = response.headers.get('content-type', '')
        if not content or not any(kind in content_type for kind in _DOCUMENT_TYPES):
            return None
        return BeautifulSoup(self._decode(response, content), 'html.parser')


def is_error_status(status: int) -> bool:
    '''
    Whether a completed legacy exchange failed. A status below 10 means
    the exchange never produced an HTTP status (e.g. it was aborted).
    '''
    return 400 <= status <= 599 or status < 10


def extract_body(handle: LegacyRequest) -> Any:
    # typed payloads may be falsy ([], {}, 0, b'') and are still the body
    if handle.response_type not in ('', 'text'):
        return handle.response
    if handle.response:
        return handle.response
    if handle.response_type == '':
        return handle.response_text or handle.response_xml or ''
    return handle.response_text or ''


def _error_message(body: Any) -> str:
    if body is None:
        return ''
    if isinstance(body, str):
        return body
    if isinstance(body, bytes):
        return body.decode('utf-8', errors='replace')
    if isinstance(body, (dict, list)):
        return json.dumps(body)
    return str(body)


class LegacyStrategy(TransportStrategy):
    '''
    The callback driven transport, for environments where the awaitable
    fetch path is unavailable. Redirects are reported (the tracked URL is
    updated) but never followed.
    '''

    def __init__(self, config: ClientConfig | None = None) -> None:
        self._config: ClientConfig = config or ClientConfig()
        self._client: RelaywireClient | None = None

    @property
    def client(self) -> RelaywireClient:
        if self._client is None:
            self._client = RelaywireClient(self._config, follow_redirects=False)
        return self._client

    def _client_for(self, descriptor: RequestDescriptor) -> RelaywireClient:
        if descriptor.agent is None:
            return self.client
        return RelaywireClient(
            self._config,
            transport=descriptor.agent,
            follow_redirects=False,
        )

    async def execute(self, descriptor: RequestDescriptor) -> NormalizedResponse:
        meta: dict[str, str] = {}
        settled: asyncio.Future[NormalizedResponse] = (
            asyncio.get_running_loop().create_future()
        )

        handle = LegacyRequest(self._client_for(descriptor))
        handle.open(descriptor.method, descriptor.url)
        if descriptor.timeout:
            handle.timeout = descriptor.timeout
        handle.response_type = descriptor.response_type

        descriptor.drop_header('user-agent')
        for name, value in descriptor.headers.items():
            handle.set_request_header(name, value)

        def reject(exc: BaseException) -> None:
            if not settled.done():
                settled.set_exception(exc)

        def on_ready_state_change() -> None:
            if handle.ready_state is not ReadyState.DONE or settled.done():
                return
            try:
                settled.set_result(self._complete(handle, descriptor, meta))
            except Exception as exc:
                reject(exc)

        def on_timeout() -> None:
            raw = handle.get_all_response_headers()
            reject(GatewayTimeoutError(parse_raw_headers(raw.split('\n'), meta)))

        handle.on_ready_state_change = on_ready_state_change
        handle.on_error = reject
        handle.on_timeout = on_timeout

        handle.send(descriptor.body)
        try:
            return await settled
        except HttpError:
            raise
        except Exception as exc:
            raise classify_error(exc, meta) from exc
        finally:
            if handle.in_flight:
                handle.abort()

    def _complete(
        self,
        handle: LegacyRequest,
        descriptor: RequestDescriptor,
        meta: dict[str, str],
    ) -> NormalizedResponse:
        parse_raw_headers(handle.get_all_response_headers().split('\n'), meta)
        status = handle.status

        if 300 <= status <= 399 and 'location' in meta:
            descriptor.url = urljoin(descriptor.url, meta['location'])

        if status == 304:
            raise HttpError('Not modified', status, meta)

        body = None if status == 204 else extract_body(handle)
        if is_error_status(status):
            raise HttpError(_error_message(body), status, meta)

        # an untyped response is parsed by content type, as the fetch path does
        if handle.response_type == '' and isinstance(body, str):
            if _JSON_TYPE.search(meta.get('content-type', '')):
                body = json.loads(body)

        return NormalizedResponse(body, meta, status, descriptor.url)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
