'''
**relaywire.http**
---------

The HTTP transport layer: request normalization, the fetch-style and
legacy (callback driven) transport strategies, and the `HttpError`
every failed exchange is classified into.
'''
from relaywire.http._client import (
    ClientConfig,
    RelaywireClient,
    RelaywireTransport,
    api_ssl_context,
)
from relaywire.http._descriptor import (
    NormalizedResponse,
    RequestDescriptor,
    normalize_request,
)
from relaywire.http._dispatch import RequestDispatcher, create_strategy, request
from relaywire.http._errors import (
    GatewayTimeoutError,
    HttpError,
    RelaywireError,
    UnsupportedPayloadError,
    classify_error,
)
from relaywire.http._fetch import FetchStrategy, read_buffer
from relaywire.http._headers import collect_headers, parse_raw_headers
from relaywire.http._legacy import LegacyRequest, LegacyStrategy, ReadyState
from relaywire.http._strategy import TransportStrategy

__all__ = [
    'ClientConfig',
    'RelaywireClient',
    'RelaywireTransport',
    'api_ssl_context',
    'NormalizedResponse',
    'RequestDescriptor',
    'normalize_request',
    'RequestDispatcher',
    'create_strategy',
    'request',
    'GatewayTimeoutError',
    'HttpError',
    'RelaywireError',
    'UnsupportedPayloadError',
    'classify_error',
    'FetchStrategy',
    'read_buffer',
    'collect_headers',
    'parse_raw_headers',
    'LegacyRequest',
    'LegacyStrategy',
    'ReadyState',
    'TransportStrategy',
]
