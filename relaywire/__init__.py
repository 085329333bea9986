'''
**relaywire**
---------

The HTTP transport layer for an API client: it normalizes a request
descriptor, performs the exchange through a fetch-style or a legacy
callback driven transport, and returns a uniform `{data, meta}` result
or raises a classified `HttpError`.
'''
from relaywire._version import __version__
from relaywire.http import (
    ClientConfig,
    GatewayTimeoutError,
    HttpError,
    NormalizedResponse,
    RequestDescriptor,
    RequestDispatcher,
    request,
)

__all__ = [
    '__version__',
    'ClientConfig',
    'GatewayTimeoutError',
    'HttpError',
    'NormalizedResponse',
    'RequestDescriptor',
    'RequestDispatcher',
    'request',
]
