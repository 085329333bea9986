import dataclasses as dc
import json
from typing import Any, Literal

import httpx


ResponseType = Literal['', 'text', 'json', 'arraybuffer', 'document']

JSON_CONTENT_TYPE = 'application/json; charset=utf-8'

# methods that must carry an explicit (possibly empty) body
_BODY_REQUIRED = ('PATCH', 'PUT')
_JSON_BODIES = (dict, list, tuple, int, float)


def is_empty_body(body: Any) -> bool:
    return body is None or (isinstance(body, (str, bytes)) and not body)


@dc.dataclass(slots=True)
class RequestDescriptor:
    '''
    Describes one HTTP request to dispatch. Built by the caller,
    canonicalized in place by `normalize_request`.
    '''
    url: str
    method: str = 'GET'
    headers: dict[str, str] = dc.field(default_factory=dict)
    body: Any = None
    timeout: float | None = None
    agent: httpx.AsyncBaseTransport | None = None
    use_legacy_transport: bool = False
    response_type: ResponseType = ''

    def get_header(self, name: str) -> str | None:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None

    def drop_header(self, name: str) -> None:
        name = name.lower()
        for key in [k for k in self.headers if k.lower() == name]:
            del self.headers[key]


@dc.dataclass(slots=True)
class NormalizedResponse:
    '''
    The uniform result of a successful exchange.
    '''
    data: Any
    meta: dict[str, str] = dc.field(default_factory=dict)
    status_code: int = 200
    url: str = ''


def normalize_request(descriptor: RequestDescriptor) -> RequestDescriptor:
    '''
    Canonicalize a descriptor before dispatch, mutating it in place.

    - defaults the content type to JSON when a body is present
    - uppercases the method
    - gives bodiless PUT/PATCH requests an empty body so a
      `content-length: 0` header is sent
    - serializes dict, list and number or boolean bodies to JSON text

    Parameters
    ----------
    descriptor : RequestDescriptor

    Returns
    -------
    RequestDescriptor
        The same descriptor instance.
    '''
    has_body = not is_empty_body(descriptor.body)
    if has_body and descriptor.get_header('content-type') is None:
        descriptor.headers['content-type'] = JSON_CONTENT_TYPE

    descriptor.method = descriptor.method.upper()

    if descriptor.method in _BODY_REQUIRED and not has_body:
        descriptor.body = ''

    if isinstance(descriptor.body, _JSON_BODIES):
        descriptor.body = json.dumps(descriptor.body)

    return descriptor
