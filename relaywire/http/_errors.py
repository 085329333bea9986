'''
exceptions raised by the relaywire transport layer

Raises
------
HttpError
    _the classified error every failed exchange surfaces as_
'''
import logging

logger = logging.getLogger(__name__)


class RelaywireError(Exception):
    '''
    Base exception for the relaywire package.

    Parent: Exception
    '''


class UnsupportedPayloadError(RelaywireError):
    '''
    Raised when a response body cannot be represented in the requested
    form (e.g. a binary payload read as text by the legacy transport).

    Parent: RelaywireError
    '''


class HttpError(RelaywireError):
    '''
    A classified HTTP failure carrying the status code, the raw
    response body text (or a fixed message) and the lowercase
    response headers collected so far.

    Parent: RelaywireError
    '''

    def __init__(
        self,
        message: str,
        status_code: int,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.status_code: int = status_code
        self.headers: dict[str, str] = dict(headers or {})

    def __repr__(self) -> str:
        return (
            f'{type(self).__name__}(message={self.message!r}, '
            f'status_code={self.status_code})'
        )


class GatewayTimeoutError(HttpError):
    '''
    Raised when the caller supplied timeout elapses before the
    exchange completes.

    Parent: HttpError
    '''

    def __init__(self, headers: dict[str, str] | None = None) -> None:
        super().__init__('Gateway timeout', 504, headers)


def classify_error(exc: BaseException, meta: dict[str, str]) -> HttpError:
    '''
    Funnel any exception raised during an exchange into a `HttpError`.
    Already classified errors pass through unchanged, anything else is
    wrapped with a 500 status.

    Parameters
    ----------
    exc : BaseException
    meta : dict[str, str]
        The response headers collected before the failure.

    Returns
    -------
    HttpError
    '''
    if isinstance(exc, HttpError):
        return exc

    logger.debug(f'Wrapping unclassified error {type(exc).__name__}: {exc}')
    return HttpError(str(exc), 500, meta)
