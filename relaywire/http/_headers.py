import re
from collections.abc import Iterable

import httpx

_HEADER_LINE = re.compile(r'^([^:]+): (.*)')


def collect_headers(
    headers: httpx.Headers,
    meta: dict[str, str] | None = None,
) -> dict[str, str]:
    '''
    Copy every response header into a lowercase keyed mapping.
    Repeated headers are joined by httpx with a comma.

    Parameters
    ----------
    headers : httpx.Headers
    meta : dict[str, str] | None, optional
        An accumulator to fill, a new dict is created if omitted

    Returns
    -------
    dict[str, str]
    '''
    if meta is None:
        meta = {}
    for name in headers.keys():
        meta[name.lower()] = headers[name]
    return meta


def format_raw_headers(headers: httpx.Headers) -> str:
    # one line per name, repeated headers joined with a comma
    return ''.join(
        f'{name}: {headers[name]}\r\n'
        for name in headers.keys()
    )


def parse_raw_headers(
    lines: Iterable[str],
    meta: dict[str, str] | None = None,
) -> dict[str, str]:
    '''
    Parse `name: value` header lines (as returned by a legacy
    transport's raw header blob) into the lowercase keyed shape
    produced by `collect_headers`. Lines that do not match are skipped
    and a later duplicate replaces an earlier one.

    Parameters
    ----------
    lines : Iterable[str]
    meta : dict[str, str] | None, optional

    Returns
    -------
    dict[str, str]
    '''
    if meta is None:
        meta = {}
    for line in lines:
        if match := _HEADER_LINE.match(line.rstrip('\r')):
            meta[match.group(1).lower()] = match.group(2)
    return meta
