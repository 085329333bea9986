import logging
from typing import Self

from relaywire.http._client import ClientConfig
from relaywire.http._descriptor import (
    NormalizedResponse,
    RequestDescriptor,
    normalize_request,
)
from relaywire.http._fetch import FetchStrategy
from relaywire.http._legacy import LegacyStrategy
from relaywire.http._strategy import TransportStrategy

logger = logging.getLogger(__name__)


def create_strategy(
    legacy: bool = False,
    config: ClientConfig | None = None,
) -> TransportStrategy:
    '''
    Build the transport strategy selected by `legacy`.

    Parameters
    ----------
    legacy : bool, optional
        use the callback driven transport, by default False
    config : ClientConfig | None, optional

    Returns
    -------
    TransportStrategy
    '''
    if legacy:
        return LegacyStrategy(config)
    return FetchStrategy(config)


class RequestDispatcher:
    '''
    Normalizes descriptors and hands them to the strategy their
    `use_legacy_transport` flag selects. Both strategies are built
    once and reused, each call is otherwise independent.
    '''
    __slots__ = (
        '_config',
        '_fetch',
        '_legacy',
    )

    def __init__(self, config: ClientConfig | None = None) -> None:
        self._config: ClientConfig = config or ClientConfig()
        self._fetch: TransportStrategy = create_strategy(False, self._config)
        self._legacy: TransportStrategy = create_strategy(True, self._config)

    def strategy_for(self, descriptor: RequestDescriptor) -> TransportStrategy:
        return self._legacy if descriptor.use_legacy_transport else self._fetch

    async def request(self, descriptor: RequestDescriptor) -> NormalizedResponse:
        '''
        Dispatch one request.

        Parameters
        ----------
        descriptor : RequestDescriptor
            normalized in place before dispatch

        Returns
        -------
        NormalizedResponse

        Raises
        ------
        HttpError
            for any failed exchange
        '''
        logger.debug(f'REQUEST: {descriptor!r}')
        normalize_request(descriptor)
        return await self.strategy_for(descriptor).execute(descriptor)

    async def aclose(self) -> None:
        await self._fetch.aclose()
        await self._legacy.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()


async def request(
    descriptor: RequestDescriptor,
    config: ClientConfig | None = None,
) -> NormalizedResponse:
    '''
    One-shot dispatch through a short lived `RequestDispatcher`.
    '''
    async with RequestDispatcher(config) as dispatcher:
        return await dispatcher.request(descriptor)
