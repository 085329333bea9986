import abc

from relaywire.http._descriptor import NormalizedResponse, RequestDescriptor


class TransportStrategy(abc.ABC):
    '''
    A way of performing one HTTP exchange. Implementations return a
    `NormalizedResponse` or raise a `HttpError`, never anything else.
    '''

    @abc.abstractmethod
    async def execute(self, descriptor: RequestDescriptor) -> NormalizedResponse:
        ...

    async def aclose(self) -> None:
        return None
