"""Tests for RequestDispatcher and strategy selection."""

import asyncio
import json

import httpx
import pytest

from relaywire import http

both_transports = pytest.mark.parametrize('legacy', [False, True], ids=['fetch', 'legacy'])


def echo(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        content=request.content,
        headers={'content-type': 'application/json; charset=utf-8'},
    )


@pytest.fixture
async def dispatcher():
    async with http.RequestDispatcher() as dispatcher:
        yield dispatcher


def test_create_strategy_selects_by_flag():
    assert isinstance(http.create_strategy(), http.FetchStrategy)
    assert isinstance(http.create_strategy(legacy=True), http.LegacyStrategy)


def test_strategy_for_follows_descriptor_flag():
    dispatcher = http.RequestDispatcher()
    fetch = http.RequestDescriptor(url='/x')
    legacy = http.RequestDescriptor(url='/x', use_legacy_transport=True)
    assert isinstance(dispatcher.strategy_for(fetch), http.FetchStrategy)
    assert isinstance(dispatcher.strategy_for(legacy), http.LegacyStrategy)


@both_transports
class TestTransportParity:
    """Both transports map the same exchange to the same result."""

    @pytest.mark.anyio
    async def test_post_round_trip(self, dispatcher, make_descriptor, legacy):
        descriptor = make_descriptor(
            echo,
            method='post',
            body={'a': 1, 'b': [2, 3]},
            use_legacy_transport=legacy,
        )
        response = await dispatcher.request(descriptor)
        assert response.data == {'a': 1, 'b': [2, 3]}
        assert descriptor.method == 'POST'

    @pytest.mark.anyio
    async def test_json_array_body(self, dispatcher, make_descriptor, legacy):
        descriptor = make_descriptor(
            echo,
            method='put',
            body=['x', {'y': None}],
            use_legacy_transport=legacy,
        )
        response = await dispatcher.request(descriptor)
        assert json.loads(descriptor.body) == ['x', {'y': None}]
        assert response.data == ['x', {'y': None}]

    @pytest.mark.anyio
    async def test_no_content(self, dispatcher, make_descriptor, legacy):
        descriptor = make_descriptor(
            lambda request: httpx.Response(204),
            method='delete',
            use_legacy_transport=legacy,
        )
        response = await dispatcher.request(descriptor)
        assert response.data is None

    @pytest.mark.anyio
    async def test_plain_text(self, dispatcher, make_descriptor, legacy):
        descriptor = make_descriptor(
            lambda request: httpx.Response(200, text='# README'),
            use_legacy_transport=legacy,
        )
        response = await dispatcher.request(descriptor)
        assert response.data == '# README'
        assert response.meta['content-type'] == 'text/plain; charset=utf-8'

    @pytest.mark.anyio
    async def test_not_found(self, dispatcher, make_descriptor, legacy):
        descriptor = make_descriptor(
            lambda request: httpx.Response(404, text='Not Found'),
            use_legacy_transport=legacy,
        )
        with pytest.raises(http.HttpError) as info:
            await dispatcher.request(descriptor)
        assert info.value.status_code == 404
        assert info.value.message == 'Not Found'

    @pytest.mark.anyio
    async def test_not_modified(self, dispatcher, make_descriptor, legacy):
        descriptor = make_descriptor(
            lambda request: httpx.Response(304, headers={'location': '/new/path'}),
            use_legacy_transport=legacy,
        )
        with pytest.raises(http.HttpError) as info:
            await dispatcher.request(descriptor)
        assert info.value.message == 'Not modified'
        assert info.value.status_code == 304
        assert descriptor.url.endswith('/new/path')

    @pytest.mark.anyio
    async def test_timeout(self, dispatcher, make_descriptor, legacy):
        async def stall(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200)

        descriptor = make_descriptor(stall, timeout=0.05, use_legacy_transport=legacy)
        with pytest.raises(http.GatewayTimeoutError) as info:
            await dispatcher.request(descriptor)
        assert info.value.message == 'Gateway timeout'
        assert info.value.status_code == 504

    @pytest.mark.anyio
    async def test_malformed_json(self, dispatcher, make_descriptor, legacy):
        descriptor = make_descriptor(
            lambda request: httpx.Response(
                200,
                content=b'{"a": ',
                headers={'content-type': 'application/json'},
            ),
            use_legacy_transport=legacy,
        )
        with pytest.raises(http.HttpError) as info:
            await dispatcher.request(descriptor)
        assert info.value.status_code == 500

    @pytest.mark.anyio
    @pytest.mark.parametrize('timeout', [0, None])
    async def test_unbounded_timeout(self, dispatcher, make_descriptor, legacy, timeout):
        async def slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.05)
            return httpx.Response(200, text='late')

        descriptor = make_descriptor(slow, timeout=timeout, use_legacy_transport=legacy)
        response = await dispatcher.request(descriptor)
        assert response.data == 'late'

    @pytest.mark.anyio
    async def test_repeated_headers(self, dispatcher, make_descriptor, legacy):
        descriptor = make_descriptor(
            lambda request: httpx.Response(
                200,
                text='ok',
                headers=[('vary', 'Accept'), ('vary', 'Authorization')],
            ),
            use_legacy_transport=legacy,
        )
        response = await dispatcher.request(descriptor)
        assert response.meta['vary'] == 'Accept, Authorization'

    @pytest.mark.anyio
    async def test_empty_json_array(self, dispatcher, make_descriptor, legacy):
        descriptor = make_descriptor(
            lambda request: httpx.Response(200, json=[]),
            use_legacy_transport=legacy,
        )
        response = await dispatcher.request(descriptor)
        assert response.data == []


@both_transports
class TestCallerTimeout:
    """The caller's timeout, when given, replaces the configured one."""

    @staticmethod
    def recorder(seen: list[dict]):
        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.extensions['timeout'])
            return httpx.Response(200, text='ok')

        return handler

    @pytest.mark.anyio
    async def test_longer_caller_timeout_wins(self, make_descriptor, legacy):
        seen: list[dict] = []
        config = http.ClientConfig(timeout=httpx.Timeout(0.2))
        descriptor = make_descriptor(
            self.recorder(seen),
            timeout=2.0,
            use_legacy_transport=legacy,
        )
        async with http.RequestDispatcher(config) as dispatcher:
            await dispatcher.request(descriptor)

        assert seen[0]['read'] == 2.0
        assert seen[0]['connect'] == 2.0

    @pytest.mark.anyio
    @pytest.mark.parametrize('timeout', [0, None])
    async def test_config_timeout_without_caller_timeout(self, make_descriptor, legacy, timeout):
        seen: list[dict] = []
        config = http.ClientConfig(timeout=httpx.Timeout(0.2))
        descriptor = make_descriptor(
            self.recorder(seen),
            timeout=timeout,
            use_legacy_transport=legacy,
        )
        async with http.RequestDispatcher(config) as dispatcher:
            await dispatcher.request(descriptor)

        assert seen[0]['read'] == 0.2


@pytest.mark.anyio
async def test_configured_transport_is_used_without_agent():
    seen: list[httpx.Request] = []

    def capture(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={'ok': True})

    config = http.ClientConfig(
        transport=httpx.MockTransport(capture),
        user_agent='octo-client/2.0',
    )
    descriptor = http.RequestDescriptor(
        url='https://api.example.com/meta',
        method='get',
    )
    response = await http.request(descriptor, config)

    assert response.data == {'ok': True}
    assert seen[0].headers['user-agent'] == 'octo-client/2.0'
    assert seen[0].headers['accept'] == 'application/json'


@pytest.mark.anyio
async def test_request_logs_descriptor(caplog, make_descriptor):
    descriptor = make_descriptor(lambda request: httpx.Response(204), method='get')
    with caplog.at_level('DEBUG', logger='relaywire.http._dispatch'):
        await http.request(descriptor)
    assert any(record.getMessage().startswith('REQUEST:') for record in caplog.records)
