import asyncio
import logging
import sys

from relaywire import http


def response_str(response: http.NormalizedResponse) -> str:
    sep = '-------------------------'
    result = f'\n{sep}\nURL: {response.url}\nStatus: {response.status_code}\n'
    for name, value in response.meta.items():
        result += f'{name}: {value}\n'
    result += f'\n{response.data!r}\n{sep}'
    return result


async def main() -> int:
    logging.basicConfig(level=logging.DEBUG)

    if len(sys.argv) < 2:
        url = input('Enter a URL to request: ').strip()
    else:
        url = sys.argv[1].strip()

    legacy = '--legacy' in sys.argv[2:]
    descriptor = http.RequestDescriptor(
        url=url,
        method='get',
        timeout=10.0,
        use_legacy_transport=legacy,
    )

    exit_code = 1
    try:
        response = await http.request(descriptor)
        print(response_str(response))
        exit_code = 0
    except http.HttpError as exc:
        print(f'Request failed with {exc.status_code}: {exc.message}')

    return exit_code


if __name__ == '__main__':
    sys.exit(
        asyncio.run(main())
    )
