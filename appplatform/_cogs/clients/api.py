import asyncio
import collections.abc
import itertools
import json
from typing import Any, AsyncGenerator, AsyncIterator, Mapping, Optional, Union

import aiohttp
import yarl

from appplatform._cogs.clients import auth, errors
from appplatform._cogs.configs import configuration
from appplatform._cogs.helpers import typedefs

# "501 Not Implemented" will not get implemented by retrying, unlike the other 5xx.
HTTP_TOO_MANY_REQUESTS_CODE = 429
HTTP_NOT_IMPLEMENTED_CODE = 501
HTTP_NO_CONTENT_CODE = 204


def is_temporary(status: int) -> bool:
    return status == HTTP_TOO_MANY_REQUESTS_CODE or (500 <= status <= 599 and status != HTTP_NOT_IMPLEMENTED_CODE)


def marshal(payload: object) -> bytes:
    try:
        return json.dumps(payload).encode('utf-8')
    except (TypeError, ValueError) as e:
        raise errors.MarshalError(f"failed to marshal request body: {e}") from e


def unmarshal(data: bytes) -> Any:
    try:
        return json.loads(data)
    except ValueError as e:  # incl. JSONDecodeError & UnicodeDecodeError
        raise errors.UnmarshalError(f"failed to unmarshal response body: {e}") from e


async def request(
        method: str,
        url: Union[str, yarl.URL],  # relative to the server/api root, or pre-built.
        *,
        context: auth.APIContext,
        settings: configuration.ClientSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> aiohttp.ClientResponse:
    """
    Perform a request with retries, and return the unread response.

    The payload is encoded before any network activity, so that the encoding
    errors do not cost a request. The non-2xx responses are raised as errors;
    the temporary ones are retried (same as the connection errors & timeouts).
    Once the retries are exhausted, the last error is escalated: as is for
    the HTTP statuses, or as `APITransportError` for the networking issues.

    The back-off sleeps are cancellable: the request can be aborted
    by cancelling the awaiting task at any time, even between the attempts.
    """
    data = marshal(payload) if payload is not None else None
    request_url = context.make_url(url)
    request_headers = context.make_headers(headers)

    if timeout is None:
        timeout = aiohttp.ClientTimeout(
            total=settings.networking.request_timeout,
            sock_connect=settings.networking.connect_timeout,
        )

    backoffs = settings.networking.error_backoffs
    backoffs = [] if backoffs is None else backoffs
    backoffs = backoffs if isinstance(backoffs, collections.abc.Iterable) else [backoffs]
    count = len(backoffs) + 1 if isinstance(backoffs, collections.abc.Sized) else None
    backoff: Optional[float]
    for retry, backoff in enumerate(itertools.chain(backoffs, [None]), start=1):
        idx = f"#{retry}/{count}" if count is not None else f"#{retry}"
        what = f"{method.upper()} {request_url}"
        try:
            if retry > 1:
                logger.debug(f"Request attempt {idx}: {what}")

            response = await context.session.request(
                method=method.upper(),
                url=request_url,
                data=data,
                headers=request_headers,
                timeout=timeout,
            )
            await errors.check_response(response)  # but do not parse it!

        except errors.APIError as e:
            if not is_temporary(e.status):
                raise
            elif backoff is None:  # i.e. the last or the only attempt.
                logger.error(f"Request attempt {idx} failed; escalating: {what} -> {e!r}")
                raise
            else:
                logger.error(f"Request attempt {idx} failed; will retry: {what} -> {e!r}")
                await asyncio.sleep(backoff)  # non-awakable! but still cancellable.

        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            if backoff is None:  # i.e. the last or the only attempt.
                logger.error(f"Request attempt {idx} failed; escalating: {what} -> {e!r}")
                raise errors.APITransportError(f"failed to do request {what}: {e!r}") from e
            else:
                logger.error(f"Request attempt {idx} failed; will retry: {what} -> {e!r}")
                await asyncio.sleep(backoff)  # non-awakable! but still cancellable.

        else:
            if retry > 1:
                logger.debug(f"Request attempt {idx} succeeded: {what}")
            context.add_response(response)
            return response

    raise RuntimeError("Broken retryable routine.")  # impossible, but needed for type-checking.


async def read(
        response: aiohttp.ClientResponse,
) -> bytes:
    """ Read the response's body in full, and release the connection. """
    async with response:
        try:
            return await response.read()
        except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError, asyncio.TimeoutError) as e:
            raise errors.APITransportError(f"failed to read response body: {e!r}") from e


async def parse(
        response: aiohttp.ClientResponse,
) -> Any:
    """ Read & decode the response's body; ``None`` if there is no content. """
    data = await read(response)
    if response.status == HTTP_NO_CONTENT_CODE or not data:
        return None
    return unmarshal(data)


async def get(
        url: str,  # relative to the server/api root.
        *,
        context: auth.APIContext,
        settings: configuration.ClientSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='get',
        url=url,
        payload=payload,
        headers=headers,
        timeout=timeout,
        context=context,
        settings=settings,
        logger=logger,
    )
    return await parse(response)


async def post(
        url: str,  # relative to the server/api root.
        *,
        context: auth.APIContext,
        settings: configuration.ClientSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='post',
        url=url,
        payload=payload,
        headers=headers,
        timeout=timeout,
        context=context,
        settings=settings,
        logger=logger,
    )
    return await parse(response)


async def put(
        url: str,  # relative to the server/api root.
        *,
        context: auth.APIContext,
        settings: configuration.ClientSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='put',
        url=url,
        payload=payload,
        headers=headers,
        timeout=timeout,
        context=context,
        settings=settings,
        logger=logger,
    )
    return await parse(response)


async def patch(
        url: str,  # relative to the server/api root.
        *,
        context: auth.APIContext,
        settings: configuration.ClientSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='patch',
        url=url,
        payload=payload,
        headers=headers,
        timeout=timeout,
        context=context,
        settings=settings,
        logger=logger,
    )
    return await parse(response)


async def delete(
        url: str,  # relative to the server/api root.
        *,
        context: auth.APIContext,
        settings: configuration.ClientSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        logger: typedefs.Logger,
) -> Any:
    response = await request(
        method='delete',
        url=url,
        payload=payload,
        headers=headers,
        timeout=timeout,
        context=context,
        settings=settings,
        logger=logger,
    )
    return await parse(response)


async def stream(
        url: str,  # relative to the server/api root.
        *,
        context: auth.APIContext,
        settings: configuration.ClientSettings,
        payload: Optional[object] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        stopper: Optional["asyncio.Future[Any]"] = None,
        logger: typedefs.Logger,
) -> AsyncGenerator[Any, None]:
    """
    Stream the newline-delimited JSON documents from a long-lived response.

    The response is closed when the stream is exhausted, when the consumer
    stops iterating (``aclose()``), when the consuming task is cancelled,
    or when the stopper future is done (even if nothing arrives meanwhile).
    """
    response = await request(
        method='get',
        url=url,
        payload=payload,
        headers=headers,
        timeout=timeout,
        context=context,
        settings=settings,
        logger=logger,
    )
    response_close_callback = lambda _: response.close()  # to remove the positional arg.
    if stopper is not None:
        stopper.add_done_callback(response_close_callback)
    try:
        async with response:
            async for line in iter_jsonlines(response.content):
                yield unmarshal(line)
    except aiohttp.ClientConnectionError:
        if stopper is not None and stopper.done():
            pass
        else:
            raise
    finally:
        if stopper is not None:
            stopper.remove_done_callback(response_close_callback)


async def iter_jsonlines(
        content: aiohttp.StreamReader,
        chunk_size: int = 1024 * 1024,
) -> AsyncIterator[bytes]:
    """
    Iterate line by line over the response's content.

    Usage::

        async for line in iter_jsonlines(response.content):
            pass

    This is an equivalent of::

        async for line in response.content:
            pass

    Except that the aiohttp's line iteration fails if the accumulated buffer
    length is above 2**17 bytes, i.e. 128 KB (`aiohttp.streams.DEFAULT_LIMIT`
    for the buffer's low-watermark, multiplied by 2 for the high-watermark).
    The objects' specs (e.g. of dashboards) can be much longer, up to MBs.

    The chunk size of 1MB is an empirical guess for keeping the memory footprint
    reasonably low on huge amount of small lines (limited to 1 MB in total),
    while ensuring the near-instant reads of the huge lines.
    """

    # Minimize the memory footprint by keeping at most 2 copies of a yielded line in memory
    # (in the buffer and as a yielded value), and at most 1 copy of other lines (in the buffer).
    buffer = b''
    async for data in content.iter_chunked(chunk_size):
        buffer += data
        del data

        start = 0
        index = buffer.find(b'\n', start)
        while index >= 0:
            line = buffer[start:index]
            if line.strip():
                yield line
            del line
            start = index + 1
            index = buffer.find(b'\n', start)

        if start > 0:
            buffer = buffer[start:]

    if buffer.strip():
        yield buffer
