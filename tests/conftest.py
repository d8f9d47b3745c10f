import io
import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
from aresponses import ResponsesMockServer

from appplatform._cogs.clients.auth import APIContext
from appplatform._cogs.clients.errors import APIConflictError, APINotFoundError
from appplatform._cogs.configs.configuration import ClientSettings
from appplatform._cogs.structs.credentials import ConnectionInfo
from appplatform._cogs.structs.references import Identifier
from appplatform._core.clients.typed import Kind
from appplatform._core.engines.loggers import ObjectPrefixingTextFormatter


#
# Mocks for the API servers. Reasons:
# 1. We test the clients, so the full HTTP stack must be involved:
#    the actual aiohttp requests, the actual responses, the actual streams.
# 2. No external calls must be made under any circumstances.
#    The unit-tests must be fully isolated from the environment.
#


@pytest.fixture()
def hostname():
    """ A fake hostname to be used in all aiohttp/aresponses tests. """
    return 'fake-host'


@pytest.fixture()
def server(hostname):
    """ The base URL of the fake API server, as the clients are configured with. """
    return f'http://{hostname}/'


@pytest.fixture()
async def aresponses():
    """
    The same as the fixture of the `aresponses` plugin, but with no `event_loop`.

    The mock server is bound to the running loop of the test, whatever it is.
    All hostnames are resolved to the mock server while the fixture is active.
    """
    async with ResponsesMockServer() as server:
        yield server


@pytest.fixture()
def resp_mocker(aresponses):
    """
    A factory of server-side callbacks for `aresponses` with mocking/spying.

    The value of the fixture is a function, which returns a coroutine mock.
    That coroutine mock should be passed to `aresponses.add` as a response
    callback function. When called, it calls the mock defined by the function's
    arguments (specifically, return_value or side_effect).

    The difference from passing the responses directly to `aresponses.add`
    is that it is possible to assert on whether the response was handled
    by that callback at all (i.e. HTTP URL & method matched), especially
    if there are multiple responses registered, and on the requests received.

    Sample usage::

        def test_me(resp_mocker, aresponses, hostname):
            response = aiohttp.web.json_response({'a': 'b'})
            callback = resp_mocker(return_value=response)
            aresponses.add(hostname, '/path/', 'get', callback)
            do_something()
            assert callback.called
            assert callback.call_count == 1
            assert callback.call_args[0][0]['data'] == {...}
    """
    def resp_maker(*args, **kwargs):
        actual_response = MagicMock(*args, **kwargs)
        async def resp_mock_effect(request):
            nonlocal actual_response

            # The request's content can be read inside of the handler only. We preserve
            # the data into the request's own storage, so that they could be asserted later.
            try:
                request['data'] = await request.json()
            except json.JSONDecodeError:
                request['data'] = await request.text()

            # Get a response/error as it was intended (via return_value/side_effect).
            response = actual_response()
            return response

        return AsyncMock(side_effect=resp_mock_effect)
    return resp_maker


@pytest.fixture()
def stream(aresponses, hostname, resp_mocker):
    """ A mock for the stream of events as if returned by the API server. """

    def feed(url, *events):
        # Prepare the stream response pre-rendered (for simplicity, no actual streaming).
        stream_text = '\n'.join(json.dumps(event) for event in events)
        stream_mock = resp_mocker(return_value=aresponses.Response(text=stream_text))
        aresponses.add(hostname, url, 'get', stream_mock)
        return stream_mock

    return feed


#
# The clients' configuration & connection.
#


@pytest.fixture()
def settings():
    settings = ClientSettings()
    settings.networking.error_backoffs = [0, 0, 0]  # the same number of retries, but fast.
    return settings


@pytest.fixture()
def info(server):
    return ConnectionInfo(server=server)


@pytest.fixture()
async def context(info):
    context = APIContext(info)
    try:
        yield context
    finally:
        await context.close()


@pytest.fixture()
def logger():
    return logging.getLogger('appplatform.tests')


#
# Logging helpers.
#


@pytest.fixture()
def assert_logs(caplog):
    """
    A function to assert the logs are present (by pattern).

    The listed message patterns MUST be present, in the order specified.
    Some other log messages can also be present, but they are ignored.
    """
    def assert_logs_fn(patterns, prohibited=[], strict=False):
        __traceback_hide__ = True
        remaining_patterns = list(patterns)
        for message in caplog.messages:
            # The expected pattern is at position 0.
            # Looking-ahead: if one of the following patterns matches, while the
            # 0th does not, then the log message is missing, and we fail the test.
            for idx, pattern in enumerate(remaining_patterns):
                m = re.search(pattern, message)
                if m:
                    if idx == 0:
                        remaining_patterns[:1] = []
                        break  # out of `remaining_patterns` cycle
                    else:
                        skipped_patterns = remaining_patterns[:idx]
                        raise AssertionError(f"Few patterns were skipped: {skipped_patterns!r}")
                elif strict:
                    raise AssertionError(f"Unexpected log message: {message!r}")

            # Check that the prohibited patterns do not appear in any message.
            for pattern in prohibited:
                m = re.search(pattern, message)
                if m:
                    raise AssertionError(f"Prohibited log pattern found: {message!r} ~ {pattern!r}")

        # If all patterns have been matched in order, we are done.
        # if some are left, but the messages are over, then we fail.
        if remaining_patterns:
            raise AssertionError(f"Few patterns were missed: {remaining_patterns!r}")

    return assert_logs_fn


@pytest.fixture()
def logstream(caplog):
    """ Prefixing output of the object loggers, as in the CLI, but into a string. """
    logger = logging.getLogger()
    handlers = list(logger.handlers)
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ObjectPrefixingTextFormatter('prefix %(message)s'))
    logger.addHandler(handler)
    try:
        with caplog.at_level(logging.DEBUG):
            yield stream
    finally:
        logger.removeHandler(handler)
        logger.handlers[:] = handlers  # undo `configure()`


#
# An in-memory object-model client: for the typed layers without the network.
#


class FakeObjectClient:
    """
    Stores the raw bodies in memory, as a server would, and records the calls.
    """

    def __init__(self) -> None:
        super().__init__()
        self.objects: Dict[Tuple[Optional[str], str], Dict[str, Any]] = {}
        self.calls: List[Tuple[str, Any]] = []
        self.events: List[Dict[str, Any]] = []
        self.version = 0

    def _stored(self, body: Mapping[str, Any], identifier: Identifier) -> Dict[str, Any]:
        self.version += 1
        stored = json.loads(json.dumps(body))
        stored.setdefault('metadata', {})
        stored['metadata']['namespace'] = identifier.namespace
        stored['metadata']['name'] = identifier.name
        stored['metadata']['resourceVersion'] = str(self.version)
        return stored

    async def list(self, namespace, options=None):
        self.calls.append(('list', namespace))
        items = [obj for (ns, _), obj in sorted(self.objects.items()) if namespace is None or ns == namespace]
        return {'apiVersion': 'v1', 'kind': 'List', 'metadata': {'resourceVersion': str(self.version)},
                'items': items}

    async def watch(self, namespace, options=None, *, stopper=None):
        self.calls.append(('watch', namespace))
        for event in self.events:
            yield event

    async def get(self, identifier):
        self.calls.append(('get', identifier))
        try:
            return self.objects[tuple(identifier)]
        except KeyError:
            raise APINotFoundError('{"message": "not found"}', status=404)

    async def create(self, identifier, body, options=None):
        self.calls.append(('create', identifier))
        if tuple(identifier) in self.objects:
            raise APIConflictError('{"message": "exists"}', status=409)
        self.objects[tuple(identifier)] = stored = self._stored(body, identifier)
        return stored

    async def update(self, identifier, body, options=None):
        self.calls.append(('update', identifier))
        existing = self.objects.get(tuple(identifier))
        if existing is None:
            raise APINotFoundError('{"message": "not found"}', status=404)
        version = body.get('metadata', {}).get('resourceVersion')
        if options is not None and options.resource_version is not None:
            version = options.resource_version
        if version is not None and version != existing['metadata']['resourceVersion']:
            raise APIConflictError('{"message": "conflict"}', status=409)
        self.objects[tuple(identifier)] = stored = self._stored(body, identifier)
        return stored

    async def patch(self, identifier, request, options=None):
        self.calls.append(('patch', identifier))
        existing = self.objects.get(tuple(identifier))
        if existing is None:
            raise APINotFoundError('{"message": "not found"}', status=404)
        body = json.loads(json.dumps(existing))
        for key, val in request.payload.items():
            if isinstance(val, dict):
                body.setdefault(key, {}).update(val)
            else:
                body[key] = val
        self.objects[tuple(identifier)] = stored = self._stored(body, identifier)
        return stored

    async def delete(self, identifier, options=None):
        self.calls.append(('delete', identifier))
        try:
            del self.objects[tuple(identifier)]
        except KeyError:
            raise APINotFoundError('{"message": "not found"}', status=404)


@pytest.fixture()
def object_client():
    return FakeObjectClient()


@pytest.fixture()
def playlist_kind():
    return Kind.generic('playlist.grafana.app', 'v0alpha1', 'Playlist', 'playlists')
