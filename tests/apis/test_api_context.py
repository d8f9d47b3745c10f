import aiohttp.web
import pytest
import yarl

from appplatform._cogs.clients.api import get
from appplatform._cogs.clients.auth import APIContext, parse_server_url
from appplatform._cogs.clients.errors import URLParseError
from appplatform._cogs.structs.credentials import ConnectionInfo


@pytest.mark.parametrize('url', [
    'https://grafana.example.com',
    'https://grafana.example.com/',
    'http://localhost:3000/grafana/',
])
def test_server_urls_are_parsed(url):
    assert parse_server_url(url) == yarl.URL(url)


@pytest.mark.parametrize('url', [
    '',
    'grafana.example.com',
    'ftp://grafana.example.com/',
    'https://',
    'http://[::1',
])
def test_malformed_server_urls_fail(url):
    with pytest.raises(URLParseError):
        parse_server_url(url)


def test_malformed_urls_fail_at_construction():
    with pytest.raises(URLParseError):
        APIContext(ConnectionInfo(server='not a url'))


def test_url_parse_errors_are_value_errors():
    with pytest.raises(ValueError):
        APIContext(ConnectionInfo(server='not a url'))


@pytest.mark.parametrize('server, path, expected', [
    ('https://host', 'apis/x/v1', 'https://host/apis/x/v1'),
    ('https://host/', '/apis/x/v1', 'https://host/apis/x/v1'),
    ('https://host/prefix', 'apis/x/v1', 'https://host/prefix/apis/x/v1'),
    ('https://host/prefix/', '/apis//x/v1/', 'https://host/prefix/apis/x/v1'),
    ('https://host/prefix/', 'apis/x/v1?watch=true', 'https://host/prefix/apis/x/v1?watch=true'),
])
def test_urls_are_joined_by_segments(server, path, expected):
    context = APIContext(ConnectionInfo(server=server))
    assert context.make_url(path) == yarl.URL(expected)


def test_absolute_urls_are_passed_through():
    context = APIContext(ConnectionInfo(server='https://host/prefix/'))
    assert context.make_url('http://other/path') == yarl.URL('http://other/path')


def test_prebuilt_urls_are_passed_through():
    context = APIContext(ConnectionInfo(server='https://host/prefix/'))
    url = yarl.URL('https://host/prefix/a%3Fb')
    assert context.make_url(url) is url


@pytest.mark.parametrize('name, raw_path', [
    ('a?b', '/prefix/apis/x/v1/a%3Fb'),
    ('a#b', '/prefix/apis/x/v1/a%23b'),
    ('a b', '/prefix/apis/x/v1/a%20b'),
])
def test_path_segments_are_escaped_separately(name, raw_path):
    context = APIContext(ConnectionInfo(server='https://host/prefix/'))
    url = context.make_path_url('apis', 'x', 'v1', name)
    assert url.raw_path == raw_path
    assert url.path == f'/prefix/apis/x/v1/{name}'
    assert not url.query_string
    assert not url.fragment


def test_empty_path_segments_are_skipped():
    context = APIContext(ConnectionInfo(server='https://host/prefix/'))
    url = context.make_path_url('apis', None, 'x', '', 'v1')
    assert url == yarl.URL('https://host/prefix/apis/x/v1')


def test_headers_with_no_auth():
    context = APIContext(ConnectionInfo(server='https://host'))
    headers = context.make_headers()
    assert headers == {'Content-Type': 'application/json'}


def test_headers_with_bearer_token():
    context = APIContext(ConnectionInfo(server='https://host', token='tkn'))
    headers = context.make_headers()
    assert headers['Authorization'] == 'Bearer tkn'


def test_headers_with_basic_auth():
    context = APIContext(ConnectionInfo(server='https://host', username='usr', password='pwd'))
    headers = context.make_headers()
    assert headers['Authorization'] == aiohttp.BasicAuth('usr', 'pwd').encode()
    assert headers['Authorization'] == 'Basic dXNyOnB3ZA=='


def test_bearer_token_wins_over_basic_auth():
    context = APIContext(ConnectionInfo(server='https://host', token='tkn', username='usr', password='pwd'))
    headers = context.make_headers()
    assert headers['Authorization'] == 'Bearer tkn'


def test_headers_precedence():
    context = APIContext(ConnectionInfo(
        server='https://host',
        user_agent='agent/1.0',
        default_headers={'Content-Type': 'text/plain', 'User-Agent': 'other', 'X-Extra': 'extra'},
    ))
    headers = context.make_headers({'Content-Type': 'application/merge-patch+json'})
    assert headers['X-Extra'] == 'extra'
    assert headers['User-Agent'] == 'agent/1.0'
    assert headers['Content-Type'] == 'application/merge-patch+json'


def test_default_content_type_overrides_default_headers():
    context = APIContext(ConnectionInfo(server='https://host', default_headers={'Content-Type': 'text/plain'}))
    headers = context.make_headers()
    assert headers['Content-Type'] == 'application/json'


def test_credentials_are_masked_in_repr():
    info = ConnectionInfo(server='https://host', token='tkn', username='usr', password='pwd')
    assert 'tkn' not in repr(info)
    assert 'pwd' not in repr(info)
    assert 'usr' in repr(info)


async def test_owned_sessions_are_created_lazily_and_closed():
    context = APIContext(ConnectionInfo(server='https://host'))
    assert context._session is None
    session = context.session
    assert isinstance(session, aiohttp.ClientSession)
    assert context.session is session
    await context.close()
    assert session.closed


async def test_given_sessions_are_not_closed():
    async with aiohttp.ClientSession() as session:
        async with APIContext(ConnectionInfo(server='https://host'), session=session) as context:
            assert context.session is session
        assert not session.closed


async def test_auth_headers_are_sent(resp_mocker, aresponses, hostname, server, settings, logger):
    mock = resp_mocker(return_value=aiohttp.web.json_response({}))
    aresponses.add(hostname, '/url', 'get', mock)
    info = ConnectionInfo(server=server, token='tkn', username='usr', password='pwd',
                          user_agent='agent/1.0')
    async with APIContext(info) as context:
        await get('/url', context=context, settings=settings, logger=logger)
    assert mock.call_args[0][0].headers['Authorization'] == 'Bearer tkn'
    assert mock.call_args[0][0].headers['User-Agent'] == 'agent/1.0'
    assert mock.call_args[0][0].headers['Content-Type'] == 'application/json'
