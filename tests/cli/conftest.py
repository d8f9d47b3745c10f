import functools
import logging

import click.testing
import pytest

from appplatform.cli import main


@pytest.fixture(autouse=True)
def restore_logging():
    # The CLI reconfigures the root logger to stream into Click's interceptors, closed afterwards.
    logger = logging.getLogger()
    handlers = list(logger.handlers)
    level = logger.level
    asyncio_logger = logging.getLogger('asyncio')
    asyncio_handlers = list(asyncio_logger.handlers)
    asyncio_propagate = asyncio_logger.propagate
    try:
        yield
    finally:
        logger.handlers[:] = handlers
        logger.setLevel(level)
        asyncio_logger.handlers[:] = asyncio_handlers
        asyncio_logger.propagate = asyncio_propagate


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ['URL', 'TOKEN', 'USERNAME', 'PASSWORD', 'ORG_ID', 'STACK_ID', 'NAMESPACE']:
        monkeypatch.delenv(f'APPPLATFORM_{name}', raising=False)


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)


@pytest.fixture()
def connection():
    return ['--url', 'https://grafana.example.com/', '--token', 'tkn']
