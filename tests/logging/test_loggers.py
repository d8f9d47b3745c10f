import json
import logging

import pytest

from appplatform._cogs.structs.references import Identifier
from appplatform._core.engines.loggers import LogFormat, ObjectJsonFormatter, ObjectLogger, \
                                              ObjectPrefixingJsonFormatter, \
                                              ObjectPrefixingTextFormatter, ObjectTextFormatter, \
                                              _AppPlatformStreamHandler, configure, \
                                              make_formatter


@pytest.fixture()
def root_logger():
    logger = logging.getLogger()
    handlers = list(logger.handlers)
    level = logger.level
    asyncio_logger = logging.getLogger('asyncio')
    asyncio_handlers = list(asyncio_logger.handlers)
    asyncio_propagate = asyncio_logger.propagate
    try:
        yield logger
    finally:
        logger.handlers[:] = handlers
        logger.setLevel(level)
        asyncio_logger.handlers[:] = asyncio_handlers
        asyncio_logger.propagate = asyncio_propagate


def make_record(msg='hello', level=logging.INFO, **extra):
    record = logging.LogRecord('appplatform.objects', level, __file__, 1, msg, (), None)
    record.__dict__.update(extra)
    return record


REF = {'apiVersion': None, 'kind': 'Keeper', 'name': 'aws1', 'namespace': 'org-5'}


def test_object_logger_prefixes_the_messages(logstream):
    logger = ObjectLogger(kind='Keeper', identifier=Identifier('org-5', 'aws1'))
    logger.info("Keeper is activated.")
    assert logstream.getvalue() == "prefix [org-5/aws1] Keeper is activated.\n"


def test_object_logger_without_namespaces(logstream):
    logger = ObjectLogger(kind='Thing', identifier=Identifier(None, 'cluster-thing'))
    logger.info("hello")
    assert logstream.getvalue() == "prefix [cluster-thing] hello\n"


def test_object_logger_merges_the_extras(caplog):
    caplog.set_level(logging.DEBUG)
    logger = ObjectLogger(kind='Keeper', identifier=Identifier('org-5', 'aws1'), api_version='v1')
    logger.debug("hello", extra={'attempt': 2})
    record = caplog.records[-1]
    assert record.attempt == 2
    assert record.obj_ref == dict(REF, apiVersion='v1')


def test_regular_loggers_are_not_prefixed(logstream):
    logging.getLogger('appplatform.tests').info("hello")
    assert logstream.getvalue() == "prefix hello\n"


def test_json_formatter_puts_the_reference_into_a_field():
    formatter = ObjectJsonFormatter()
    data = json.loads(formatter.format(make_record(obj_ref=REF)))
    assert data['message'] == 'hello'
    assert data['object'] == REF
    assert data['severity'] == 'info'
    assert 'timestamp' in data
    assert 'obj_ref' not in data


def test_json_formatter_with_a_custom_refkey():
    formatter = ObjectJsonFormatter(refkey='k8s-obj')
    data = json.loads(formatter.format(make_record(obj_ref=REF)))
    assert data['k8s-obj'] == REF
    assert 'object' not in data


@pytest.mark.parametrize('level, severity', [
    (logging.DEBUG, 'debug'),
    (logging.INFO, 'info'),
    (logging.WARNING, 'warn'),
    (logging.ERROR, 'error'),
    (logging.CRITICAL, 'fatal'),
])
def test_json_severities(level, severity):
    data = json.loads(ObjectJsonFormatter().format(make_record(level=level)))
    assert data['severity'] == severity


def test_json_formatter_with_prefixes():
    formatter = ObjectPrefixingJsonFormatter()
    data = json.loads(formatter.format(make_record(obj_ref=REF)))
    assert data['message'] == '[org-5/aws1] hello'


def test_prefixing_keeps_the_original_record():
    record = make_record(obj_ref=REF)
    text = ObjectPrefixingTextFormatter('%(message)s').format(record)
    assert text == '[org-5/aws1] hello'
    assert record.msg == 'hello'


@pytest.mark.parametrize('log_format, log_prefix, cls', [
    (LogFormat.PLAIN, False, ObjectTextFormatter),
    (LogFormat.FULL, False, ObjectTextFormatter),
    (LogFormat.PLAIN, True, ObjectPrefixingTextFormatter),
    (LogFormat.PLAIN, None, ObjectPrefixingTextFormatter),
    (LogFormat.JSON, False, ObjectJsonFormatter),
    (LogFormat.JSON, None, ObjectJsonFormatter),
    (LogFormat.JSON, True, ObjectPrefixingJsonFormatter),
    ('%(levelname)s %(message)s', False, ObjectTextFormatter),
    ('%(levelname)s %(message)s', True, ObjectPrefixingTextFormatter),
])
def test_make_formatter(log_format, log_prefix, cls):
    formatter = make_formatter(log_format=log_format, log_prefix=log_prefix)
    assert type(formatter) is cls


def test_make_formatter_with_unsupported_formats():
    with pytest.raises(ValueError):
        make_formatter(log_format=123)


@pytest.mark.parametrize('kwargs, level', [
    (dict(), logging.INFO),
    (dict(verbose=True), logging.DEBUG),
    (dict(debug=True), logging.DEBUG),
    (dict(quiet=True), logging.WARNING),
])
def test_configure_levels(root_logger, kwargs, level):
    configure(**kwargs)
    assert root_logger.level == level


def test_configure_replaces_its_own_handlers_only(root_logger):
    foreign = logging.NullHandler()
    root_logger.addHandler(foreign)
    configure()
    configure(log_format=LogFormat.JSON)
    ours = [h for h in root_logger.handlers if isinstance(h, _AppPlatformStreamHandler)]
    assert foreign in root_logger.handlers
    assert len(ours) == 1
    assert isinstance(ours[0].formatter, ObjectJsonFormatter)
