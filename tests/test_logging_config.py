# tests/test_logging_config.py

import io
import json
import logging
import threading

from common.utils.logging_config import JSONFormatter, log_context, log_operation, setup_logging


def _capture(logger):
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.handlers = [handler]
    return stream


def test_structured_logger_adds_service_and_context():
    logger = setup_logging('test_structured', log_level='DEBUG')
    stream = _capture(logger)

    with log_context(logger, identity="a@x.com"):
        logger.info("hello", extra={'result': 'valid'})

    record = json.loads(stream.getvalue())
    assert record['service'] == 'test_structured'
    assert record['identity'] == 'a@x.com'
    assert record['result'] == 'valid'


def test_sensitive_fields_are_redacted():
    logger = setup_logging('test_redaction', log_level='DEBUG')
    stream = _capture(logger)

    logger.info("issued", extra={'code': '123456', 'otp': '654321'})

    output = stream.getvalue()
    assert '123456' not in output
    assert '654321' not in output


def test_log_context_is_restored():
    logger = setup_logging('test_restore', log_level='DEBUG')
    stream = _capture(logger)

    with log_context(logger, task="outer"):
        with log_context(logger, task="inner"):
            pass
        logger.info("after")

    assert json.loads(stream.getvalue())['task'] == 'outer'


def test_log_context_is_per_thread():
    logger = setup_logging('test_threads', log_level='DEBUG')
    stream = _capture(logger)
    entered = threading.Event()
    release = threading.Event()

    def other_thread():
        with log_context(logger, identity="other@x.com"):
            entered.set()
            release.wait(5)

    thread = threading.Thread(target=other_thread)
    thread.start()
    entered.wait(5)
    logger.info("main thread")
    release.set()
    thread.join(5)

    assert 'identity' not in json.loads(stream.getvalue())


def test_log_operation_without_args():
    class Worker:
        def __init__(self):
            self.logger = setup_logging('test_operation', log_level='DEBUG')

        @log_operation("check", log_args=False)
        def check(self, identity, code):
            return code == "123456"

    worker = Worker()
    stream = _capture(worker.logger)

    assert worker.check("a@x.com", "123456")
    assert "123456" not in stream.getvalue()
    assert "Starting check" in stream.getvalue()


def test_log_operation_on_function_without_arguments():
    @log_operation("ping")
    def ping():
        return "pong"

    assert ping() == "pong"
