import logging

from fanflow.utils.logging_config import setup_logging


def _reset_root():
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()


def test_setup_logging_writes_file(tmp_path, monkeypatch):
    monkeypatch.setenv("FANFLOW_LOG_FSYNC", "1")
    log_file = tmp_path / "logs" / "fanflow.log"
    try:
        logger = setup_logging(level="DEBUG", log_file=log_file)
        assert logger.name == "fanflow"
        logging.getLogger("fanflow.test").debug("hello from test")
        for h in logging.getLogger().handlers:
            h.flush()
        assert "hello from test" in log_file.read_text()
    finally:
        _reset_root()


def test_setup_logging_replaces_handlers(tmp_path):
    try:
        setup_logging(log_file=tmp_path / "a.log")
        setup_logging(log_file=tmp_path / "b.log", console_level="ERROR")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 2
        console = [h for h in handlers if not isinstance(h, logging.FileHandler)]
        assert console[0].level == logging.ERROR
    finally:
        _reset_root()


def test_setup_logging_closes_replaced_file_handler(tmp_path):
    try:
        setup_logging(log_file=tmp_path / "a.log")
        first = next(h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler))
        assert first.stream is not None and not first.stream.closed
        stream = first.stream
        setup_logging(log_file=tmp_path / "b.log")
        assert first not in logging.getLogger().handlers
        assert first.stream is None or stream.closed
    finally:
        _reset_root()


def test_setup_logging_leaves_foreign_handlers_open(tmp_path):
    foreign = logging.FileHandler(tmp_path / "foreign.log")
    logging.getLogger().addHandler(foreign)
    try:
        setup_logging(log_file=tmp_path / "own.log")
        assert foreign not in logging.getLogger().handlers
        assert not foreign.stream.closed
    finally:
        foreign.close()
        _reset_root()
