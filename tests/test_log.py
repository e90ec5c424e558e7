import logging

from shellagent.log import init_logging, resolve_level


def test_resolve_level():
    assert resolve_level(debug=True, verbose=True) == logging.DEBUG
    assert resolve_level(verbose=True, level="error") == logging.INFO
    assert resolve_level(level="ERROR") == logging.ERROR
    assert resolve_level(level="bogus") == logging.WARNING
    assert resolve_level() == logging.WARNING


def test_init_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "agent.log"
    init_logging(verbose=True)
    logger = init_logging(debug=True, log_file=str(log_file))
    assert len(logger.handlers) == 2
    assert logger.level == logging.DEBUG
    logging.getLogger("shellagent.ollama").debug("pulling %s", "llama3.2:3b")
    for handler in logger.handlers:
        handler.flush()
    assert "pulling llama3.2:3b" in log_file.read_text()
