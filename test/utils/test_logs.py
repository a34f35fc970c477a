import logging

from relpipe.utils.inspect import get_qualname
from relpipe.utils.logs import setup_logging


def test_setup_logging():
    logger = setup_logging("debug")
    try:
        assert logger.name == "relpipe"
        assert logger.level == logging.DEBUG
        handlers = [h for h in logger.handlers if getattr(h, "_relpipe_handler", False)]
        assert len(handlers) == 1

        # Setting up again replaces the handler instead of adding one.
        setup_logging("info")
        handlers = [h for h in logger.handlers if getattr(h, "_relpipe_handler", False)]
        assert len(handlers) == 1
        assert logger.level == logging.INFO
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


def test_node_logging(caplog):
    import pyarrow as pa
    from relpipe.compute import PyArrowTableDataSource, SortNode

    with caplog.at_level(logging.DEBUG, logger="relpipe"):
        list(SortNode(["a"], [False], PyArrowTableDataSource(pa.table({"a": [2, 1]}))).batches())
    assert "Sorted 2 rows" in caplog.text


def test_get_qualname():
    assert get_qualname(get_qualname) == "relpipe.utils.inspect.get_qualname"
    assert get_qualname(logging.Logger) == "logging.Logger"
    assert get_qualname(logging) == "logging"
