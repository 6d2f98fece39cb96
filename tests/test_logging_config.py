import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("services.ingestion", logging.WARNING, __file__, 1, "Dropped", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_context_keys_in_order() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", context_keys=["device_id", "topic"])

    text = formatter.format(_record(topic="sensors/dht22/readings", device_id="node-1"))

    assert text == "Dropped | device_id=node-1 topic=sensors/dht22/readings"


def test_formatter_skips_missing_and_none_values() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    assert formatter.format(_record(reason=None)) == "Dropped"
