"""Tests for shared helpers (document IDs, UTC time, logging setup)."""

import logging
from datetime import UTC, datetime

from firestore_connector.shared.telemetry.logging import (
    PACKAGE_LOGGER,
    get_logger,
    setup_logging,
)
from firestore_connector.shared.utils import (
    ensure_utc,
    from_timestamp_utc,
    generate_document_id,
    utc_now,
)


def test_generate_document_id_unique_and_path_safe() -> None:
    ids = {generate_document_id() for _ in range(100)}
    assert len(ids) == 100
    assert all("/" not in i for i in ids)


def test_utc_helpers() -> None:
    assert utc_now().tzinfo is UTC
    assert ensure_utc(datetime(2025, 1, 1)) == datetime(2025, 1, 1, tzinfo=UTC)
    assert ensure_utc(None) is None
    assert from_timestamp_utc(0) == datetime(1970, 1, 1, tzinfo=UTC)


def test_setup_logging_attaches_one_stdout_handler() -> None:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    before = list(package_logger.handlers)
    level = package_logger.level
    try:
        assert setup_logging() is package_logger
        assert package_logger.level == logging.INFO
        setup_logging(logging.DEBUG)
        added = [h for h in package_logger.handlers if h not in before]
        assert len(added) == 1
        assert package_logger.level == logging.DEBUG
    finally:
        package_logger.handlers[:] = before
        package_logger.setLevel(level)


def test_get_logger_nests_under_package_logger() -> None:
    logger = get_logger("firestore_connector.infrastructure.firebase.credentials")
    assert logger is logging.getLogger("firestore_connector.infrastructure.firebase.credentials")
    assert logger.name.startswith(PACKAGE_LOGGER + ".")
