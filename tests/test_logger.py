from __future__ import annotations

import logging

from backend.utils.logger import configure_logging, get_logger


def test_configure_logging_installs_handlers_once():
    configure_logging()
    before = list(logging.getLogger().handlers)

    configure_logging("DEBUG")
    logger = get_logger("backend.services.zone_registry")

    assert logging.getLogger().handlers == before
    assert logger.name == "backend.services.zone_registry"
