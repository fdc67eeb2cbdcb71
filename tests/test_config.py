"""Tests for environment-driven configuration and logging setup."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from datarefine.core.config import (
    DEFAULT_HEADER_SCAN_ROWS,
    DEFAULT_JACOBI_TOLERANCE,
    EngineConfig,
    configure_logging,
)


def test_defaults_without_environment() -> None:
    config = EngineConfig.from_env({})

    assert config == EngineConfig()
    assert config.header_scan_rows == DEFAULT_HEADER_SCAN_ROWS
    assert config.log_level == "WARNING"


def test_values_read_from_environment() -> None:
    config = EngineConfig.from_env(
        {
            "DATAREFINE_HEADER_SCAN_ROWS": "5",
            "DATAREFINE_PCA_MAX_POINTS": "500",
            "DATAREFINE_JACOBI_TOLERANCE": "1e-6",
            "DATAREFINE_LOG_LEVEL": "debug",
        }
    )

    assert config.header_scan_rows == 5
    assert config.pca_max_points == 500
    assert config.jacobi_tolerance == 1e-6
    assert config.log_level == "DEBUG"


def test_bad_values_fall_back_to_defaults() -> None:
    config = EngineConfig.from_env(
        {
            "DATAREFINE_HEADER_SCAN_ROWS": "many",
            "DATAREFINE_INGEST_BATCH_ROWS": "-3",
            "DATAREFINE_JACOBI_TOLERANCE": "tiny",
        }
    )

    assert config.header_scan_rows == DEFAULT_HEADER_SCAN_ROWS
    assert config.ingest_batch_rows == EngineConfig().ingest_batch_rows
    assert config.jacobi_tolerance == DEFAULT_JACOBI_TOLERANCE


def test_configure_logging_installs_one_rich_handler() -> None:
    logger = configure_logging("DEBUG")
    configure_logging("INFO")

    handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
    assert len(handlers) == 1
    assert logger.level == logging.INFO
