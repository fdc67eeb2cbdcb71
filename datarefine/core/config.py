# Standard library
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

# Third-party
from rich.logging import RichHandler

# -----------------------------
# Defaults
# -----------------------------

DEFAULT_HEADER_SCAN_ROWS = 20
DEFAULT_INGEST_BATCH_ROWS = 50_000
DEFAULT_PCA_MAX_POINTS = 2_000
DEFAULT_JACOBI_MAX_ITERATIONS = 100
DEFAULT_JACOBI_TOLERANCE = 1e-9

ENV_PREFIX = "DATAREFINE_"

logger = logging.getLogger(__name__)

# -----------------------------
# Engine configuration
# -----------------------------


@dataclass(frozen=True)
class EngineConfig:
    """Tunables threaded explicitly into the engine services."""

    header_scan_rows: int = DEFAULT_HEADER_SCAN_ROWS
    ingest_batch_rows: int = DEFAULT_INGEST_BATCH_ROWS
    pca_max_points: int = DEFAULT_PCA_MAX_POINTS
    jacobi_max_iterations: int = DEFAULT_JACOBI_MAX_ITERATIONS
    jacobi_tolerance: float = DEFAULT_JACOBI_TOLERANCE
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "EngineConfig":
        """Build a config from DATAREFINE_* variables.

        Unparsable or non-positive values fall back to the defaults.

        Args:
            env: Mapping to read instead of os.environ

        Returns:
            EngineConfig
        """
        source: Mapping[str, str] = os.environ if env is None else env
        return cls(
            header_scan_rows=_positive_int(
                source, "HEADER_SCAN_ROWS", DEFAULT_HEADER_SCAN_ROWS
            ),
            ingest_batch_rows=_positive_int(
                source, "INGEST_BATCH_ROWS", DEFAULT_INGEST_BATCH_ROWS
            ),
            pca_max_points=_positive_int(
                source, "PCA_MAX_POINTS", DEFAULT_PCA_MAX_POINTS
            ),
            jacobi_max_iterations=_positive_int(
                source, "JACOBI_MAX_ITERATIONS", DEFAULT_JACOBI_MAX_ITERATIONS
            ),
            jacobi_tolerance=_positive_float(
                source, "JACOBI_TOLERANCE", DEFAULT_JACOBI_TOLERANCE
            ),
            log_level=source.get(f"{ENV_PREFIX}LOG_LEVEL", "WARNING").upper(),
        )


def _positive_int(source: Mapping[str, str], key: str, default: int) -> int:
    raw: str | None = source.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s%s=%r (not an integer)", ENV_PREFIX, key, raw)
        return default
    return value if value > 0 else default


def _positive_float(source: Mapping[str, str], key: str, default: float) -> float:
    raw: str | None = source.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s%s=%r (not a number)", ENV_PREFIX, key, raw)
        return default
    return value if value > 0 else default


# -----------------------------
# Logging
# -----------------------------


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a rich handler to the package logger.

    Calling it again only updates the level.
    """
    package_logger: logging.Logger = logging.getLogger("datarefine")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        handler = RichHandler(show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        package_logger.addHandler(handler)
    return package_logger
