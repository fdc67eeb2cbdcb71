# Standard library
import asyncio
import io
import json
import logging
import re
from collections.abc import Mapping, Sequence
from pathlib import Path

# Third-party
import polars as pl

# Local imports
from datarefine.core.config import EngineConfig
from datarefine.core.models import DataRow
from datarefine.core.utils import dedupe_names, header_name, is_missing, parse_cell
from datarefine.core.validation import ParseError
from datarefine.datasets.dataset import Dataset, create_dataset
from datarefine.types import ProgressSink, Scalar

# -----------------------------
# Constants
# -----------------------------

CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
SNIFF_LINES = 20
READ_PROGRESS = 20

LATITUDE_FIELD = "_lat"
LONGITUDE_FIELD = "_lng"
GEOMETRY_TYPE_FIELD = "_geo_type"

TABULAR_SUFFIXES = {".csv", ".tsv", ".txt"}
GEOGRAPHIC_SUFFIXES = {".json", ".geojson"}

_QUOTED = re.compile(r'"[^"]*"')

logger = logging.getLogger(__name__)

RawInput = str | bytes | Sequence[str]

# -----------------------------
# Progress reporting
# -----------------------------


class _ProgressReporter:
    """Forwards percentages to a sink, never repeating or going backwards."""

    def __init__(self, sink: ProgressSink | None) -> None:
        self.sink = sink
        self.last = -1

    def update(self, percent: int) -> None:
        percent = max(0, min(100, percent))
        if self.sink is None or percent <= self.last:
            return
        self.last = percent
        self.sink(percent)

    def finish(self) -> None:
        self.update(100)


# -----------------------------
# Tabular ingestion
# -----------------------------


def ingest_tabular(
    raw_input: RawInput,
    progress: ProgressSink | None = None,
    *,
    name: str = "dataset",
    delimiter: str | None = None,
    config: EngineConfig | None = None,
) -> Dataset:
    """Parse delimited text into a Dataset, recovering the header row.

    The header is the row, among the first ``header_scan_rows``, with the
    most non-empty text cells; rows above it are dropped and counted.

    Args:
        raw_input: Text, bytes, or a sequence of text lines
        progress: Optional callback receiving increasing percentages
        name: Display name of the dataset
        delimiter: Field separator; sniffed when omitted
        config: Engine configuration

    Returns:
        The complete Dataset

    Raises:
        ParseError: If the input cannot be parsed
    """
    cfg: EngineConfig = config or EngineConfig()
    reporter = _ProgressReporter(progress)

    lines: list[str] = _decode(raw_input).splitlines()
    if not any(line.strip() for line in lines):
        reporter.finish()
        return create_dataset(name, [])

    separator: str = delimiter or sniff_delimiter(lines)
    grid_frame: pl.DataFrame = _read_grid(lines, separator)
    reporter.update(READ_PROGRESS)

    grid: list[list[Scalar]] = []
    total: int = grid_frame.height
    for frame in grid_frame.iter_slices(n_rows=cfg.ingest_batch_rows):
        grid.extend([parse_cell(cell) for cell in record] for record in frame.iter_rows())
        done: int = len(grid)
        reporter.update(READ_PROGRESS + (100 - READ_PROGRESS - 1) * done // total)

    header_index: int = detect_header_row(grid, cfg.header_scan_rows)
    header_cells: list[Scalar] = _trim_trailing_missing(grid[header_index])
    header: list[str] = dedupe_names(
        header_name(cell, i) for i, cell in enumerate(header_cells)
    )

    rows: list[DataRow] = []
    blank_rows: int = 0
    for cells in grid[header_index + 1 :]:
        if all(is_missing(cell) for cell in cells):
            blank_rows += 1
            continue
        values: dict[str, Scalar] = {
            column: cells[i] if i < len(cells) else None
            for i, column in enumerate(header)
        }
        rows.append(DataRow(id=len(rows), values=values))

    dataset: Dataset = create_dataset(
        name, rows, dropped_rows=header_index + blank_rows
    )
    logger.info(
        "Ingested %s: %d rows x %d columns (header at line %d, %d rows dropped)",
        name,
        dataset.row_count,
        len(dataset.columns),
        header_index,
        dataset.stats.dropped_rows,
    )
    reporter.finish()
    return dataset


async def ingest_tabular_async(
    raw_input: RawInput,
    progress: ProgressSink | None = None,
    *,
    name: str = "dataset",
    delimiter: str | None = None,
    config: EngineConfig | None = None,
) -> Dataset:
    """Run ingest_tabular in a worker thread; completes once, fully or not at all."""
    return await asyncio.to_thread(
        ingest_tabular,
        raw_input,
        progress,
        name=name,
        delimiter=delimiter,
        config=config,
    )


def detect_header_row(grid: Sequence[Sequence[Scalar]], scan_rows: int) -> int:
    """Index of the first row with the most non-empty text cells.

    Without any text cell the first non-blank row is used.
    """
    best_index: int = next(
        (i for i, cells in enumerate(grid) if not all(is_missing(c) for c in cells)), 0
    )
    best_count: int = 0
    for index, cells in enumerate(grid[:scan_rows]):
        count: int = sum(1 for cell in cells if isinstance(cell, str) and cell.strip())
        if count > best_count:
            best_index, best_count = index, count
    return best_index


def sniff_delimiter(lines: Sequence[str]) -> str:
    """Most frequent candidate separator over the first lines; comma on ties."""
    sample: list[str] = [_QUOTED.sub("", line) for line in lines if line.strip()]
    sample = sample[:SNIFF_LINES]
    best: str = CANDIDATE_DELIMITERS[0]
    best_count: int = 0
    for candidate in CANDIDATE_DELIMITERS:
        count: int = sum(line.count(candidate) for line in sample)
        if count > best_count:
            best, best_count = candidate, count
    return best


def _read_grid(lines: list[str], separator: str) -> pl.DataFrame:
    """Read lines as an all-text grid as wide as the widest line.

    Blank lines are kept as empty rows so grid indexes match line numbers.
    """
    width: int = max(_QUOTED.sub("", line).count(separator) + 1 for line in lines)
    normalized: str = "\n".join(line if line.strip() else separator for line in lines)
    schema: dict[str, pl.DataType] = {f"field_{i}": pl.String() for i in range(width)}
    try:
        return pl.read_csv(
            io.BytesIO(normalized.encode("utf-8")),
            has_header=False,
            separator=separator,
            schema=schema,
            quote_char='"',
            truncate_ragged_lines=True,
        )
    except pl.exceptions.PolarsError as e:
        msg = f"Could not parse delimited input: {e}"
        raise ParseError(msg) from e


def _trim_trailing_missing(cells: list[Scalar]) -> list[Scalar]:
    end: int = len(cells)
    while end > 0 and is_missing(cells[end - 1]):
        end -= 1
    return cells[:end]


def _decode(raw_input: RawInput) -> str:
    if isinstance(raw_input, bytes):
        return raw_input.decode("utf-8-sig", errors="replace")
    if isinstance(raw_input, str):
        return raw_input.removeprefix("\ufeff")
    return "\n".join(raw_input)


# -----------------------------
# Geographic ingestion
# -----------------------------


def ingest_geographic(
    raw_input: str | bytes | Mapping[str, object], *, name: str = "dataset"
) -> Dataset:
    """Flatten a GeoJSON feature collection into a Dataset.

    Point geometries fill the _lat/_lng fields. Other geometries only record
    their type in _geo_type; no centroid is computed.

    Raises:
        ParseError: If the input is not a Feature or FeatureCollection
    """
    document: object = raw_input
    if isinstance(raw_input, str | bytes):
        try:
            document = json.loads(_decode(raw_input))
        except json.JSONDecodeError as e:
            msg = f"Invalid GeoJSON: {e}"
            raise ParseError(msg) from e

    features: list[Mapping[str, object]] = _features(document)

    records: list[dict[str, Scalar]] = [_flatten_feature(f) for f in features]
    columns: dict[str, None] = {}
    for record in records:
        for key in record:
            columns.setdefault(key, None)

    rows: list[DataRow] = [
        DataRow(id=i, values={column: record.get(column) for column in columns})
        for i, record in enumerate(records)
    ]
    dataset: Dataset = create_dataset(name, rows)
    logger.info("Ingested %s: %d features", name, dataset.row_count)
    return dataset


def _features(document: object) -> list[Mapping[str, object]]:
    if not isinstance(document, Mapping):
        msg = "GeoJSON document must be an object"
        raise ParseError(msg)
    kind: object = document.get("type")
    if kind == "FeatureCollection" or (kind is None and "features" in document):
        features = document.get("features")
        if not isinstance(features, list):
            msg = "FeatureCollection has no 'features' array"
            raise ParseError(msg)
        if not all(isinstance(f, Mapping) for f in features):
            msg = "Every feature must be an object"
            raise ParseError(msg)
        return features
    if kind == "Feature":
        return [document]
    msg = f"Unsupported GeoJSON type: {kind!r}"
    raise ParseError(msg)


def _flatten_feature(feature: Mapping[str, object]) -> dict[str, Scalar]:
    record: dict[str, Scalar] = {}
    properties = feature.get("properties")
    if isinstance(properties, Mapping):
        for key, value in properties.items():
            record[str(key)] = _property_value(value)

    geometry = feature.get("geometry")
    if isinstance(geometry, Mapping):
        geometry_type = geometry.get("type")
        coordinates = geometry.get("coordinates")
        if (
            geometry_type == "Point"
            and isinstance(coordinates, list)
            and len(coordinates) >= 2
        ):
            record[LONGITUDE_FIELD] = _property_value(coordinates[0])
            record[LATITUDE_FIELD] = _property_value(coordinates[1])
        elif isinstance(geometry_type, str):
            record[GEOMETRY_TYPE_FIELD] = geometry_type
    return record


def _property_value(value: object) -> Scalar:
    if value is None or isinstance(value, bool | int | float | str):
        return value
    return json.dumps(value)


# -----------------------------
# File dispatch
# -----------------------------


def ingest_file(
    path: str | Path,
    progress: ProgressSink | None = None,
    *,
    config: EngineConfig | None = None,
) -> Dataset:
    """Auto-detect and ingest a file by suffix."""
    file_path = Path(path)
    suffix: str = file_path.suffix.lower()
    if suffix in TABULAR_SUFFIXES:
        delimiter: str | None = "\t" if suffix == ".tsv" else None
        return ingest_tabular(
            file_path.read_bytes(),
            progress,
            name=file_path.name,
            delimiter=delimiter,
            config=config,
        )
    if suffix in GEOGRAPHIC_SUFFIXES:
        dataset: Dataset = ingest_geographic(file_path.read_bytes(), name=file_path.name)
        if progress is not None:
            progress(100)
        return dataset
    msg: str = f"Unsupported file type: {suffix}"
    raise ParseError(msg)
