"""Tests for tabular and geographic ingestion."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from datarefine.core.config import EngineConfig
from datarefine.core.validation import ParseError
from datarefine.services.ingestion_service import (
    detect_header_row,
    ingest_file,
    ingest_geographic,
    ingest_tabular,
    ingest_tabular_async,
    sniff_delimiter,
)

BANNER_LINES = [
    "REPORT,,,",
    "",
    "Name,Age,City",
    "Ann,30,NY",
    "Bo,25,LA",
    "Cy,40,SF",
]


def test_banner_rows_above_header_are_dropped() -> None:
    """The header is found below a title banner and a blank line."""
    ds = ingest_tabular(BANNER_LINES, name="report")

    assert ds.column_names == ["Name", "Age", "City"]
    assert ds.row_count == 3
    assert ds.stats.dropped_rows == 2
    assert [row.id for row in ds.rows] == [0, 1, 2]
    assert ds.rows[0].values == {"Name": "Ann", "Age": 30, "City": "NY"}
    assert ds.column("Age").type == "number"
    assert ds.column("Name").type == "string"


def test_text_and_bytes_inputs_match_line_input() -> None:
    text = "\n".join(BANNER_LINES)
    from_text = ingest_tabular(text)
    from_bytes = ingest_tabular(("\ufeff" + text).encode("utf-8"))

    assert from_text.column_names == from_bytes.column_names == ["Name", "Age", "City"]
    assert [r.values for r in from_text.rows] == [r.values for r in from_bytes.rows]


def test_duplicate_and_blank_header_cells_are_renamed() -> None:
    ds = ingest_tabular("A,A,,B\n1,2,3,4\n")

    assert ds.column_names == ["A", "A_2", "Column_3", "B"]
    assert ds.rows[0].values == {"A": 1, "A_2": 2, "Column_3": 3, "B": 4}


def test_short_rows_are_padded_and_blank_rows_counted() -> None:
    ds = ingest_tabular("x;y;z\n1;2\n\n4;5;6\n")

    assert ds.column_names == ["x", "y", "z"]
    assert ds.row_count == 2
    assert ds.rows[0].get("z") is None
    assert ds.stats.dropped_rows == 1
    assert ds.column("z").missing_count == 1


def test_cells_are_typed() -> None:
    ds = ingest_tabular("a,b,c,d\n1,2.5,true,hello\n")

    assert ds.rows[0].values == {"a": 1, "b": 2.5, "c": True, "d": "hello"}


def test_oversized_integer_cell_is_ingested_as_text() -> None:
    big = "9" * 400
    ds = ingest_tabular(f"id,v\n{big},1\n2,3\n")

    assert ds.rows[0].values["id"] == big
    assert ds.column("id").type == "string"
    assert ds.column("v").type == "number"


def test_quoted_delimiters_stay_in_one_cell() -> None:
    ds = ingest_tabular('name,tags\n"Smith, Ann","a|b"\n')

    assert ds.rows[0].values == {"name": "Smith, Ann", "tags": "a|b"}


def test_empty_input_gives_empty_dataset() -> None:
    progress: list[int] = []
    ds = ingest_tabular("  \n\n", progress.append)

    assert ds.row_count == 0
    assert ds.columns == ()
    assert progress == [100]


def test_progress_is_increasing_and_ends_at_100() -> None:
    lines = ["id,value"] + [f"{i},{i * 2}" for i in range(250)]
    progress: list[int] = []

    ds = ingest_tabular(lines, progress.append, config=EngineConfig(ingest_batch_rows=40))

    assert ds.row_count == 250
    assert progress[-1] == 100
    assert all(a < b for a, b in zip(progress, progress[1:]))
    assert len(progress) > 2


def test_async_ingestion_returns_complete_dataset() -> None:
    ds = asyncio.run(ingest_tabular_async(BANNER_LINES, name="async"))

    assert ds.name == "async"
    assert ds.row_count == 3


def test_sniff_delimiter_prefers_most_frequent() -> None:
    assert sniff_delimiter(["a;b;c", "1;2;3"]) == ";"
    assert sniff_delimiter(["a\tb", "1\t2"]) == "\t"
    assert sniff_delimiter(["single"]) == ","


def test_detect_header_row_falls_back_to_first_non_blank_row() -> None:
    grid = [[None, None], [1, 2], [3, 4]]

    assert detect_header_row(grid, 20) == 1


def test_geojson_points_and_other_geometries() -> None:
    document = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": "A", "meta": {"k": 1}},
                "geometry": {"type": "Point", "coordinates": [2.35, 48.85]},
            },
            {
                "type": "Feature",
                "properties": {"name": "B"},
                "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [0, 1]]]},
            },
        ],
    }

    ds = ingest_geographic(json.dumps(document), name="places")

    assert ds.row_count == 2
    assert ds.column_names == ["name", "meta", "_lng", "_lat", "_geo_type"]
    assert ds.rows[0].get("_lat") == 48.85
    assert ds.rows[0].get("meta") == '{"k": 1}'
    assert ds.rows[1].get("_geo_type") == "Polygon"
    assert ds.rows[1].get("_lat") is None


def test_geojson_rejects_unsupported_documents() -> None:
    with pytest.raises(ParseError):
        ingest_geographic('{"type": "Point", "coordinates": [0, 0]}')
    with pytest.raises(ParseError):
        ingest_geographic("not json")


def test_ingest_file_dispatches_by_suffix(tmp_path: Path) -> None:
    tsv = tmp_path / "data.tsv"
    tsv.write_text("a\tb\n1\t2\n", encoding="utf-8")
    geo = tmp_path / "shapes.geojson"
    geo.write_text(json.dumps({"type": "Feature", "properties": {"id": 7}}), encoding="utf-8")

    table = ingest_file(tsv)
    shapes = ingest_file(geo)

    assert table.name == "data.tsv"
    assert table.column_names == ["a", "b"]
    assert shapes.rows[0].get("id") == 7


def test_ingest_file_rejects_unknown_suffix(tmp_path: Path) -> None:
    path = tmp_path / "book.xlsx"
    path.write_bytes(b"")

    with pytest.raises(ParseError):
        ingest_file(path)
