# Standard library
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

# Local imports
from datarefine.core.analyzer import analyze_columns, completeness
from datarefine.core.models import (
    ColumnMetadata,
    DataRow,
    DatasetStats,
    HierarchyDefinition,
)
from datarefine.core.utils import generate_id, utc_timestamp

# -----------------------------
# Constants
# -----------------------------

MISSING_PCT_HIGH_THRESHOLD = 50
MISSING_PCT_MEDIUM_THRESHOLD = 10

# -----------------------------
# Dataset
# -----------------------------


@dataclass(frozen=True)
class Dataset:
    """Immutable in-memory table: rows, column metadata and running stats."""

    id: str
    name: str
    rows: tuple[DataRow, ...]
    columns: tuple[ColumnMetadata, ...]
    stats: DatasetStats
    created_at: str = field(default_factory=utc_timestamp)
    parent_id: str | None = None
    hierarchy: HierarchyDefinition | None = None
    # Set only on the direct output of transpose; derived datasets drop it.
    transposed: bool = False

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def active_columns(self) -> list[ColumnMetadata]:
        return [c for c in self.columns if c.is_active]

    @property
    def numeric_columns(self) -> list[str]:
        """Names of active numeric columns."""
        return [c.name for c in self.columns if c.is_active and c.is_numeric]

    @property
    def completeness(self) -> float:
        return completeness(self.columns, self.row_count)

    def column(self, name: str) -> ColumnMetadata:
        for col in self.columns:
            if col.name == name:
                return col
        msg = f"Column '{name}' not found in dataset '{self.name}'"
        raise KeyError(msg)

    def sample(self, n: int = 3) -> list[dict[str, object]]:
        """First n rows as plain dicts, for previews and advisory payloads."""
        return [dict(row.values) for row in self.rows[:n]]

    def derive(
        self,
        rows: Sequence[DataRow],
        *,
        name: str | None = None,
        stats: DatasetStats | None = None,
        columns: Sequence[ColumnMetadata] | None = None,
        column_names: Sequence[str] | None = None,
        transposed: bool = False,
    ) -> "Dataset":
        """Build the dataset that replaces this one.

        The result gets a fresh id, points back to this dataset through
        parent_id and is re-analyzed unless columns are given. Column order
        is column_names (default: this dataset's columns) followed by any new
        keys found in the rows. total_cells is recomputed; the other counters
        come from stats (or this dataset's stats).
        """
        new_rows: tuple[DataRow, ...] = tuple(rows)
        new_columns: tuple[ColumnMetadata, ...] = (
            tuple(columns)
            if columns is not None
            else analyze_columns(
                new_rows,
                previous=self.columns,
                names=self.column_names if column_names is None else column_names,
            )
        )
        base: DatasetStats = stats or self.stats
        hierarchy = self.hierarchy
        if hierarchy is not None:
            names = {c.name for c in new_columns}
            if not all(level in names for level in hierarchy.levels):
                hierarchy = None
        return Dataset(
            id=generate_id(),
            name=name or self.name,
            rows=new_rows,
            columns=new_columns,
            stats=replace(base, total_cells=len(new_rows) * len(new_columns)),
            parent_id=self.id,
            hierarchy=hierarchy,
            transposed=transposed,
        )

    def info(self) -> None:
        """Display dataset information using rich formatting."""
        from rich.console import Console
        from rich.table import Table

        console: Console = Console()

        # Overview table
        info_table: Table = Table(title=f"Dataset: {self.name}", show_header=False)
        info_table.add_column("Property", style="cyan", width=20)
        info_table.add_column("Value", style="white")

        info_table.add_row("ID", self.id)
        info_table.add_row("Parent", self.parent_id or "-")
        info_table.add_row("Created", self.created_at)
        info_table.add_row("Rows", f"{self.row_count:,}")
        info_table.add_row("Columns", str(len(self.columns)))
        info_table.add_row("Completeness", f"{self.completeness:.1%}")
        info_table.add_row("Dropped rows", f"{self.stats.dropped_rows:,}")
        info_table.add_row("Imputed cells", f"{self.stats.imputed_cells:,}")
        if self.hierarchy:
            info_table.add_row(
                "Hierarchy",
                f"{self.hierarchy.name}: {' > '.join(self.hierarchy.levels)}",
            )

        console.print(info_table)

        # Column table
        if self.columns:
            column_table: Table = Table(title="Columns", show_header=True)
            column_table.add_column("Column", style="green")
            column_table.add_column("Type", style="yellow")
            column_table.add_column("Missing", justify="right")
            column_table.add_column("Unique", justify="right")
            column_table.add_column("Mean", justify="right")
            column_table.add_column("Active")

            for col in self.columns:
                missing_pct: float = (
                    col.missing_count / self.row_count * 100 if self.row_count else 0.0
                )
                # Color code by missing percentage
                if missing_pct > MISSING_PCT_HIGH_THRESHOLD:
                    color = "red"
                elif missing_pct > MISSING_PCT_MEDIUM_THRESHOLD:
                    color = "yellow"
                else:
                    color = "green"

                column_table.add_row(
                    col.name,
                    col.type,
                    f"[{color}]{col.missing_count:,}[/]",
                    f"{col.unique_count:,}",
                    f"{col.mean:.4g}" if col.mean is not None else "-",
                    "yes" if col.is_active else "no",
                )

            console.print(column_table)

    def __repr__(self) -> str:
        created: str = self.created_at.split("T")[0]
        return (
            f"Dataset({self.name}, id={self.id[:8]}, rows={self.row_count}, "
            f"cols={len(self.columns)}, created={created})"
        )


# -----------------------------
# Construction
# -----------------------------


def create_dataset(
    name: str,
    rows: Sequence[DataRow],
    *,
    dropped_rows: int = 0,
) -> Dataset:
    """Create a root dataset (no parent) from freshly ingested rows."""
    new_rows: tuple[DataRow, ...] = tuple(rows)
    columns: tuple[ColumnMetadata, ...] = analyze_columns(new_rows)
    return Dataset(
        id=generate_id(),
        name=name,
        rows=new_rows,
        columns=columns,
        stats=DatasetStats(
            original_row_count=len(new_rows),
            total_cells=len(new_rows) * len(columns),
            imputed_cells=0,
            dropped_rows=dropped_rows,
        ),
    )
