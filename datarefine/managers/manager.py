# Standard library
import logging
from collections.abc import Sequence
from pathlib import Path

# Local imports
from datarefine.core.config import EngineConfig
from datarefine.core.models import (
    CorrelationResult,
    DataRow,
    ProcessingSuggestion,
    ReductionResult,
    TransformationConfig,
)
from datarefine.core.validation import validate_column_exists
from datarefine.datasets.dataset import Dataset
from datarefine.services import (
    correlation_service,
    ingestion_service,
    join_service,
    reduction_service,
    reshape_service,
    transform_service,
)
from datarefine.services.advisory_service import AdvisorConfig, AdvisoryClient
from datarefine.services.transform_service import SUGGESTION_SAMPLE_SIZE
from datarefine.types import ImputeMethod, ProgressSink, Scalar, TargetType

logger = logging.getLogger(__name__)

# -----------------------------
# Unified Data Manager
# -----------------------------


class DataManager:
    """Data manager - single API surface for dataset operations.

    Every operation takes a Dataset and returns a new one; the manager only
    binds the engine configuration. Keeping track of the current dataset is
    up to the caller.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        advisor: AdvisorConfig | None = None,
    ) -> None:
        self.config = config or EngineConfig.from_env()
        self.advisor = advisor
        self._advisory_client: AdvisoryClient | None = None
        logger.debug("DataManager ready with %s", self.config)

    # -----------------------------
    # Ingestion
    # -----------------------------

    def load(
        self,
        raw_input: ingestion_service.RawInput,
        progress: ProgressSink | None = None,
        *,
        name: str = "dataset",
        delimiter: str | None = None,
    ) -> Dataset:
        """Parse delimited text into a Dataset.

        Examples:
            >>> dm = DataManager()
            >>> ds = dm.load("Name,Age\\nAnn,30", name="people")
            >>> ds.column_names
            ['Name', 'Age']
        """
        return ingestion_service.ingest_tabular(
            raw_input, progress, name=name, delimiter=delimiter, config=self.config
        )

    async def load_async(
        self,
        raw_input: ingestion_service.RawInput,
        progress: ProgressSink | None = None,
        *,
        name: str = "dataset",
        delimiter: str | None = None,
    ) -> Dataset:
        return await ingestion_service.ingest_tabular_async(
            raw_input, progress, name=name, delimiter=delimiter, config=self.config
        )

    def load_geojson(self, raw_input: str | bytes, *, name: str = "dataset") -> Dataset:
        return ingestion_service.ingest_geographic(raw_input, name=name)

    def load_file(self, path: str | Path, progress: ProgressSink | None = None) -> Dataset:
        """Load a .csv/.tsv/.txt or .json/.geojson file."""
        return ingestion_service.ingest_file(path, progress, config=self.config)

    # -----------------------------
    # Transformation
    # -----------------------------

    def transform(self, dataset: Dataset, config: TransformationConfig) -> Dataset:
        return transform_service.apply_transformation(dataset, config)

    def add_calculated_column(self, dataset: Dataset, name: str, formula: str) -> Dataset:
        """Add a column computed from a formula, e.g. ``Price * Quantity``."""
        return transform_service.create_calculated_column(dataset, name, formula)

    def suggest_transformations(
        self, dataset: Dataset, column: str
    ) -> list[TransformationConfig]:
        validate_column_exists(dataset, column)
        samples: list[Scalar] = [
            row.get(column) for row in dataset.rows[:SUGGESTION_SAMPLE_SIZE]
        ]
        return transform_service.suggest_transformations(dataset.column(column), samples)

    # -----------------------------
    # Cleaning
    # -----------------------------

    def convert_type(self, dataset: Dataset, column: str, target: TargetType) -> Dataset:
        return transform_service.convert_column_type(dataset, column, target)

    def impute(self, dataset: Dataset, column: str, method: ImputeMethod = "mean") -> Dataset:
        return transform_service.impute_column(dataset, column, method)

    def set_active(self, dataset: Dataset, column: str, active: bool) -> Dataset:
        return transform_service.set_column_active(dataset, column, active)

    def update_cell(
        self, dataset: Dataset, row_id: int, column: str, value: Scalar
    ) -> Dataset:
        return transform_service.update_cell(dataset, row_id, column, value)

    def search(self, dataset: Dataset, query: str) -> tuple[DataRow, ...]:
        return transform_service.filter_rows(dataset, query)

    def set_hierarchy(self, dataset: Dataset, name: str, levels: Sequence[str]) -> Dataset:
        return transform_service.set_hierarchy(dataset, name, levels)

    def snapshot(self, dataset: Dataset, name: str | None = None) -> Dataset:
        return transform_service.snapshot(dataset, name)

    def suggest_cleaning(self, dataset: Dataset) -> list[ProcessingSuggestion]:
        """Heuristic suggestions, extended by the advisor when one is configured."""
        suggestions: list[ProcessingSuggestion] = transform_service.suggest_cleaning(dataset)
        client: AdvisoryClient | None = self.advisory_client
        if client is not None:
            suggestions.extend(client.cleaning_suggestions(dataset))
        return suggestions

    # -----------------------------
    # Structure
    # -----------------------------

    def join(
        self,
        primary: Dataset,
        secondary: Dataset,
        primary_key: str,
        secondary_key: str,
    ) -> Dataset:
        return join_service.join_datasets(primary, secondary, primary_key, secondary_key)

    def transpose(self, dataset: Dataset) -> Dataset:
        return reshape_service.transpose(dataset)

    def crop(
        self,
        dataset: Dataset,
        start_row: int,
        end_row: int,
        keep_columns: Sequence[str] | None = None,
    ) -> Dataset:
        return reshape_service.crop(dataset, start_row, end_row, keep_columns)

    def promote_header(self, dataset: Dataset, row_index: int) -> Dataset:
        return reshape_service.promote_row_to_header(dataset, row_index)

    # -----------------------------
    # Analysis
    # -----------------------------

    def correlations(self, dataset: Dataset) -> CorrelationResult:
        return correlation_service.correlation_matrix(dataset)

    def pca(self, dataset: Dataset, columns: Sequence[str] | None = None) -> ReductionResult:
        """Project the dataset onto two principal components.

        Args:
            dataset: Dataset to reduce
            columns: Feature columns; defaults to the active numeric columns

        Returns:
            ReductionResult, empty with fewer than two columns
        """
        return reduction_service.reduce_to_two_dimensions(
            dataset.rows,
            dataset.numeric_columns if columns is None else columns,
            max_points=self.config.pca_max_points,
            max_iterations=self.config.jacobi_max_iterations,
            tolerance=self.config.jacobi_tolerance,
        )

    def explain(self, context: str, summary: str) -> str:
        """Short advisor explanation; "" when no advisor is configured."""
        client: AdvisoryClient | None = self.advisory_client
        return client.explain(context, summary) if client is not None else ""

    @property
    def advisory_client(self) -> AdvisoryClient | None:
        if self.advisor is None:
            return None
        if self._advisory_client is None:
            self._advisory_client = AdvisoryClient(self.advisor)
        return self._advisory_client

    # -----------------------------
    # Display
    # -----------------------------

    def show(self, dataset: Dataset) -> None:
        dataset.info()

    def __repr__(self) -> str:
        return f"DataManager(config={self.config})"
