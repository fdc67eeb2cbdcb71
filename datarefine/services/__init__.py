# Service layer exports
from datarefine.services.advisory_service import AdvisorConfig as AdvisorConfig
from datarefine.services.advisory_service import AdvisoryClient as AdvisoryClient
from datarefine.services.correlation_service import (
    correlation_matrix as correlation_matrix,
)
from datarefine.services.ingestion_service import ingest_file as ingest_file
from datarefine.services.ingestion_service import (
    ingest_geographic as ingest_geographic,
)
from datarefine.services.ingestion_service import ingest_tabular as ingest_tabular
from datarefine.services.join_service import join_datasets as join_datasets
from datarefine.services.reduction_service import (
    reduce_to_two_dimensions as reduce_to_two_dimensions,
)
from datarefine.services.reshape_service import crop as crop
from datarefine.services.reshape_service import (
    promote_row_to_header as promote_row_to_header,
)
from datarefine.services.reshape_service import transpose as transpose
from datarefine.services.transform_service import (
    apply_transformation as apply_transformation,
)
from datarefine.services.transform_service import (
    create_calculated_column as create_calculated_column,
)

__all__ = [
    "AdvisorConfig",
    "AdvisoryClient",
    "apply_transformation",
    "correlation_matrix",
    "create_calculated_column",
    "crop",
    "ingest_file",
    "ingest_geographic",
    "ingest_tabular",
    "join_datasets",
    "promote_row_to_header",
    "reduce_to_two_dimensions",
    "transpose",
]
