"""Domain models for the kinetic time-series import library.

Every model is a frozen dataclass and offers ``to_dict()`` for the JSON boundary
(camelCase keys) handed to the UI layer.
"""

from .config_models import IngestSettings, ValidationSettings
from .dataset import Dataset, Experiment, MetaConsistency, Series, SeriesMeta
from .error_record import ErrorRecord
from .mapping import MappingError, MappingResult, MappingSelection, MappingStats
from .raw_table import ParsedFile, RawTable
from .time_axis import TimeType, TimeUnit
from .validation import FindingCode, Severity, ValidationReport, ValidationStatus

__all__ = [
    # Configuration models
    "IngestSettings",
    "ValidationSettings",
    # Tabular models
    "RawTable",
    "ParsedFile",
    "TimeType",
    "TimeUnit",
    # Mapping models
    "MappingSelection",
    "MappingError",
    "MappingStats",
    "MappingResult",
    "Dataset",
    "Experiment",
    "Series",
    "SeriesMeta",
    "MetaConsistency",
    # Validation / errors
    "FindingCode",
    "Severity",
    "ValidationStatus",
    "ValidationReport",
    "ErrorRecord",
]
