"""
Data Anonymization Package.

De-identifies a subject's personal health records before they are
shared for research or analytics.

Core Principles:
- Direct identifiers never leave the engine
- The subject is replaced by a stable salted pseudonym
- Every request writes exactly one audit log entry
- Originals are read-only; the engine keeps no state

Modules:
- models: data types, privacy methods, results, log entries
- config: AnonymizationConfig (environment driven)
- pseudonymizer: salted SHA-256 pseudonyms
- generalization: per-data-type generalization rules
- noise: Laplace noise for differential privacy
- pipeline: privacy method stage chain
- scoring: utility score heuristic
- stores: record/log store contracts and implementations
- service: AnonymizationService orchestrator
- audit: log queries and aggregate statistics
- export: JSON / CSV export
- schemas, router: FastAPI surface

Usage:
    from data_anonymization.service import create_anonymization_service
    from data_anonymization.router import router as anonymization_router
"""

from data_anonymization.models import (
    DataType,
    PrivacyMethod,
    AnonymizedDataSet,
    AnonymizationLogEntry,
    AnonymizationResult,
    AnonymizationStats,
    get_method_catalog,
    get_quality_report,
)

from data_anonymization.config import AnonymizationConfig

from data_anonymization.exceptions import (
    AnonymizationError,
    ConfigurationError,
    InvalidConfigError,
    InvalidAnonymizationRequest,
    StoreError,
    RecordStoreError,
    LogStoreError,
)

from data_anonymization.pseudonymizer import Pseudonymizer
from data_anonymization.generalization import GeneralizationRules
from data_anonymization.noise import LaplaceNoise
from data_anonymization.pipeline import PrivacyPipeline, resolve_method
from data_anonymization.scoring import UtilityScorer

from data_anonymization.stores import (
    RecordStore,
    LogStore,
    InMemoryRecordStore,
    InMemoryLogStore,
    SqlAlchemyLogStore,
)

from data_anonymization.service import (
    AnonymizationService,
    create_anonymization_service,
)

from data_anonymization.audit import AuditReader, create_audit_reader
from data_anonymization.export import export_result

from data_anonymization.router import router, create_app

__all__ = [
    # Models
    "DataType",
    "PrivacyMethod",
    "AnonymizedDataSet",
    "AnonymizationLogEntry",
    "AnonymizationResult",
    "AnonymizationStats",
    "get_method_catalog",
    "get_quality_report",
    # Config
    "AnonymizationConfig",
    # Exceptions
    "AnonymizationError",
    "ConfigurationError",
    "InvalidConfigError",
    "InvalidAnonymizationRequest",
    "StoreError",
    "RecordStoreError",
    "LogStoreError",
    # Engine
    "Pseudonymizer",
    "GeneralizationRules",
    "LaplaceNoise",
    "PrivacyPipeline",
    "resolve_method",
    "UtilityScorer",
    # Stores
    "RecordStore",
    "LogStore",
    "InMemoryRecordStore",
    "InMemoryLogStore",
    "SqlAlchemyLogStore",
    # Service
    "AnonymizationService",
    "create_anonymization_service",
    "AuditReader",
    "create_audit_reader",
    "export_result",
    # Router
    "router",
    "create_app",
]
