from procedure_tracker.client.api_client import (
    ProcedureServiceClient,
    ProcedureServiceError,
    ProcedureRecord,
    ProfileRecord,
    Session,
    StatsRecord,
)
from procedure_tracker.client.card import ProcedureCard
from procedure_tracker.client.config import ClientSettings
from procedure_tracker.client.dashboard import ProcedureListController
from procedure_tracker.client.editor import (
    ProcedureEditor,
    ProcedureForm,
    ValidationResult,
    validate_procedure_form,
)
from procedure_tracker.client.session import AuthForm, SessionContext, SessionGate, View

__all__ = [
    "ProcedureServiceClient",
    "ProcedureServiceError",
    "ProcedureRecord",
    "ProfileRecord",
    "Session",
    "StatsRecord",
    "ProcedureCard",
    "ClientSettings",
    "ProcedureListController",
    "ProcedureEditor",
    "ProcedureForm",
    "ValidationResult",
    "validate_procedure_form",
    "AuthForm",
    "SessionContext",
    "SessionGate",
    "View",
]
