"""
Core - Estrutura base do workflow.

Contém os componentes agnósticos aos provedores:
- Modelos e exceções
- RetryPolicy: política de retry com backoff exponencial
- render_template: substituição de placeholders
- JourneyController: registro das execuções

O ExportWorkflowOrchestrator fica em core.orchestrator e depende das etapas.
"""

from export_pipeline.core.exceptions import (
    ExportPipelineError,
    ConfigurationError,
    RequestRejectedError,
    ExportInProgressError,
    ExportFailedError,
    UnexpectedExportStatusError,
    RetryBudgetExhaustedError,
    QueryExecutionError,
    PartialPublishError,
    WorkflowCancelledError,
    StepFailedError,
)
from export_pipeline.core.journey_controller import JourneyController, JourneyStatus
from export_pipeline.core.models import (
    CatalogTableDescriptor,
    ExportHandle,
    ExportStatus,
    PollOutcome,
    PollResult,
    SavedQuery,
    WorkflowResult,
    WorkflowState,
)
from export_pipeline.core.retry import RetryPolicy, call_with_retry
from export_pipeline.core.template import render_template

__all__ = [
    'ExportPipelineError',
    'ConfigurationError',
    'RequestRejectedError',
    'ExportInProgressError',
    'ExportFailedError',
    'UnexpectedExportStatusError',
    'RetryBudgetExhaustedError',
    'QueryExecutionError',
    'PartialPublishError',
    'WorkflowCancelledError',
    'StepFailedError',
    'JourneyController',
    'JourneyStatus',
    'CatalogTableDescriptor',
    'ExportHandle',
    'ExportStatus',
    'PollOutcome',
    'PollResult',
    'SavedQuery',
    'WorkflowResult',
    'WorkflowState',
    'RetryPolicy',
    'call_with_retry',
    'render_template',
]
