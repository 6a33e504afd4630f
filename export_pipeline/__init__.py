"""
Workflow de exportação de tabelas DynamoDB para o Athena.

DynamoDB (export point-in-time) -> S3 -> tabela do Glue Data Catalog -> consultas salvas do Athena.
"""

from export_pipeline.config.settings import AppConfig
from export_pipeline.core.journey_controller import JourneyController, JourneyStatus
from export_pipeline.core.models import WorkflowResult, WorkflowState
from export_pipeline.core.orchestrator import ExportWorkflowOrchestrator
from export_pipeline.core.workflow_factory import WorkflowFactory

__version__ = '0.1.0'

__all__ = [
    'AppConfig',
    'JourneyController',
    'JourneyStatus',
    'WorkflowResult',
    'WorkflowState',
    'ExportWorkflowOrchestrator',
    'WorkflowFactory',
]
