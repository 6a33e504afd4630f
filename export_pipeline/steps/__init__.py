"""Etapas do workflow de exportação e publicação."""

from export_pipeline.steps.base_step import BaseWorkflowStep
from export_pipeline.steps.export_trigger import ExportTrigger
from export_pipeline.steps.export_poller import ExportPoller
from export_pipeline.steps.catalog_table_publisher import CatalogTablePublisher
from export_pipeline.steps.saved_query_registrar import SavedQueryRegistrar

__all__ = [
    'BaseWorkflowStep',
    'ExportTrigger',
    'ExportPoller',
    'CatalogTablePublisher',
    'SavedQueryRegistrar',
]
