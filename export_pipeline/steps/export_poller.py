"""
Export Poller - consulta o status de uma exportação e o classifica.
"""
import logging

from export_pipeline.core.exceptions import (
    ExportFailedError,
    ExportInProgressError,
    UnexpectedExportStatusError,
)
from export_pipeline.core.models import ExportHandle, ExportStatus, PollOutcome, PollResult
from export_pipeline.handlers.dynamodb_export_handler import DynamoDBExportHandler
from export_pipeline.steps.base_step import BaseWorkflowStep


logger = logging.getLogger(__name__)


class ExportPoller(BaseWorkflowStep):
    """
    Classifica o status da exportação a cada consulta.

    - poll(): variante com tag (PollResult), usada pelo orquestrador
    - check(): variante que lança ExportInProgressError, usada pela Step Function

    O status nunca é guardado entre consultas.
    """

    def __init__(self, export_handler: DynamoDBExportHandler):
        self.export_handler = export_handler

    def _run(self, handle: ExportHandle = None, **kwargs) -> PollResult:
        return self.poll(handle)

    def poll(self, handle: ExportHandle) -> PollResult:
        """
        Consulta o provedor uma vez.

        Returns:
            PollResult COMPLETED, IN_PROGRESS ou FAILED
        """
        description = self.export_handler.describe_export(handle.export_arn)
        raw_status = description.get('ExportStatus')
        status = ExportStatus.from_provider(raw_status)
        logger.info(f"Status da exportação {handle.export_id}: {raw_status}")

        if status is ExportStatus.COMPLETED:
            return PollResult(PollOutcome.COMPLETED, handle, status, raw_status)
        if status is ExportStatus.IN_PROGRESS:
            return PollResult(PollOutcome.IN_PROGRESS, handle, status, raw_status)
        return PollResult(
            PollOutcome.FAILED,
            handle,
            status,
            raw_status,
            failure_code=description.get('FailureCode'),
            failure_message=description.get('FailureMessage'),
        )

    def check(self, handle: ExportHandle) -> ExportHandle:
        """
        Consulta o provedor e devolve o handle inalterado se concluída.

        Raises:
            ExportInProgressError: Exportação ainda em andamento (retentável)
            ExportFailedError: Provedor reportou FAILED
            UnexpectedExportStatusError: Qualquer outro status
        """
        result = self.poll(handle)
        if result.is_completed:
            return handle
        if result.is_in_progress:
            raise ExportInProgressError(handle.export_arn)
        raise failure_from_result(result)


def failure_from_result(result: PollResult) -> Exception:
    """Converte um PollResult FAILED na exceção correspondente."""
    if result.status is ExportStatus.FAILED:
        return ExportFailedError(result.handle.export_arn, result.failure_code, result.failure_message)
    return UnexpectedExportStatusError(result.handle.export_arn, result.raw_status)
