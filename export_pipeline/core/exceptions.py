"""
Exceções do workflow de exportação e publicação.

Hierarquia:
- ExportPipelineError: base de todos os erros do pacote
  - ConfigurationError: configuração ausente ou inválida
  - RequestRejectedError: requisição rejeitada pelo provedor (não retentável)
  - ExportInProgressError: exportação ainda em andamento (único erro retentável)
  - ExportFailedError / UnexpectedExportStatusError: status terminal inesperado
  - RetryBudgetExhaustedError: tentativas esgotadas com exportação em andamento
  - QueryExecutionError: DDL terminou em FAILED/CANCELLED ou estourou timeout
  - PartialPublishError: parte das consultas salvas publicada, parte não
  - WorkflowCancelledError: execução cancelada durante a espera
  - StepFailedError: falha terminal de uma etapa (guarda etapa e causa original)
"""
from typing import List, Optional


class ExportPipelineError(Exception):
    """Erro base do pacote."""


class ConfigurationError(ExportPipelineError):
    """Configuração obrigatória ausente ou inválida."""


class RequestRejectedError(ExportPipelineError):
    """
    O provedor rejeitou a requisição (validação, permissão, quota, estado).

    Não é retentável: repetir a mesma requisição não muda o resultado.
    """

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        self.error_code = _error_code(cause)
        super().__init__(f"{operation} rejeitada ({self.error_code}): {cause}")


class ExportInProgressError(ExportPipelineError):
    """Exportação ainda em andamento. Sinal distinto usado para retry."""

    def __init__(self, export_arn: str):
        self.export_arn = export_arn
        super().__init__(f"Exportação em andamento: {export_arn}")


class ExportFailedError(ExportPipelineError):
    """O provedor reportou FAILED para a exportação."""

    def __init__(self, export_arn: str, failure_code: Optional[str] = None, failure_message: Optional[str] = None):
        self.export_arn = export_arn
        self.failure_code = failure_code
        self.failure_message = failure_message
        super().__init__(
            f"Exportação {export_arn} falhou: {failure_code or 'sem código'} - {failure_message or 'sem mensagem'}"
        )


class UnexpectedExportStatusError(ExportPipelineError):
    """Status de exportação não reconhecido. Repassado literalmente."""

    def __init__(self, export_arn: str, raw_status):
        self.export_arn = export_arn
        self.raw_status = raw_status
        super().__init__(f"Status de exportação não esperado para {export_arn}: {raw_status!r}")


class RetryBudgetExhaustedError(ExportPipelineError):
    """Tentativas de polling esgotadas com a exportação ainda em andamento."""

    def __init__(self, export_arn: str, attempts: int, total_wait_seconds: float):
        self.export_arn = export_arn
        self.attempts = attempts
        self.total_wait_seconds = total_wait_seconds
        super().__init__(
            f"Exportação {export_arn} ainda em andamento após {attempts} tentativas "
            f"({total_wait_seconds:.0f}s de espera)"
        )


class QueryExecutionError(ExportPipelineError):
    """Execução de consulta no Athena terminou sem sucesso."""

    def __init__(self, query_execution_id: Optional[str], state: str, reason: Optional[str] = None):
        self.query_execution_id = query_execution_id
        self.state = state
        self.reason = reason
        super().__init__(f"Consulta {query_execution_id} terminou em {state}: {reason or 'sem motivo informado'}")


class PartialPublishError(ExportPipelineError):
    """Nem todas as consultas salvas foram publicadas. Não há rollback."""

    def __init__(self, failed_query: str, published: List[str], cause: Exception):
        self.failed_query = failed_query
        self.published = list(published)
        self.cause = cause
        super().__init__(
            f"Falha ao publicar consulta '{failed_query}' "
            f"(já publicadas: {self.published}): {cause}"
        )


class WorkflowCancelledError(ExportPipelineError):
    """Execução cancelada externamente."""


class StepFailedError(ExportPipelineError):
    """Falha terminal de uma etapa do workflow."""

    def __init__(self, step: str, cause: Exception):
        self.step = step
        self.cause = cause
        super().__init__(f"Etapa '{step}' falhou: {cause}")


def _error_code(error: Exception) -> str:
    response = getattr(error, 'response', None) or {}
    return response.get('Error', {}).get('Code', type(error).__name__)
