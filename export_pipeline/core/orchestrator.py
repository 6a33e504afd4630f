"""
Orchestrator - sequencia as etapas do workflow de exportação e publicação.

Start → Exporting → Polling → TableRefresh → QueryPublish → Done
                 (qualquer falha)                          → Failed

Cada execução é independente: nenhum estado é mantido entre execuções além
da tabela do catálogo e das consultas salvas, sobrescritas a cada execução.
"""
import logging
import threading
import time
from typing import Callable, Optional

from export_pipeline.core.exceptions import RetryBudgetExhaustedError, WorkflowCancelledError
from export_pipeline.core.journey_controller import JourneyController, JourneyStatus
from export_pipeline.core.models import ExportHandle, WorkflowResult, WorkflowState
from export_pipeline.core.retry import RetryPolicy
from export_pipeline.steps.catalog_table_publisher import CatalogTablePublisher
from export_pipeline.steps.export_poller import ExportPoller, failure_from_result
from export_pipeline.steps.export_trigger import ExportTrigger
from export_pipeline.steps.saved_query_registrar import SavedQueryRegistrar


logger = logging.getLogger(__name__)


class ExportWorkflowOrchestrator:
    """
    Orquestrador do workflow de exportação.

    - A exportação é disparada exatamente uma vez; não há retry nessa etapa
    - Apenas o sinal "em andamento" do polling é retentado, sob a política de retry
    - A tabela é removida e recriada antes de qualquer consulta salva ser publicada
    - Estados Done e Failed são terminais; a falha guarda a etapa e o erro original
    """

    def __init__(
        self,
        export_trigger: ExportTrigger,
        export_poller: ExportPoller,
        table_publisher: CatalogTablePublisher,
        query_registrar: SavedQueryRegistrar,
        poll_policy: Optional[RetryPolicy] = None,
        journey_controller: Optional[JourneyController] = None,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Args:
            export_trigger: Etapa que dispara a exportação
            export_poller: Etapa que consulta o status
            table_publisher: Etapa que recria a tabela do catálogo
            query_registrar: Etapa que publica as consultas salvas
            poll_policy: Política de retry do polling (padrão: 30s, fator 2, 10 tentativas)
            journey_controller: Registro das execuções (padrão: apenas memória)
            sleep: Função de espera (injetável para testes)
            cancel_event: Evento de cancelamento opcional, verificado entre etapas e durante esperas
        """
        self.export_trigger = export_trigger
        self.export_poller = export_poller
        self.table_publisher = table_publisher
        self.query_registrar = query_registrar
        self.poll_policy = poll_policy or RetryPolicy()
        self.journey_controller = journey_controller or JourneyController()
        self.sleep = sleep
        self.cancel_event = cancel_event

    def run(self, execution_id: Optional[str] = None, metadata: Optional[dict] = None) -> WorkflowResult:
        """
        Executa o workflow completo.

        Returns:
            WorkflowResult com estado terminal (DONE ou FAILED)
        """
        journey_id = self.journey_controller.start_journey(journey_id=execution_id, metadata=metadata)
        result = WorkflowResult(execution_id=journey_id)
        self.journey_controller.update_status(journey_id, JourneyStatus.IN_PROGRESS)
        self._record(result, WorkflowState.START)
        logger.info(f"Execução {journey_id} iniciada")

        try:
            self._check_cancelled()
            self._transition(result, WorkflowState.EXPORTING)
            handle = self.export_trigger.execute()
            result.export_handle = handle

            self._transition(result, WorkflowState.POLLING, {'export_id': handle.export_id})
            self._poll_until_complete(result, handle)

            self._check_cancelled()
            self._transition(result, WorkflowState.TABLE_REFRESH)
            result.table = self.table_publisher.execute(handle=handle)

            self._check_cancelled()
            self._transition(result, WorkflowState.QUERY_PUBLISH, {'location': result.table.data_location})
            result.saved_queries = self.query_registrar.execute(handle=handle)

            self._transition(result, WorkflowState.DONE, {'saved_queries': len(result.saved_queries)})
            self.journey_controller.update_status(journey_id, JourneyStatus.COMPLETED)

        except Exception as e:
            return self._fail(result, e)

        logger.info(
            f"Execução {journey_id} concluída: exportId={handle.export_id}, "
            f"tabela={result.table.qualified_name}, consultas={[q.name for q in result.saved_queries]}"
        )
        return result

    def _poll_until_complete(self, result: WorkflowResult, handle: ExportHandle):
        """
        Consulta o status até COMPLETED, respeitando a política de retry.

        Raises:
            RetryBudgetExhaustedError: Tentativas esgotadas com a exportação em andamento
            ExportFailedError / UnexpectedExportStatusError: Qualquer outro status
        """
        policy = self.poll_policy
        logger.info(
            f"Aguardando exportação {handle.export_id}: até {policy.max_attempts} consultas, "
            f"no máximo {policy.max_total_wait():.0f}s de espera"
        )
        for attempt in range(1, policy.max_attempts + 1):
            result.poll_attempts = attempt
            poll_result = self.export_poller.execute(handle=handle)

            if poll_result.is_completed:
                logger.info(f"Exportação {handle.export_id} concluída após {attempt} consulta(s)")
                return
            if not poll_result.is_in_progress:
                raise failure_from_result(poll_result)
            if attempt == policy.max_attempts:
                break

            delay = policy.delay_after(attempt)
            logger.info(
                f"Exportação {handle.export_id} em andamento "
                f"(tentativa {attempt}/{policy.max_attempts}). Nova consulta em {delay}s"
            )
            self._wait(delay)
            result.total_wait_seconds += delay

        raise RetryBudgetExhaustedError(handle.export_arn, result.poll_attempts, result.total_wait_seconds)

    def _wait(self, delay: float):
        if self.cancel_event is None:
            self.sleep(delay)
            return
        if self.cancel_event.wait(delay):
            raise WorkflowCancelledError("Execução cancelada durante a espera do polling")

    def _check_cancelled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise WorkflowCancelledError("Execução cancelada")

    def _transition(self, result: WorkflowResult, state: WorkflowState, data: Optional[dict] = None):
        logger.info(f"Execução {result.execution_id}: {result.state.value} -> {state.value}")
        result.state = state
        self._record(result, state, data)

    def _record(self, result: WorkflowResult, state: WorkflowState, data: Optional[dict] = None):
        result.transitions.append(state.value)
        self.journey_controller.add_step(result.execution_id, state.value, data)

    def _fail(self, result: WorkflowResult, error: Exception) -> WorkflowResult:
        """Leva a execução ao estado FAILED guardando a etapa e o erro original."""
        result.failed_step = result.state.value
        result.error = error
        logger.error(
            f"Execução {result.execution_id} falhou na etapa {result.failed_step}: {error}",
            exc_info=True
        )
        if result.export_handle is not None:
            # Exportação disparada não é desfeita; uma nova execução cria outra
            logger.warning(f"Exportação {result.export_handle.export_arn} já disparada permanece no S3")
        self._transition(result, WorkflowState.FAILED, {
            'failed_step': result.failed_step,
            'error_type': type(error).__name__,
        })
        self.journey_controller.update_status(result.execution_id, JourneyStatus.FAILED, str(error))
        return result
