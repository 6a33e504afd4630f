"""
Entry points AWS Lambda.

Cada etapa do workflow pode ser invocada separadamente por uma Step Function
(ver state_machine.py). O payload trocado entre as etapas é
{"exportArn": ..., "exportId": ...}. check_export_state_handler lança
ExportInProgressError, único erro em que a Step Function aplica retry.

run_workflow_handler executa o workflow completo em processo e deve rodar
em um host cujo timeout comporte a espera do polling.
"""
import logging
from typing import Any, Dict

from export_pipeline.config.settings import AppConfig
from export_pipeline.core.exceptions import StepFailedError
from export_pipeline.core.models import ExportHandle
from export_pipeline.core.workflow_factory import WorkflowFactory


logger = logging.getLogger(__name__)


def _load_config(*required: str) -> AppConfig:
    config = AppConfig().require(*required)
    logging.getLogger().setLevel(config.log_level)
    return config


def start_export_handler(event: Dict[str, Any], context: Any) -> Dict[str, str]:
    """Dispara a exportação e devolve {exportArn, exportId}."""
    config = _load_config('dynamodb_table_arn', 's3_bucket_name')
    handle = WorkflowFactory(config).create_export_trigger().execute()
    return handle.to_event()


def check_export_state_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Verifica o status da exportação e repassa o evento inalterado se concluída.

    Raises:
        ExportInProgressError: Exportação em andamento (a Step Function faz o retry)
    """
    config = _load_config()
    handle = ExportHandle.from_event(event)
    WorkflowFactory(config).create_export_poller().check(handle)
    return event


def create_athena_table_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Remove e recria a tabela do catálogo para a exportação do evento."""
    config = _load_config('s3_bucket_name', 'glue_database_name', 'athena_workgroup_name')
    handle = ExportHandle.from_event(event)
    table = WorkflowFactory(config).create_table_publisher().execute(handle=handle)
    return {
        **handle.to_event(),
        'table': {
            'database': table.database_name,
            'name': table.table_name,
            'location': table.data_location,
        },
    }


def create_athena_query_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Cria ou atualiza as consultas salvas."""
    config = _load_config('glue_database_name', 'athena_workgroup_name')
    handle = ExportHandle.from_event(event)
    saved_queries = WorkflowFactory(config).create_query_registrar().execute(handle=handle)
    return {
        **handle.to_event(),
        'savedQueries': [query.to_dict() for query in saved_queries],
    }


def run_workflow_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Executa o workflow completo.

    Raises:
        StepFailedError: Se a execução terminar em Failed (causa original encadeada)
    """
    config = _load_config()
    orchestrator = WorkflowFactory(config).create_orchestrator()
    result = orchestrator.run(
        execution_id=getattr(context, 'aws_request_id', None),
        metadata={'trigger': (event or {}).get('source', 'manual')},
    )
    if not result.succeeded:
        raise StepFailedError(result.failed_step, result.error) from result.error
    return result.to_dict()
