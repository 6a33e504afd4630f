"""
Entry Point do job de exportação e publicação.

Executa o workflow completo em processo:
- Dispara a exportação point-in-time da tabela DynamoDB
- Aguarda a conclusão com retry limitado e backoff exponencial
- Recria a tabela do catálogo apontando para a nova exportação
- Cria ou atualiza as consultas salvas do Athena

Invocado por um agendador externo ou manualmente; toda a configuração vem
de variáveis de ambiente (ver config/settings.py).

Design Patterns aplicados:
- Factory: WorkflowFactory cria handlers e etapas
- Orchestrator: ExportWorkflowOrchestrator sequencia as etapas
- Dependency Injection: todas as dependências são injetadas
"""
import logging
import sys
from typing import Any, Dict

from export_pipeline.config.settings import AppConfig
from export_pipeline.core.workflow_factory import WorkflowFactory


logger = logging.getLogger(__name__)


def configure_logging(level: str = 'INFO'):
    """Configura o logging da aplicação."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def main() -> Dict[str, Any]:
    """
    Função principal: executa uma vez o workflow.

    Returns:
        Resumo da execução (estado terminal, exportação, tabela, consultas e erro)
    """
    config = AppConfig()
    configure_logging(config.log_level)
    logger.info(f"Configurações carregadas: {config!r}")

    orchestrator = WorkflowFactory(config).create_orchestrator()
    result = orchestrator.run(metadata={'trigger': 'job'})

    summary = result.to_dict()
    logger.info("=" * 60)
    logger.info("Resumo da execução:")
    logger.info(f"  Execução: {summary['execution_id']}")
    logger.info(f"  Estado final: {summary['state']}")
    logger.info(f"  Exportação: {summary['export']}")
    logger.info(f"  Consultas de status: {summary['poll_attempts']}")
    logger.info(f"  Consultas salvas: {[q['name'] for q in summary['saved_queries']]}")
    if summary['failed_step']:
        logger.info(f"  Etapa com falha: {summary['failed_step']} ({summary['error_type']}: {summary['error']})")
    logger.info("=" * 60)
    return summary


def run() -> int:
    """Executa o job e devolve o código de saída (0 = Done, 1 = Failed)."""
    summary = main()
    return 0 if summary['state'] == 'Done' else 1


if __name__ == "__main__":
    sys.exit(run())
