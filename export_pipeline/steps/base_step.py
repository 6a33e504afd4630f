"""
Base Step - Template Method Pattern para as etapas do workflow.

Define a interface comum e o template de execução de cada etapa, garantindo
logging e tratamento de erros consistentes entre elas.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any


logger = logging.getLogger(__name__)


class BaseWorkflowStep(ABC):
    """
    Classe base abstrata para as etapas do workflow.

    Implementa Template Method Pattern:
    - execute() define o esqueleto (log, execução, log/propagação de erro)
    - _run() é o hook implementado por cada etapa

    Erros nunca são tratados aqui: o orquestrador decide a transição.
    """

    def execute(self, **kwargs) -> Any:
        """
        Template Method: executa a etapa.

        Subclasses não devem sobrescrever este método, apenas _run.
        """
        step_name = self.get_step_name()
        logger.info(f"{step_name}: iniciando")
        try:
            result = self._run(**kwargs)
        except Exception as e:
            logger.error(f"{step_name}: erro na execução: {e}")
            raise
        logger.info(f"{step_name}: concluída")
        return result

    @abstractmethod
    def _run(self, **kwargs) -> Any:
        """Hook method: lógica específica da etapa."""
        pass

    def get_step_name(self) -> str:
        """Retorna o nome da etapa (Nome da Classe)."""
        return self.__class__.__name__
