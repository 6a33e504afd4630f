"""
Política de retry com backoff exponencial.

Usada pelo orquestrador em volta do polling da exportação e, em forma
reduzida, pelo handler do Athena para falhas transitórias.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Type

from botocore.exceptions import ClientError


logger = logging.getLogger(__name__)

# Códigos de erro da AWS considerados transitórios
TRANSIENT_ERROR_CODES = frozenset([
    'ThrottlingException',
    'TooManyRequestsException',
    'InternalServerException',
    'InternalServerError',
    'ServiceUnavailable',
    'RequestLimitExceeded',
    'ProvisionedThroughputExceededException',
])


@dataclass(frozen=True)
class RetryPolicy:
    """
    Política de retry limitada.

    Args:
        interval_seconds: Espera antes da segunda tentativa
        backoff_rate: Multiplicador aplicado a cada tentativa (>= 1)
        max_attempts: Número máximo de chamadas (inclui a primeira)
        max_delay_seconds: Teto opcional para cada espera
    """
    interval_seconds: float = 30
    backoff_rate: float = 2.0
    max_attempts: int = 10
    max_delay_seconds: Optional[float] = None

    def __post_init__(self):
        if self.interval_seconds < 0:
            raise ValueError(f"interval_seconds deve ser >= 0: {self.interval_seconds}")
        if self.backoff_rate < 1:
            raise ValueError(f"backoff_rate deve ser >= 1: {self.backoff_rate}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts deve ser >= 1: {self.max_attempts}")
        if self.max_delay_seconds is not None and self.max_delay_seconds < 0:
            raise ValueError(f"max_delay_seconds deve ser >= 0: {self.max_delay_seconds}")

    def delay_after(self, attempt: int) -> float:
        """Espera após a tentativa `attempt` (1-based) antes da próxima."""
        if attempt < 1:
            raise ValueError(f"attempt deve ser >= 1: {attempt}")
        delay = self.interval_seconds * (self.backoff_rate ** (attempt - 1))
        if self.max_delay_seconds is not None:
            delay = min(delay, self.max_delay_seconds)
        return delay

    def schedule(self) -> List[float]:
        """Esperas entre tentativas. Não há espera após a última."""
        return [self.delay_after(attempt) for attempt in range(1, self.max_attempts)]

    def max_total_wait(self) -> float:
        """Limite superior de tempo de espera acumulado."""
        return sum(self.schedule())


def is_transient_error(error: Exception) -> bool:
    """Indica se um ClientError da AWS é transitório."""
    if not isinstance(error, ClientError):
        return False
    code = error.response.get('Error', {}).get('Code', '')
    return code in TRANSIENT_ERROR_CODES


def call_with_retry(
    func: Callable,
    policy: RetryPolicy,
    retry_on: Callable[[Exception], bool] = is_transient_error,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "operação",
    non_retryable: Tuple[Type[BaseException], ...] = ()
):
    """
    Executa `func` repetindo apenas quando `retry_on(erro)` for verdadeiro.

    Qualquer outro erro é propagado imediatamente. Esgotadas as tentativas,
    o último erro é propagado.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return func()
        except non_retryable:
            raise
        except Exception as e:
            if not retry_on(e) or attempt == policy.max_attempts:
                raise
            delay = policy.delay_after(attempt)
            logger.warning(
                f"Erro transitório em {description} (tentativa {attempt}/{policy.max_attempts}): "
                f"{e}. Retry após {delay}s"
            )
            sleep(delay)
