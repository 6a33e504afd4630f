"""
Handler para operações no Amazon Athena.

Abstrai a execução de DDL (com espera pela conclusão) e o CRUD de consultas
salvas (named queries) em um workgroup.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from export_pipeline.core.exceptions import QueryExecutionError, RequestRejectedError
from export_pipeline.core.retry import RetryPolicy, call_with_retry, is_transient_error


logger = logging.getLogger(__name__)

TERMINAL_QUERY_STATES = ('SUCCEEDED', 'FAILED', 'CANCELLED')


def _get_athena_client(region_name: str = None, client_config: Optional[Config] = None):
    """
    Obtém cliente Athena com região e limites de tempo especificados.

    Args:
        region_name: Nome da região AWS (opcional)
        client_config: Configuração botocore (timeouts, retries)

    Returns:
        Cliente boto3 Athena
    """
    return boto3.client('athena', region_name=region_name or 'sa-east-1', config=client_config)


class AthenaHandler:
    """
    Classe especialista para lidar com o Athena.

    Características:
    - DDL síncrono: start_query_execution + polling até estado terminal
    - Timeout: cada espera de DDL tem limite próprio
    - Retry: falhas transitórias (throttling, erro interno) com backoff exponencial
    - Erros não transitórios viram RequestRejectedError
    """

    def __init__(
        self,
        region_name: str = 'sa-east-1',
        athena_client=None,
        client_config: Optional[Config] = None,
        retry_policy: Optional[RetryPolicy] = None,
        poll_interval_seconds: float = 2,
        timeout_seconds: float = 300,
        output_location: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            region_name: Região AWS
            athena_client: Cliente Athena opcional (para testes)
            client_config: Configuração botocore opcional
            retry_policy: Política para falhas transitórias (padrão: 3 tentativas, 2s, fator 2)
            poll_interval_seconds: Intervalo entre consultas de estado da execução
            timeout_seconds: Tempo máximo de espera por execução
            output_location: Local de resultados (se o workgroup não definir um)
            sleep: Função de espera (injetável para testes)
            clock: Relógio monotônico (injetável para testes)
        """
        self.region_name = region_name
        self.client = athena_client or _get_athena_client(region_name, client_config)
        self.retry_policy = retry_policy or RetryPolicy(interval_seconds=2, backoff_rate=2.0, max_attempts=3)
        self.poll_interval_seconds = poll_interval_seconds
        self.timeout_seconds = timeout_seconds
        self.output_location = output_location
        self.sleep = sleep
        self.clock = clock

    def _call(self, operation: str, func: Callable):
        """Executa uma chamada com retry de falhas transitórias e tradução de erros."""
        try:
            return call_with_retry(func, self.retry_policy, sleep=self.sleep, description=operation)
        except ClientError as e:
            if is_transient_error(e):
                logger.error(f"{operation} falhou após {self.retry_policy.max_attempts} tentativas: {e}")
            else:
                logger.error(f"{operation} rejeitada: {e}")
            raise RequestRejectedError(operation, e) from e

    def execute_query(self, query_string: str, database: str, workgroup: str) -> Dict[str, Any]:
        """
        Executa uma consulta (DDL) e aguarda o estado terminal.

        Returns:
            QueryExecution final (estado SUCCEEDED)

        Raises:
            RequestRejectedError: Se o Athena rejeitar a requisição
            QueryExecutionError: Se a execução terminar em FAILED/CANCELLED ou estourar o timeout
        """
        kwargs = {
            'QueryString': query_string,
            'WorkGroup': workgroup,
            'QueryExecutionContext': {'Database': database},
        }
        if self.output_location:
            kwargs['ResultConfiguration'] = {'OutputLocation': self.output_location}

        response = self._call('StartQueryExecution', lambda: self.client.start_query_execution(**kwargs))
        query_execution_id = response['QueryExecutionId']
        logger.info(f"Consulta {query_execution_id} iniciada no workgroup {workgroup}")
        return self.wait_for_query(query_execution_id)

    def wait_for_query(self, query_execution_id: str) -> Dict[str, Any]:
        """Aguarda a execução atingir um estado terminal."""
        deadline = self.clock() + self.timeout_seconds

        while True:
            response = self._call(
                'GetQueryExecution',
                lambda: self.client.get_query_execution(QueryExecutionId=query_execution_id)
            )
            execution = response.get('QueryExecution', {})
            status = execution.get('Status', {})
            state = status.get('State')

            if state == 'SUCCEEDED':
                logger.info(f"Consulta {query_execution_id} concluída")
                return execution
            if state in TERMINAL_QUERY_STATES:
                reason = status.get('StateChangeReason') or status.get('AthenaError', {}).get('ErrorMessage')
                raise QueryExecutionError(query_execution_id, state, reason)

            if self.clock() >= deadline:
                self.stop_query(query_execution_id)
                raise QueryExecutionError(
                    query_execution_id,
                    'TIMEOUT',
                    f"sem estado terminal após {self.timeout_seconds}s (último estado: {state})"
                )
            self.sleep(self.poll_interval_seconds)

    def stop_query(self, query_execution_id: str):
        """
        Cancela uma execução que estourou o timeout.

        Falha ao cancelar é apenas registrada: o erro de timeout é o que a
        etapa deve propagar.
        """
        logger.warning(f"Cancelando consulta {query_execution_id} após {self.timeout_seconds}s")
        try:
            self._call(
                'StopQueryExecution',
                lambda: self.client.stop_query_execution(QueryExecutionId=query_execution_id)
            )
        except RequestRejectedError as e:
            logger.error(f"Não foi possível cancelar a consulta {query_execution_id}: {e}")

    def list_named_query_ids(self, workgroup: str) -> List[str]:
        """Lista os ids de todas as consultas salvas do workgroup (paginado)."""
        def _list():
            paginator = self.client.get_paginator('list_named_queries')
            ids = []
            for page in paginator.paginate(WorkGroup=workgroup):
                ids.extend(page.get('NamedQueryIds', []))
            return ids

        ids = self._call('ListNamedQueries', _list)
        logger.debug(f"{len(ids)} consultas salvas no workgroup {workgroup}")
        return ids

    def get_named_query(self, named_query_id: str) -> Dict[str, Any]:
        """Retorna a consulta salva (Name, QueryString, Database, WorkGroup...)."""
        response = self._call(
            'GetNamedQuery',
            lambda: self.client.get_named_query(NamedQueryId=named_query_id)
        )
        return response.get('NamedQuery', {})

    def create_named_query(
        self,
        name: str,
        query_string: str,
        database: str,
        workgroup: str,
        description: str = ''
    ) -> str:
        """Cria uma consulta salva e retorna seu id."""
        response = self._call(
            'CreateNamedQuery',
            lambda: self.client.create_named_query(
                Name=name,
                Database=database,
                Description=description,
                QueryString=query_string,
                WorkGroup=workgroup,
            )
        )
        return response['NamedQueryId']

    def update_named_query(self, named_query_id: str, name: str, query_string: str, description: str = ''):
        """Atualiza texto da consulta salva mantendo sua identidade."""
        self._call(
            'UpdateNamedQuery',
            lambda: self.client.update_named_query(
                NamedQueryId=named_query_id,
                Name=name,
                Description=description,
                QueryString=query_string,
            )
        )
