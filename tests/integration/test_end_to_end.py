"""
Teste de integração end-to-end do workflow.

Monta o workflow completo pelo WorkflowFactory, a partir de variáveis de
ambiente, sobre clientes DynamoDB e Athena em memória (tests/fakes.py).
"""
import os
from unittest.mock import patch

import pytest

from export_pipeline.config.settings import AppConfig
from export_pipeline.core.exceptions import RetryBudgetExhaustedError, QueryExecutionError
from export_pipeline.core.models import WorkflowState
from export_pipeline.core.workflow_factory import WorkflowFactory
from tests.fakes import FakeAthenaClient, FakeDynamoDBClient

TABLE_ARN = "arn:aws:dynamodb:sa-east-1:123456789012:table/orders"

ENV = {
    'DYNAMO_DB_TABLE_ARN': TABLE_ARN,
    'S3_BUCKET_NAME': 'analytics-bucket',
    'S3_EXPORT_PREFIX': 'exports',
    'TABLE_LOCATION_PREFIX': 'exports',
    'GLUE_DATABASE_NAME': 'analytics',
    'ATHENA_WORKGROUP_NAME': 'primary',
    'ATHENA_TABLE_NAME': 'orders_exported',
    'ATHENA_READ_QUERY_NAME': 'read-table',
}


@pytest.fixture
def config():
    with patch.dict(os.environ, ENV, clear=True):
        yield AppConfig()


@pytest.fixture
def athena():
    return FakeAthenaClient(running_polls=1)


@pytest.fixture
def sleeps():
    return []


def build_orchestrator(config, dynamodb, athena, sleeps):
    factory = WorkflowFactory(
        config,
        dynamodb_client=dynamodb,
        athena_client=athena,
        sleep=sleeps.append,
    )
    return factory.create_orchestrator()


def test_end_to_end_flow(config, athena, sleeps):
    """
    Testa o fluxo completo: exportação concluída na terceira consulta.

    Valida:
    1. Uma única exportação disparada
    2. Esperas de 30s e 60s entre as consultas
    3. Tabela recriada no LOCATION da exportação
    4. Consulta salva criada com os placeholders substituídos
    """
    dynamodb = FakeDynamoDBClient(statuses=['IN_PROGRESS', 'IN_PROGRESS', 'COMPLETED'])

    result = build_orchestrator(config, dynamodb, athena, sleeps).run(execution_id='exec-1')

    assert result.state is WorkflowState.DONE
    assert len(dynamodb.export_calls) == 1
    assert dynamodb.export_calls[0]['S3Bucket'] == 'analytics-bucket'
    assert dynamodb.export_calls[0]['S3Prefix'] == 'exports'
    assert result.poll_attempts == 3
    assert 30 in sleeps and 60 in sleeps

    export_id = result.export_handle.export_id
    assert result.export_handle.export_arn.startswith(f"{TABLE_ARN}/export/")
    expected_location = f"s3://analytics-bucket/exports/{export_id}/data/"
    assert result.table.data_location == expected_location
    assert athena.tables[('analytics', 'orders_exported')]['location'] == expected_location

    assert athena.statements[0] == "DROP TABLE IF EXISTS `analytics`.`orders_exported`;"
    assert athena.statements[1].startswith("CREATE EXTERNAL TABLE `orders_exported`")

    saved = athena.queries_named('read-table')
    assert len(saved) == 1
    assert saved[0]['WorkGroup'] == 'primary'
    assert saved[0]['Database'] == 'analytics'
    assert '"analytics"."orders_exported"' in saved[0]['QueryString']
    assert export_id in saved[0]['QueryString']
    assert 'db_name' not in saved[0]['QueryString']
    assert [q.action for q in result.saved_queries] == ['created']


def test_second_run_replaces_table_and_updates_query(config, athena, sleeps):
    """Testa que uma nova execução aponta a tabela para a nova exportação e atualiza a consulta."""
    first = build_orchestrator(config, FakeDynamoDBClient(), athena, sleeps).run()
    query_id = first.saved_queries[0].query_id

    second = build_orchestrator(config, FakeDynamoDBClient(), athena, sleeps).run()

    assert second.state is WorkflowState.DONE
    assert second.export_handle.export_id != first.export_handle.export_id
    assert athena.tables[('analytics', 'orders_exported')]['location'] == second.table.data_location
    assert len(athena.tables) == 1

    saved = athena.queries_named('read-table')
    assert len(saved) == 1
    assert second.export_handle.export_id in saved[0]['QueryString']
    assert second.saved_queries[0].action == 'updated'
    assert second.saved_queries[0].query_id == query_id
    assert athena.create_named_query_calls == ['read-table']


def test_export_never_completes(config, athena, sleeps):
    """Testa a exportação que não conclui dentro das 10 tentativas."""
    dynamodb = FakeDynamoDBClient(statuses=['IN_PROGRESS'])

    result = build_orchestrator(config, dynamodb, athena, sleeps).run()

    assert result.state is WorkflowState.FAILED
    assert result.failed_step == 'Polling'
    assert isinstance(result.error, RetryBudgetExhaustedError)
    assert len(dynamodb.describe_calls) == 10
    assert len(dynamodb.export_calls) == 1
    assert sum(sleeps) == 15330
    assert athena.statements == []
    assert athena.named_queries == {}


def test_export_failed_reports_provider_reason(config, athena, sleeps):
    dynamodb = FakeDynamoDBClient(statuses=['IN_PROGRESS', 'FAILED'])

    result = build_orchestrator(config, dynamodb, athena, sleeps).run()

    assert result.state is WorkflowState.FAILED
    assert result.error.failure_code == 'S3NoSuchBucket'
    assert result.to_dict()['error_type'] == 'ExportFailedError'
    assert athena.statements == []


def test_failed_ddl_stops_before_queries(config, sleeps):
    athena = FakeAthenaClient(fail_ddl_matching='CREATE EXTERNAL TABLE')

    result = build_orchestrator(config, FakeDynamoDBClient(), athena, sleeps).run()

    assert result.state is WorkflowState.FAILED
    assert result.failed_step == 'TableRefresh'
    assert isinstance(result.error, QueryExecutionError)
    assert athena.named_queries == {}


def test_rejected_export_request(config, athena, sleeps):
    dynamodb = FakeDynamoDBClient(reject_with='PointInTimeRecoveryUnavailableException')

    result = build_orchestrator(config, dynamodb, athena, sleeps).run()

    assert result.state is WorkflowState.FAILED
    assert result.failed_step == 'Exporting'
    assert result.error.error_code == 'PointInTimeRecoveryUnavailableException'
    assert len(dynamodb.export_calls) == 1
    assert dynamodb.describe_calls == []
