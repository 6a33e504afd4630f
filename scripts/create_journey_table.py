#!/usr/bin/env python3
"""
Prepara a tabela DynamoDB onde o JourneyController grava o diário de execuções.

Nome e região vêm do mesmo AppConfig usado pelo workflow (JOURNEY_TABLE_NAME,
REGION/AWS_REGION); os argumentos de linha de comando apenas os sobrescrevem.

Uso:
    JOURNEY_TABLE_NAME=ddb_export_journeys python scripts/create_journey_table.py
    python scripts/create_journey_table.py --table-name outra_tabela --region us-east-1
"""
import argparse
import logging
import sys
from typing import Optional

import boto3
from botocore.exceptions import ClientError, WaiterError

from export_pipeline.config.settings import AppConfig
from export_pipeline.core.journey_controller import JOURNEY_KEY


logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = 'ddb_export_journeys'


def journey_table_exists(dynamodb_client, table_name: str) -> bool:
    """
    Indica se a tabela já existe.

    Raises:
        ClientError: Qualquer erro diferente de tabela inexistente
    """
    try:
        status = dynamodb_client.describe_table(TableName=table_name)['Table']['TableStatus']
    except ClientError as e:
        if e.response.get('Error', {}).get('Code') == 'ResourceNotFoundException':
            return False
        raise
    logger.info(f"Tabela de jornadas '{table_name}' já existe (status: {status})")
    return True


def ensure_journey_table(
    table_name: str,
    region_name: str,
    dynamodb_client=None,
    wait_delay_seconds: int = 5,
    wait_max_attempts: int = 24
) -> bool:
    """
    Cria a tabela do diário (chave journey_id, on-demand) se ainda não existir.

    Args:
        table_name: Nome da tabela
        region_name: Região AWS
        dynamodb_client: Cliente DynamoDB opcional (para testes)
        wait_delay_seconds: Intervalo do waiter table_exists
        wait_max_attempts: Tentativas do waiter table_exists

    Returns:
        True se a tabela está disponível ao final, False em caso de erro
    """
    client = dynamodb_client or boto3.client('dynamodb', region_name=region_name)

    try:
        if journey_table_exists(client, table_name):
            return True

        logger.info(f"Criando tabela de jornadas '{table_name}' em {region_name}")
        client.create_table(
            TableName=table_name,
            KeySchema=[{'AttributeName': JOURNEY_KEY, 'KeyType': 'HASH'}],
            AttributeDefinitions=[{'AttributeName': JOURNEY_KEY, 'AttributeType': 'S'}],
            BillingMode='PAY_PER_REQUEST',
            Tags=[{'Key': 'Purpose', 'Value': 'ExportWorkflowJourneys'}],
        )
        client.get_waiter('table_exists').wait(
            TableName=table_name,
            WaiterConfig={'Delay': wait_delay_seconds, 'MaxAttempts': wait_max_attempts},
        )
    except (ClientError, WaiterError) as e:
        logger.error(f"Não foi possível preparar a tabela de jornadas '{table_name}': {e}")
        return False

    logger.info(f"Tabela de jornadas '{table_name}' disponível. Defina JOURNEY_TABLE_NAME={table_name}")
    return True


def parse_args(argv=None, config: Optional[AppConfig] = None):
    config = config or AppConfig()
    parser = argparse.ArgumentParser(description='Prepara a tabela DynamoDB do diário de execuções')
    parser.add_argument(
        '--table-name',
        default=config.journey_table_name or DEFAULT_TABLE_NAME,
        help='Nome da tabela (padrão: JOURNEY_TABLE_NAME ou ddb_export_journeys)'
    )
    parser.add_argument(
        '--region',
        default=config.aws_region,
        help='Região AWS (padrão: REGION/AWS_REGION ou sa-east-1)'
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    config = AppConfig()
    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = parse_args(argv, config)
    return 0 if ensure_journey_table(args.table_name, args.region) else 1


if __name__ == "__main__":
    sys.exit(main())
