"""
Handler para as operações de exportação point-in-time do DynamoDB.

Mantido em handlers/ para separação de responsabilidades: as etapas do
workflow conversam com a AWS apenas por meio destes handlers.
"""
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from export_pipeline.core.exceptions import RequestRejectedError
from export_pipeline.core.models import ExportHandle


logger = logging.getLogger(__name__)


def _get_dynamodb_client(region_name: str = None, client_config: Optional[Config] = None):
    """
    Obtém cliente DynamoDB com região e limites de tempo especificados.

    Args:
        region_name: Nome da região AWS (opcional)
        client_config: Configuração botocore (timeouts, retries)

    Returns:
        Cliente boto3 DynamoDB
    """
    return boto3.client('dynamodb', region_name=region_name or 'sa-east-1', config=client_config)


class DynamoDBExportHandler:
    """
    Classe especialista para as chamadas de exportação do DynamoDB.

    - start_export: ExportTableToPointInTime (não idempotente, sem retry)
    - describe_export: DescribeExport (leitura, sem efeito colateral)
    """

    def __init__(self, region_name: str = 'sa-east-1', dynamodb_client=None, client_config: Optional[Config] = None):
        """
        Args:
            region_name: Região AWS
            dynamodb_client: Cliente DynamoDB opcional (para testes)
            client_config: Configuração botocore opcional
        """
        self.region_name = region_name
        self.client = dynamodb_client or _get_dynamodb_client(region_name, client_config)

    def start_export(self, table_arn: str, bucket_name: str, s3_prefix: str) -> ExportHandle:
        """
        Dispara uma exportação completa da tabela para o S3.

        Cada chamada cria uma exportação nova e independente, com custo, que
        não pode ser cancelada.

        Raises:
            RequestRejectedError: Se o DynamoDB rejeitar a requisição
        """
        try:
            response = self.client.export_table_to_point_in_time(
                TableArn=table_arn,
                S3Bucket=bucket_name,
                S3Prefix=s3_prefix,
                ExportFormat='DYNAMODB_JSON',
            )
        except ClientError as e:
            logger.error(f"Erro ao iniciar exportação da tabela {table_arn}: {e}")
            raise RequestRejectedError('ExportTableToPointInTime', e) from e

        export_arn = response.get('ExportDescription', {}).get('ExportArn')
        if not export_arn:
            raise RequestRejectedError(
                'ExportTableToPointInTime',
                ValueError(f"Resposta sem ExportArn: {response!r}")
            )

        handle = ExportHandle.from_arn(export_arn)
        logger.info(f"Exportação iniciada: {handle.export_arn} (exportId: {handle.export_id})")
        return handle

    def describe_export(self, export_arn: str) -> Dict[str, Any]:
        """
        Retorna o ExportDescription de uma exportação.

        Raises:
            RequestRejectedError: Se o DynamoDB rejeitar a requisição
        """
        try:
            response = self.client.describe_export(ExportArn=export_arn)
        except ClientError as e:
            logger.error(f"Erro ao consultar exportação {export_arn}: {e}")
            raise RequestRejectedError('DescribeExport', e) from e

        description = response.get('ExportDescription') or {}
        logger.debug(f"DescribeExport {export_arn}: {description.get('ExportStatus')}")
        return description
