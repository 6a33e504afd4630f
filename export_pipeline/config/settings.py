"""
Configurações da aplicação.

Centraliza todas as configurações do workflow de exportação, permitindo fácil
customização via variáveis de ambiente (as mesmas usadas pelas Lambdas).
"""
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from botocore.config import Config

from export_pipeline.core.exceptions import ConfigurationError
from export_pipeline.core.retry import RetryPolicy


SQL_DIR = Path(__file__).resolve().parent.parent / 'sql'

DEFAULT_READ_QUERY_NAME = 'sfn-ddb-export-read-table'


def load_sql_template(file_name: str) -> str:
    """Lê um template SQL empacotado com a aplicação."""
    return (SQL_DIR / file_name).read_text(encoding='utf-8')


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Variável {name} deve ser inteira: {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Variável {name} deve ser numérica: {value!r}")


class AppConfig:
    """
    Classe de configuração da aplicação.

    Carrega configurações de variáveis de ambiente ou usa valores padrão.
    Valores obrigatórios são verificados em validate().
    """

    REQUIRED = (
        ('dynamodb_table_arn', 'DYNAMO_DB_TABLE_ARN'),
        ('s3_bucket_name', 'S3_BUCKET_NAME'),
        ('glue_database_name', 'GLUE_DATABASE_NAME'),
        ('athena_workgroup_name', 'ATHENA_WORKGROUP_NAME'),
    )

    def __init__(self):
        """Inicializa configurações a partir das variáveis de ambiente."""

        # AWS Configuration
        self.aws_region: str = os.environ.get('REGION') or os.environ.get('AWS_REGION') or 'sa-east-1'

        # Fonte da exportação
        self.dynamodb_table_arn: Optional[str] = os.environ.get('DYNAMO_DB_TABLE_ARN')

        # Destino no S3
        self.s3_bucket_name: Optional[str] = os.environ.get('S3_BUCKET_NAME')
        self.s3_export_prefix: str = os.environ.get('S3_EXPORT_PREFIX', 'ddb-exports')
        # O DynamoDB grava em <prefixo>/AWSDynamoDB/<exportId>/data/
        self.table_location_prefix: str = (
            os.environ.get('TABLE_LOCATION_PREFIX') or f"{self.s3_export_prefix}/AWSDynamoDB"
        )

        # Glue / Athena
        self.glue_database_name: Optional[str] = os.environ.get('GLUE_DATABASE_NAME')
        self.athena_workgroup_name: Optional[str] = os.environ.get('ATHENA_WORKGROUP_NAME')
        self.athena_table_name: str = os.environ.get('ATHENA_TABLE_NAME', 'ddb_exported_table')
        self.athena_output_location: Optional[str] = os.environ.get('ATHENA_OUTPUT_LOCATION') or None

        # Templates SQL (texto cru com placeholders)
        self.create_table_template: str = (
            os.environ.get('ATHENA_QUERY_STRING_CREATE_TABLE') or load_sql_template('create_table.sql')
        )
        self.read_table_template: str = (
            os.environ.get('ATHENA_QUERY_STRING_READ_TABLE') or load_sql_template('read_table.sql')
        )
        self.read_query_name: str = os.environ.get('ATHENA_READ_QUERY_NAME', DEFAULT_READ_QUERY_NAME)

        # Polling da exportação: 30s, fator 2, 10 tentativas
        self.export_poll_interval_seconds: float = _env_float('EXPORT_POLL_INTERVAL_SECONDS', 30)
        self.export_poll_backoff_rate: float = _env_float('EXPORT_POLL_BACKOFF_RATE', 2.0)
        self.export_poll_max_attempts: int = _env_int('EXPORT_POLL_MAX_ATTEMPTS', 10)

        # Retry de falhas transitórias do Athena (tentativas incluem a primeira chamada)
        self.ddl_max_attempts: int = _env_int('DDL_MAX_ATTEMPTS', 3)
        self.ddl_retry_delay: float = _env_float('DDL_RETRY_DELAY', 2)

        # Espera pela conclusão de cada DDL
        self.ddl_poll_interval_seconds: float = _env_float('DDL_POLL_INTERVAL_SECONDS', 2)
        self.ddl_timeout_seconds: float = _env_float('DDL_TIMEOUT_SECONDS', 300)

        # Limites por chamada AWS
        self.aws_connect_timeout: int = _env_int('AWS_CONNECT_TIMEOUT', 10)
        self.aws_read_timeout: int = _env_int('AWS_READ_TIMEOUT', 60)

        # Diário de execuções (opcional)
        self.journey_table_name: Optional[str] = os.environ.get('JOURNEY_TABLE_NAME') or None

        # Logging Configuration
        self.log_level: str = os.environ.get('LOG_LEVEL', 'INFO').upper()

    def require(self, *attributes: str) -> 'AppConfig':
        """
        Verifica apenas as configurações usadas por uma etapa.

        Raises:
            ConfigurationError: Se alguma variável obrigatória estiver ausente
        """
        env_names = dict(self.REQUIRED)
        missing = [env_names.get(attr, attr) for attr in attributes if not getattr(self, attr, None)]
        if missing:
            raise ConfigurationError(f"Variáveis de ambiente obrigatórias ausentes: {', '.join(missing)}")
        return self

    def validate(self) -> 'AppConfig':
        """
        Verifica todas as configurações obrigatórias.

        Raises:
            ConfigurationError: Se alguma variável obrigatória estiver ausente
        """
        self.require(*(attr for attr, _ in self.REQUIRED))
        # Valida os parâmetros numéricos da política
        self.export_poll_policy()
        self.ddl_retry_policy()
        return self

    def export_poll_policy(self) -> RetryPolicy:
        """Política de retry do polling da exportação."""
        try:
            return RetryPolicy(
                interval_seconds=self.export_poll_interval_seconds,
                backoff_rate=self.export_poll_backoff_rate,
                max_attempts=self.export_poll_max_attempts,
            )
        except ValueError as e:
            raise ConfigurationError(f"Política de polling inválida: {e}") from e

    def ddl_retry_policy(self) -> RetryPolicy:
        """Política curta para falhas transitórias do Athena."""
        try:
            return RetryPolicy(
                interval_seconds=self.ddl_retry_delay,
                backoff_rate=2.0,
                max_attempts=self.ddl_max_attempts,
            )
        except ValueError as e:
            raise ConfigurationError(f"Política de retry do Athena inválida: {e}") from e

    def botocore_config(self) -> Config:
        """Configuração dos clientes boto3 com limite de tempo por chamada."""
        return Config(
            region_name=self.aws_region,
            connect_timeout=self.aws_connect_timeout,
            read_timeout=self.aws_read_timeout,
            retries={'max_attempts': 3, 'mode': 'standard'},
        )

    def saved_queries(self) -> List[Tuple[str, str]]:
        """Consultas salvas mantidas pelo workflow: lista de (nome, template)."""
        return [(self.read_query_name, self.read_table_template)]

    def to_dict(self) -> Dict[str, object]:
        return {
            'aws_region': self.aws_region,
            'dynamodb_table_arn': self.dynamodb_table_arn,
            's3_bucket_name': self.s3_bucket_name,
            's3_export_prefix': self.s3_export_prefix,
            'table_location_prefix': self.table_location_prefix,
            'glue_database_name': self.glue_database_name,
            'athena_workgroup_name': self.athena_workgroup_name,
            'athena_table_name': self.athena_table_name,
            'journey_table_name': self.journey_table_name,
        }

    def __repr__(self) -> str:
        """Representação string da configuração."""
        return (
            f"AppConfig("
            f"region={self.aws_region}, "
            f"table_arn={self.dynamodb_table_arn}, "
            f"bucket={self.s3_bucket_name}, "
            f"database={self.glue_database_name}, "
            f"workgroup={self.athena_workgroup_name}"
            f")"
        )
