"""
Export Trigger - dispara a exportação point-in-time da tabela DynamoDB.
"""
from export_pipeline.core.models import ExportHandle
from export_pipeline.handlers.dynamodb_export_handler import DynamoDBExportHandler
from export_pipeline.steps.base_step import BaseWorkflowStep


class ExportTrigger(BaseWorkflowStep):
    """
    Pede ao DynamoDB uma exportação completa para o S3.

    Não é idempotente: cada chamada cria uma nova exportação. O orquestrador
    chama esta etapa exatamente uma vez por execução e não aplica retry.
    """

    def __init__(self, export_handler: DynamoDBExportHandler, table_arn: str, bucket_name: str, s3_prefix: str):
        self.export_handler = export_handler
        self.table_arn = table_arn
        self.bucket_name = bucket_name
        self.s3_prefix = s3_prefix

    def _run(self, **kwargs) -> ExportHandle:
        return self.export_handler.start_export(
            table_arn=self.table_arn,
            bucket_name=self.bucket_name,
            s3_prefix=self.s3_prefix,
        )
