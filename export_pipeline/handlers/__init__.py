"""Handlers de acesso aos serviços AWS (DynamoDB e Athena)."""

from export_pipeline.handlers.athena_handler import AthenaHandler
from export_pipeline.handlers.dynamodb_export_handler import DynamoDBExportHandler

__all__ = ['AthenaHandler', 'DynamoDBExportHandler']
