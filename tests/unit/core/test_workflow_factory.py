"""Testes unitários para export_pipeline/core/workflow_factory.py"""
import os
import unittest
from unittest.mock import MagicMock, patch

from export_pipeline.config.settings import AppConfig
from export_pipeline.core.exceptions import ConfigurationError
from export_pipeline.core.orchestrator import ExportWorkflowOrchestrator
from export_pipeline.core.workflow_factory import WorkflowFactory

ENV = {
    'DYNAMO_DB_TABLE_ARN': 'arn:aws:dynamodb:sa-east-1:123456789012:table/orders',
    'S3_BUCKET_NAME': 'analytics-bucket',
    'GLUE_DATABASE_NAME': 'analytics',
    'ATHENA_WORKGROUP_NAME': 'primary',
    'TABLE_LOCATION_PREFIX': 'exports',
    'DDL_TIMEOUT_SECONDS': '60',
}


class TestWorkflowFactory(unittest.TestCase):

    @patch.dict(os.environ, ENV, clear=True)
    def setUp(self):
        self.dynamodb_client = MagicMock()
        self.athena_client = MagicMock()
        self.factory = WorkflowFactory(
            AppConfig(), dynamodb_client=self.dynamodb_client, athena_client=self.athena_client
        )

    def test_create_orchestrator_shares_handlers(self):
        orchestrator = self.factory.create_orchestrator()

        self.assertIsInstance(orchestrator, ExportWorkflowOrchestrator)
        self.assertIs(orchestrator.export_trigger.export_handler, orchestrator.export_poller.export_handler)
        self.assertIs(orchestrator.table_publisher.athena_handler, orchestrator.query_registrar.athena_handler)
        self.assertIs(orchestrator.export_poller.export_handler.client, self.dynamodb_client)
        self.assertEqual(orchestrator.poll_policy.max_attempts, 10)

    def test_steps_receive_configuration(self):
        publisher = self.factory.create_table_publisher()
        registrar = self.factory.create_query_registrar()

        self.assertEqual(publisher.location_prefix, 'exports')
        self.assertEqual(publisher.database_name, 'analytics')
        self.assertEqual(publisher.athena_handler.timeout_seconds, 60)
        self.assertEqual(registrar.workgroup, 'primary')
        self.assertEqual([name for name, _ in registrar.queries], ['sfn-ddb-export-read-table'])

    def test_journey_controller_in_memory_by_default(self):
        self.assertIsNone(self.factory.create_journey_controller().table)

    @patch.dict(os.environ, {'S3_BUCKET_NAME': 'bucket'}, clear=True)
    def test_create_orchestrator_validates_configuration(self):
        factory = WorkflowFactory(AppConfig(), dynamodb_client=MagicMock(), athena_client=MagicMock())

        with self.assertRaises(ConfigurationError):
            factory.create_orchestrator()


if __name__ == '__main__':
    unittest.main()
