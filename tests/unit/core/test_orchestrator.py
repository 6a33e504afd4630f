"""Testes unitários para export_pipeline/core/orchestrator.py"""
import threading
import unittest
from unittest.mock import MagicMock

from export_pipeline.core.exceptions import (
    ExportFailedError,
    PartialPublishError,
    RequestRejectedError,
    RetryBudgetExhaustedError,
    UnexpectedExportStatusError,
    WorkflowCancelledError,
)
from export_pipeline.core.journey_controller import JourneyController
from export_pipeline.core.models import (
    CatalogTableDescriptor,
    ExportHandle,
    ExportStatus,
    PollOutcome,
    PollResult,
    SavedQuery,
    WorkflowState,
)
from export_pipeline.core.orchestrator import ExportWorkflowOrchestrator
from export_pipeline.core.retry import RetryPolicy
from tests.fakes import client_error

EXPORT_ARN = "arn:aws:dynamodb:sa-east-1:123456789012:table/orders/export/0170-abc"
HANDLE = ExportHandle.from_arn(EXPORT_ARN)


def _poll(outcome, status, raw=None, **extra):
    return PollResult(outcome, HANDLE, status, raw or status.value, **extra)


IN_PROGRESS = _poll(PollOutcome.IN_PROGRESS, ExportStatus.IN_PROGRESS)
COMPLETED = _poll(PollOutcome.COMPLETED, ExportStatus.COMPLETED)


class TestExportWorkflowOrchestrator(unittest.TestCase):
    def setUp(self):
        self.trigger = MagicMock()
        self.trigger.execute.return_value = HANDLE
        self.poller = MagicMock()
        self.publisher = MagicMock()
        self.publisher.execute.return_value = CatalogTableDescriptor(
            'analytics', 'orders_exported', 's3://bucket/exports/0170-abc/data/', 'primary'
        )
        self.registrar = MagicMock()
        self.registrar.execute.return_value = [SavedQuery('read', 'SELECT 1', 'primary', 'analytics', 'nq-1', 'created')]
        self.sleeps = []
        self.journeys = JourneyController()

        self.orchestrator = ExportWorkflowOrchestrator(
            export_trigger=self.trigger,
            export_poller=self.poller,
            table_publisher=self.publisher,
            query_registrar=self.registrar,
            journey_controller=self.journeys,
            sleep=self.sleeps.append,
        )

    def test_happy_path(self):
        self.poller.execute.side_effect = [IN_PROGRESS, IN_PROGRESS, COMPLETED]

        result = self.orchestrator.run(execution_id='exec-1')

        self.assertIs(result.state, WorkflowState.DONE)
        self.assertEqual(result.transitions, [
            'Start', 'Exporting', 'Polling', 'TableRefresh', 'QueryPublish', 'Done'
        ])
        self.assertEqual(result.poll_attempts, 3)
        self.assertEqual(self.sleeps, [30, 60])
        self.assertEqual(result.total_wait_seconds, 90)
        self.trigger.execute.assert_called_once_with()
        self.publisher.execute.assert_called_once_with(handle=HANDLE)
        self.registrar.execute.assert_called_once_with(handle=HANDLE)
        self.assertEqual(self.journeys.get_journey('exec-1')['status'], 'COMPLETED')

    def test_completion_on_last_attempt(self):
        """Testa 9 consultas em andamento seguidas de COMPLETED: 10 chamadas, 15330s de espera."""
        self.poller.execute.side_effect = [IN_PROGRESS] * 9 + [COMPLETED]

        result = self.orchestrator.run()

        self.assertIs(result.state, WorkflowState.DONE)
        self.assertEqual(self.poller.execute.call_count, 10)
        self.assertEqual(result.poll_attempts, 10)
        self.assertEqual(result.total_wait_seconds, 15330)
        self.assertEqual(self.sleeps, [30, 60, 120, 240, 480, 960, 1920, 3840, 7680])

    def test_retry_budget_exhausted(self):
        """Testa que a exportação sempre em andamento termina em FAILED após 10 consultas."""
        self.poller.execute.return_value = IN_PROGRESS

        result = self.orchestrator.run()

        self.assertIs(result.state, WorkflowState.FAILED)
        self.assertEqual(result.failed_step, 'Polling')
        self.assertIsInstance(result.error, RetryBudgetExhaustedError)
        self.assertEqual(self.poller.execute.call_count, 10)
        self.assertEqual(len(self.sleeps), 9)
        self.assertEqual(self.trigger.execute.call_count, 1)
        self.publisher.execute.assert_not_called()
        self.registrar.execute.assert_not_called()

    def test_custom_policy(self):
        self.orchestrator.poll_policy = RetryPolicy(interval_seconds=1, backoff_rate=1, max_attempts=2)
        self.poller.execute.return_value = IN_PROGRESS

        result = self.orchestrator.run()

        self.assertEqual(self.poller.execute.call_count, 2)
        self.assertEqual(result.total_wait_seconds, 1)

    def test_export_failed(self):
        self.poller.execute.side_effect = [
            IN_PROGRESS,
            _poll(PollOutcome.FAILED, ExportStatus.FAILED, failure_code='S3NoSuchBucket', failure_message='x'),
        ]

        result = self.orchestrator.run()

        self.assertIs(result.state, WorkflowState.FAILED)
        self.assertEqual(result.failed_step, 'Polling')
        self.assertIsInstance(result.error, ExportFailedError)
        self.assertEqual(result.error.failure_code, 'S3NoSuchBucket')
        self.assertEqual(self.poller.execute.call_count, 2)
        self.publisher.execute.assert_not_called()

    def test_unrecognized_status_is_not_retried(self):
        self.poller.execute.return_value = _poll(PollOutcome.FAILED, ExportStatus.UNKNOWN, raw='CANCELLED')

        result = self.orchestrator.run()

        self.assertIsInstance(result.error, UnexpectedExportStatusError)
        self.assertEqual(result.error.raw_status, 'CANCELLED')
        self.assertEqual(self.poller.execute.call_count, 1)
        self.assertEqual(self.sleeps, [])

    def test_trigger_rejected(self):
        """Testa que a rejeição do disparo não é retentada e nada mais é executado."""
        self.trigger.execute.side_effect = RequestRejectedError(
            'ExportTableToPointInTime', client_error('ValidationException', 'ExportTableToPointInTime')
        )

        result = self.orchestrator.run(execution_id='exec-2')

        self.assertIs(result.state, WorkflowState.FAILED)
        self.assertEqual(result.failed_step, 'Exporting')
        self.assertEqual(result.error.error_code, 'ValidationException')
        self.assertIsNone(result.export_handle)
        self.assertEqual(self.trigger.execute.call_count, 1)
        self.poller.execute.assert_not_called()
        journey = self.journeys.get_journey('exec-2')
        self.assertEqual(journey['status'], 'FAILED')
        self.assertIn('ValidationException', journey['error_message'])

    def test_table_refresh_failure_skips_queries(self):
        self.poller.execute.return_value = COMPLETED
        self.publisher.execute.side_effect = RuntimeError('DDL falhou')

        result = self.orchestrator.run()

        self.assertEqual(result.failed_step, 'TableRefresh')
        self.assertEqual(result.transitions[-1], 'Failed')
        self.registrar.execute.assert_not_called()

    def test_partial_publish(self):
        self.poller.execute.return_value = COMPLETED
        self.registrar.execute.side_effect = PartialPublishError('q2', ['q1'], RuntimeError('x'))

        result = self.orchestrator.run()

        self.assertEqual(result.failed_step, 'QueryPublish')
        self.assertEqual(result.error.published, ['q1'])
        self.assertIsNotNone(result.table)

    def test_cancelled_before_export(self):
        cancel_event = threading.Event()
        cancel_event.set()
        self.orchestrator.cancel_event = cancel_event
        self.poller.execute.return_value = IN_PROGRESS

        result = self.orchestrator.run()

        self.assertIs(result.state, WorkflowState.FAILED)
        self.assertIsInstance(result.error, WorkflowCancelledError)
        self.trigger.execute.assert_not_called()

    def test_cancelled_between_polls(self):
        cancel_event = MagicMock()
        cancel_event.is_set.return_value = False
        cancel_event.wait.return_value = True
        self.orchestrator.cancel_event = cancel_event
        self.poller.execute.return_value = IN_PROGRESS

        result = self.orchestrator.run()

        self.assertIsInstance(result.error, WorkflowCancelledError)
        self.assertEqual(result.failed_step, 'Polling')
        self.assertEqual(self.poller.execute.call_count, 1)
        cancel_event.wait.assert_called_once_with(30)

    def test_journey_records_each_transition(self):
        self.poller.execute.return_value = COMPLETED

        self.orchestrator.run(execution_id='exec-3', metadata={'trigger': 'teste'})

        steps = [step['name'] for step in self.journeys.get_steps('exec-3')]
        self.assertEqual(steps, ['Start', 'Exporting', 'Polling', 'TableRefresh', 'QueryPublish', 'Done'])
        self.assertEqual(self.journeys.get_journey('exec-3')['metadata'], {'trigger': 'teste'})

    def _persisted_journeys(self, put_item):
        mock_resource = MagicMock()
        mock_resource.Table.return_value.put_item.side_effect = put_item
        self.orchestrator.journey_controller = JourneyController(table_name='journeys', dynamodb_resource=mock_resource)
        return self.orchestrator.journey_controller

    def test_journal_write_error_on_done(self):
        """Testa que falha ao gravar o status COMPLETED não desfaz uma execução concluída."""
        def put_item(Item):
            if Item['status'] == 'COMPLETED':
                raise client_error('ProvisionedThroughputExceededException', 'PutItem')

        journeys = self._persisted_journeys(put_item)
        self.poller.execute.return_value = COMPLETED

        result = self.orchestrator.run(execution_id='exec-4')

        self.assertIs(result.state, WorkflowState.DONE)
        self.assertIsNone(result.error)
        self.assertEqual(len(result.saved_queries), 1)
        self.assertEqual(journeys.get_journey('exec-4')['status'], 'COMPLETED')
        self.assertEqual(journeys.persist_errors, 1)

    def test_journal_write_error_keeps_original_failure(self):
        """Testa que a etapa e o erro originais sobrevivem a um diário indisponível."""
        journeys = self._persisted_journeys(client_error('InternalServerError', 'PutItem'))
        self.poller.execute.return_value = _poll(
            PollOutcome.FAILED, ExportStatus.FAILED, failure_code='S3NoSuchBucket', failure_message='x'
        )

        result = self.orchestrator.run(execution_id='exec-5')

        self.assertIs(result.state, WorkflowState.FAILED)
        self.assertEqual(result.failed_step, 'Polling')
        self.assertIsInstance(result.error, ExportFailedError)
        journey = journeys.get_journey('exec-5')
        self.assertEqual(journey['status'], 'FAILED')
        self.assertIn('S3NoSuchBucket', journey['error_message'])
        self.assertGreater(journeys.persist_errors, 0)

    def test_logs_poll_budget(self):
        self.poller.execute.return_value = COMPLETED

        with self.assertLogs('export_pipeline.core.orchestrator', level='INFO') as logs:
            self.orchestrator.run()

        self.assertTrue(any('15330s' in line for line in logs.output))

    def test_runs_are_independent(self):
        self.poller.execute.return_value = COMPLETED

        first = self.orchestrator.run()
        second = self.orchestrator.run()

        self.assertNotEqual(first.execution_id, second.execution_id)
        self.assertEqual(self.trigger.execute.call_count, 2)


if __name__ == '__main__':
    unittest.main()
