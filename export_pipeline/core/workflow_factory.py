"""
Workflow Factory - cria handlers, etapas e o orquestrador a partir do AppConfig.

Usado pelo entry point do job e pelas Lambdas de cada etapa, garantindo que
as duas formas de execução montem as etapas da mesma maneira.
"""
import logging
import threading
import time
from typing import Callable, Optional

from export_pipeline.config.settings import AppConfig
from export_pipeline.core.journey_controller import JourneyController
from export_pipeline.core.orchestrator import ExportWorkflowOrchestrator
from export_pipeline.handlers.athena_handler import AthenaHandler
from export_pipeline.handlers.dynamodb_export_handler import DynamoDBExportHandler
from export_pipeline.steps.catalog_table_publisher import CatalogTablePublisher
from export_pipeline.steps.export_poller import ExportPoller
from export_pipeline.steps.export_trigger import ExportTrigger
from export_pipeline.steps.saved_query_registrar import SavedQueryRegistrar


logger = logging.getLogger(__name__)


class WorkflowFactory:
    """
    Factory das dependências do workflow.

    Clientes boto3 podem ser injetados (testes); caso contrário são criados
    com a região e os limites de tempo do AppConfig.
    """

    def __init__(
        self,
        config: AppConfig,
        dynamodb_client=None,
        athena_client=None,
        dynamodb_resource=None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.config = config
        self.dynamodb_client = dynamodb_client
        self.athena_client = athena_client
        self.dynamodb_resource = dynamodb_resource
        self.sleep = sleep
        self.clock = clock

    def create_export_handler(self) -> DynamoDBExportHandler:
        return DynamoDBExportHandler(
            region_name=self.config.aws_region,
            dynamodb_client=self.dynamodb_client,
            client_config=self.config.botocore_config(),
        )

    def create_athena_handler(self) -> AthenaHandler:
        return AthenaHandler(
            region_name=self.config.aws_region,
            athena_client=self.athena_client,
            client_config=self.config.botocore_config(),
            retry_policy=self.config.ddl_retry_policy(),
            poll_interval_seconds=self.config.ddl_poll_interval_seconds,
            timeout_seconds=self.config.ddl_timeout_seconds,
            output_location=self.config.athena_output_location,
            sleep=self.sleep,
            clock=self.clock,
        )

    def create_export_trigger(self, export_handler: Optional[DynamoDBExportHandler] = None) -> ExportTrigger:
        return ExportTrigger(
            export_handler=export_handler or self.create_export_handler(),
            table_arn=self.config.dynamodb_table_arn,
            bucket_name=self.config.s3_bucket_name,
            s3_prefix=self.config.s3_export_prefix,
        )

    def create_export_poller(self, export_handler: Optional[DynamoDBExportHandler] = None) -> ExportPoller:
        return ExportPoller(export_handler=export_handler or self.create_export_handler())

    def create_table_publisher(self, athena_handler: Optional[AthenaHandler] = None) -> CatalogTablePublisher:
        return CatalogTablePublisher(
            athena_handler=athena_handler or self.create_athena_handler(),
            database_name=self.config.glue_database_name,
            table_name=self.config.athena_table_name,
            workgroup=self.config.athena_workgroup_name,
            bucket_name=self.config.s3_bucket_name,
            location_prefix=self.config.table_location_prefix,
            create_table_template=self.config.create_table_template,
        )

    def create_query_registrar(self, athena_handler: Optional[AthenaHandler] = None) -> SavedQueryRegistrar:
        return SavedQueryRegistrar(
            athena_handler=athena_handler or self.create_athena_handler(),
            workgroup=self.config.athena_workgroup_name,
            database_name=self.config.glue_database_name,
            table_name=self.config.athena_table_name,
            queries=self.config.saved_queries(),
        )

    def create_journey_controller(self) -> JourneyController:
        return JourneyController(
            table_name=self.config.journey_table_name,
            region_name=self.config.aws_region,
            dynamodb_resource=self.dynamodb_resource,
        )

    def create_orchestrator(self, cancel_event: Optional[threading.Event] = None) -> ExportWorkflowOrchestrator:
        """Monta o orquestrador com handlers compartilhados entre as etapas."""
        self.config.validate()
        export_handler = self.create_export_handler()
        athena_handler = self.create_athena_handler()

        orchestrator = ExportWorkflowOrchestrator(
            export_trigger=self.create_export_trigger(export_handler),
            export_poller=self.create_export_poller(export_handler),
            table_publisher=self.create_table_publisher(athena_handler),
            query_registrar=self.create_query_registrar(athena_handler),
            poll_policy=self.config.export_poll_policy(),
            journey_controller=self.create_journey_controller(),
            sleep=self.sleep,
            cancel_event=cancel_event,
        )
        logger.info(f"Orquestrador criado: {self.config!r}")
        return orchestrator
