"""
Catalog Table Publisher - recria a tabela do catálogo apontando para a nova exportação.

A localização de uma tabela externa não é alterada no lugar: a tabela é
removida (DROP TABLE IF EXISTS) e criada novamente com o novo LOCATION.
As duas DDLs são aguardadas até o estado terminal, em sequência.
"""
import logging

from export_pipeline.core.models import CatalogTableDescriptor, ExportHandle
from export_pipeline.core.template import build_substitutions, render_template
from export_pipeline.handlers.athena_handler import AthenaHandler
from export_pipeline.steps.base_step import BaseWorkflowStep


logger = logging.getLogger(__name__)


class CatalogTablePublisher(BaseWorkflowStep):
    """
    Publica a tabela do catálogo para uma exportação concluída.
    """

    def __init__(
        self,
        athena_handler: AthenaHandler,
        database_name: str,
        table_name: str,
        workgroup: str,
        bucket_name: str,
        location_prefix: str,
        create_table_template: str
    ):
        """
        Args:
            athena_handler: Handler do Athena
            database_name: Database do Glue Data Catalog
            table_name: Nome fixo da tabela (estável entre execuções)
            workgroup: Workgroup do Athena
            bucket_name: Bucket da exportação
            location_prefix: Prefixo até o diretório do exportId
            create_table_template: CREATE EXTERNAL TABLE com placeholders
        """
        self.athena_handler = athena_handler
        self.database_name = database_name
        self.table_name = table_name
        self.workgroup = workgroup
        self.bucket_name = bucket_name
        self.location_prefix = location_prefix
        self.create_table_template = create_table_template

    def describe(self, handle: ExportHandle) -> CatalogTableDescriptor:
        """Descritor da tabela para a exportação informada."""
        return CatalogTableDescriptor(
            database_name=self.database_name,
            table_name=self.table_name,
            data_location=CatalogTableDescriptor.build_location(
                self.bucket_name, self.location_prefix, handle.export_id
            ),
            workgroup=self.workgroup,
        )

    def drop_statement(self) -> str:
        return f"DROP TABLE IF EXISTS `{self.database_name}`.`{self.table_name}`;"

    def create_statement(self, table: CatalogTableDescriptor, handle: ExportHandle) -> str:
        return render_template(
            self.create_table_template,
            build_substitutions(
                table_name=table.table_name,
                database_name=table.database_name,
                export_id=handle.export_id,
                s3_location=table.data_location,
            )
        )

    def drop_table(self):
        """Remove a tabela, se existir. Não falha na primeira execução."""
        logger.info(f"Removendo tabela {self.database_name}.{self.table_name} (se existir)")
        self.athena_handler.execute_query(self.drop_statement(), self.database_name, self.workgroup)

    def create_table(self, table: CatalogTableDescriptor, handle: ExportHandle):
        """Cria a tabela apontando para os dados da exportação."""
        logger.info(f"Criando tabela {table.qualified_name} em {table.data_location}")
        self.athena_handler.execute_query(self.create_statement(table, handle), table.database_name, table.workgroup)

    def _run(self, handle: ExportHandle = None, **kwargs) -> CatalogTableDescriptor:
        table = self.describe(handle)
        self.drop_table()
        self.create_table(table, handle)
        return table
