"""
Saved Query Registrar - cria ou atualiza consultas salvas do Athena pelo nome.

O Athena não oferece busca por nome: as consultas do workgroup são listadas
e cada uma é lida até encontrar o nome. O id interno é mantido na
atualização.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from export_pipeline.core.exceptions import PartialPublishError
from export_pipeline.core.models import ExportHandle, SavedQuery
from export_pipeline.core.template import build_substitutions, render_template
from export_pipeline.handlers.athena_handler import AthenaHandler
from export_pipeline.steps.base_step import BaseWorkflowStep


logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = 'DynamoDB Export Query'


class SavedQueryRegistrar(BaseWorkflowStep):
    """
    Upsert de consultas salvas, chaveado pelo nome legível.
    """

    def __init__(
        self,
        athena_handler: AthenaHandler,
        workgroup: str,
        database_name: str,
        table_name: str,
        queries: Sequence[Tuple[str, str]] = (),
        description: str = DEFAULT_DESCRIPTION
    ):
        """
        Args:
            athena_handler: Handler do Athena
            workgroup: Workgroup das consultas
            database_name: Database usado pelas consultas
            table_name: Tabela substituída em table_name
            queries: Pares (nome, template) publicados por _run
            description: Descrição gravada nas consultas
        """
        self.athena_handler = athena_handler
        self.workgroup = workgroup
        self.database_name = database_name
        self.table_name = table_name
        self.queries = list(queries)
        self.description = description

    def find_query_id(self, name: str) -> Optional[str]:
        """Procura a consulta salva pelo nome no workgroup."""
        for named_query_id in self.athena_handler.list_named_query_ids(self.workgroup):
            named_query = self.athena_handler.get_named_query(named_query_id)
            if named_query.get('Name') == name:
                return named_query_id
        return None

    def substitutions(self, export_id: Optional[str] = None) -> Dict[str, str]:
        return build_substitutions(
            table_name=self.table_name,
            database_name=self.database_name,
            export_id=export_id,
        )

    def register(self, name: str, template: str, substitutions: Dict[str, str]) -> SavedQuery:
        """
        Cria a consulta se não existir; senão atualiza o texto no lugar.

        Args:
            name: Nome estável da consulta
            template: Texto com placeholders
            substitutions: Mapa token -> valor

        Returns:
            SavedQuery com id e ação executada ('created' ou 'updated')
        """
        query_string = render_template(template, substitutions)
        saved_query = SavedQuery(
            name=name,
            query_string=query_string,
            workgroup=self.workgroup,
            database=self.database_name,
        )

        query_id = self.find_query_id(name)
        if query_id is None:
            saved_query.query_id = self.athena_handler.create_named_query(
                name=name,
                query_string=query_string,
                database=self.database_name,
                workgroup=self.workgroup,
                description=self.description,
            )
            saved_query.action = 'created'
        else:
            self.athena_handler.update_named_query(
                named_query_id=query_id,
                name=name,
                query_string=query_string,
                description=self.description,
            )
            saved_query.query_id = query_id
            saved_query.action = 'updated'

        logger.info(f"Consulta salva '{name}' {saved_query.action} (id: {saved_query.query_id})")
        return saved_query

    def register_all(self, queries: Sequence[Tuple[str, str]], export_id: Optional[str] = None) -> List[SavedQuery]:
        """
        Publica as consultas em sequência.

        Raises:
            PartialPublishError: Se uma consulta falhar depois de outras publicadas
        """
        substitutions = self.substitutions(export_id)
        published: List[SavedQuery] = []
        for name, template in queries:
            try:
                published.append(self.register(name, template, substitutions))
            except Exception as e:
                if not published:
                    raise
                raise PartialPublishError(name, [q.name for q in published], e) from e
        return published

    def _run(self, handle: ExportHandle = None, **kwargs) -> List[SavedQuery]:
        return self.register_all(self.queries, handle.export_id if handle else None)
