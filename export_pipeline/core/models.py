"""
Modelos de dados do workflow de exportação e publicação.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ExportStatus(Enum):
    """Status de uma exportação point-in-time do DynamoDB."""
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_provider(cls, raw_status) -> 'ExportStatus':
        """Converte o status bruto do provedor; valores desconhecidos viram UNKNOWN."""
        for status in cls:
            if status is not cls.UNKNOWN and status.value == raw_status:
                return status
        return cls.UNKNOWN


class PollOutcome(Enum):
    """Tag do resultado de uma consulta de status."""
    COMPLETED = "COMPLETED"
    IN_PROGRESS = "IN_PROGRESS"
    FAILED = "FAILED"


class WorkflowState(Enum):
    """Estados do workflow. DONE e FAILED são terminais."""
    START = "Start"
    EXPORTING = "Exporting"
    POLLING = "Polling"
    TABLE_REFRESH = "TableRefresh"
    QUERY_PUBLISH = "QueryPublish"
    DONE = "Done"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowState.DONE, WorkflowState.FAILED)


@dataclass(frozen=True)
class ExportHandle:
    """Identificador opaco de uma exportação emitido pelo provedor."""
    export_arn: str
    export_id: str

    @classmethod
    def from_arn(cls, export_arn: str) -> 'ExportHandle':
        """Cria o handle derivando o export_id do último segmento do ARN."""
        if not export_arn:
            raise ValueError("export_arn não pode ser vazio")
        export_id = export_arn.rstrip('/').split('/')[-1]
        return cls(export_arn=export_arn, export_id=export_id)

    @classmethod
    def from_event(cls, event: Dict[str, Any]) -> 'ExportHandle':
        """Lê o handle do payload trocado entre as Lambdas ({exportArn, exportId})."""
        try:
            export_arn = event['exportArn']
        except (KeyError, TypeError):
            raise ValueError(f"Evento sem 'exportArn': {event!r}")
        handle = cls.from_arn(export_arn)
        if event.get('exportId') and event['exportId'] != handle.export_id:
            raise ValueError(
                f"exportId '{event['exportId']}' não corresponde ao ARN '{export_arn}'"
            )
        return handle

    def to_event(self) -> Dict[str, str]:
        return {'exportArn': self.export_arn, 'exportId': self.export_id}


@dataclass(frozen=True)
class PollResult:
    """Resultado de uma consulta de status (variante com tag)."""
    outcome: PollOutcome
    handle: ExportHandle
    status: ExportStatus
    raw_status: Optional[str] = None
    failure_code: Optional[str] = None
    failure_message: Optional[str] = None

    @property
    def reason(self) -> Optional[str]:
        if self.outcome is not PollOutcome.FAILED:
            return None
        if self.status is ExportStatus.UNKNOWN:
            return f"Status não esperado: {self.raw_status!r}"
        return f"{self.failure_code or 'sem código'}: {self.failure_message or 'sem mensagem'}"

    @property
    def is_completed(self) -> bool:
        return self.outcome is PollOutcome.COMPLETED

    @property
    def is_in_progress(self) -> bool:
        return self.outcome is PollOutcome.IN_PROGRESS


@dataclass(frozen=True)
class CatalogTableDescriptor:
    """Tabela do catálogo que aponta para os dados da exportação no S3."""
    database_name: str
    table_name: str
    data_location: str
    workgroup: str

    @property
    def qualified_name(self) -> str:
        return f"{self.database_name}.{self.table_name}"

    @staticmethod
    def build_location(bucket_name: str, prefix: str, export_id: str) -> str:
        """s3://<bucket>/<prefix>/<exportId>/data/"""
        parts = [p.strip('/') for p in (prefix, export_id) if p and p.strip('/')]
        return f"s3://{bucket_name.strip('/')}/{'/'.join(parts)}/data/"


@dataclass
class SavedQuery:
    """Consulta salva (named query) em um workgroup do Athena."""
    name: str
    query_string: str
    workgroup: str
    database: str
    query_id: Optional[str] = None
    action: Optional[str] = None  # 'created' | 'updated'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'query_id': self.query_id,
            'action': self.action,
            'workgroup': self.workgroup,
            'database': self.database,
        }


@dataclass
class WorkflowResult:
    """Estado terminal e rastreabilidade de uma execução do workflow."""
    execution_id: str
    state: WorkflowState = WorkflowState.START
    export_handle: Optional[ExportHandle] = None
    table: Optional[CatalogTableDescriptor] = None
    saved_queries: List[SavedQuery] = field(default_factory=list)
    poll_attempts: int = 0
    total_wait_seconds: float = 0.0
    transitions: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.state is WorkflowState.DONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'execution_id': self.execution_id,
            'state': self.state.value,
            'export': self.export_handle.to_event() if self.export_handle else None,
            'table': {
                'database': self.table.database_name,
                'table': self.table.table_name,
                'location': self.table.data_location,
            } if self.table else None,
            'saved_queries': [q.to_dict() for q in self.saved_queries],
            'poll_attempts': self.poll_attempts,
            'total_wait_seconds': self.total_wait_seconds,
            'transitions': list(self.transitions),
            'failed_step': self.failed_step,
            'error': str(self.error) if self.error else None,
            'error_type': type(self.error).__name__ if self.error else None,
        }
