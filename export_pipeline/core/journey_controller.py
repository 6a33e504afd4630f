"""
Classe para controle de jornada das execuções do workflow.

Cada execução é uma jornada independente: status, etapas (transições de
estado) e mensagem de erro. O registro fica sempre em memória durante a
execução e, se uma tabela for configurada, é gravado no DynamoDB a cada
mudança para inspeção pelo operador.
"""
import copy
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError


logger = logging.getLogger(__name__)


class JourneyStatus(Enum):
    """Status possíveis de uma jornada."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


JOURNEY_KEY = 'journey_id'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JourneyController:
    """
    Controlador de jornada das execuções.

    Características:
    - Isolamento: cada execução tem seu próprio journey_id, sem estado entre execuções
    - Rastreamento: mantém histórico de etapas com timestamp
    - Persistência opcional: grava o registro completo no DynamoDB (chave journey_id);
      falhas de gravação são registradas em log e não interrompem a execução
    """

    def __init__(
        self,
        table_name: Optional[str] = None,
        region_name: str = "sa-east-1",
        dynamodb_resource=None
    ):
        """
        Inicializa o controlador de jornada.

        Args:
            table_name: Tabela DynamoDB para os registros (None = apenas memória)
            region_name: Região AWS
            dynamodb_resource: Resource DynamoDB opcional (útil para testes)
        """
        self.table_name = table_name
        self.region_name = region_name
        self._journeys: Dict[str, Dict] = {}
        self.table = None
        self.persist_errors = 0

        if table_name:
            dynamodb = dynamodb_resource or boto3.resource('dynamodb', region_name=region_name)
            self.table = dynamodb.Table(table_name)
            logger.info(f"Jornadas serão gravadas na tabela DynamoDB '{table_name}'")

    def _persist(self, journey: Dict):
        """
        Grava o registro no DynamoDB, se configurado.

        O registro em memória continua valendo quando a gravação falha: a
        jornada nunca interrompe o workflow.
        """
        if self.table is None:
            return
        try:
            self.table.put_item(Item=journey)
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            if error_code == 'ResourceNotFoundException':
                logger.warning(
                    f"Tabela '{self.table_name}' não encontrada durante PutItem. "
                    "Usando armazenamento em memória."
                )
                self.table = None
            else:
                logger.error(f"Erro ao salvar jornada {journey.get(JOURNEY_KEY)}: {e}")
            self.persist_errors += 1

    def _require(self, journey_id: str) -> Dict:
        journey = self._journeys.get(journey_id)
        if journey is None:
            raise ValueError(f"Jornada {journey_id} não encontrada.")
        return journey

    def start_journey(self, journey_id: Optional[str] = None, metadata: Optional[Dict] = None) -> str:
        """
        Inicia uma nova jornada.

        Args:
            journey_id: ID único da jornada (gerado automaticamente se None)
            metadata: Metadados adicionais da jornada

        Returns:
            ID da jornada
        """
        journey_id = journey_id or str(uuid.uuid4())
        if journey_id in self._journeys:
            raise ValueError(f"Jornada {journey_id} já iniciada nesta execução.")

        now = _now()
        journey = {
            JOURNEY_KEY: journey_id,
            'status': JourneyStatus.PENDING.value,
            'created_at': now,
            'updated_at': now,
            'metadata': metadata or {},
            'steps': [],
        }
        self._journeys[journey_id] = journey
        self._persist(journey)
        logger.info(f"Jornada {journey_id} iniciada.")
        return journey_id

    def update_status(self, journey_id: str, status: JourneyStatus, error: Optional[str] = None):
        """
        Atualiza o status de uma jornada.

        Args:
            journey_id: ID da jornada
            status: Novo status
            error: Mensagem de erro (se houver)
        """
        journey = self._require(journey_id)
        journey['status'] = status.value
        journey['updated_at'] = _now()
        if error:
            journey['error_message'] = error
        self._persist(journey)
        logger.info(f"Jornada {journey_id} atualizada para status: {status.value}")

    def add_step(self, journey_id: str, step_name: str, step_data: Optional[Dict] = None):
        """
        Adiciona uma etapa à jornada.

        Args:
            journey_id: ID da jornada
            step_name: Nome da etapa
            step_data: Dados adicionais da etapa
        """
        journey = self._require(journey_id)
        now = _now()
        # O DynamoDB não aceita float; valores não inteiros são gravados como texto
        data = {
            key: str(value) if isinstance(value, float) else value
            for key, value in (step_data or {}).items()
        }
        journey['steps'].append({
            'name': step_name,
            'timestamp': now,
            'data': data,
        })
        journey['updated_at'] = now
        self._persist(journey)
        logger.debug(f"Etapa '{step_name}' adicionada à jornada {journey_id}")

    def get_journey(self, journey_id: str) -> Optional[Dict]:
        """Recupera uma cópia do registro completo da jornada."""
        journey = self._journeys.get(journey_id)
        return copy.deepcopy(journey) if journey is not None else None

    def get_steps(self, journey_id: str) -> List[Dict]:
        """Etapas registradas, em ordem."""
        return list(self._require(journey_id)['steps'])
