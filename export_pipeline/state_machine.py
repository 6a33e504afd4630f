"""
Definição Amazon States Language da variante Step Functions do workflow.

Encadeia as quatro Lambdas de lambda_handlers.py. O retry do polling usa a
mesma RetryPolicy do orquestrador em processo: MaxAttempts da Step Function
conta apenas as novas tentativas, por isso vale max_attempts - 1.
"""
import math
from typing import Any, Dict, Optional

from export_pipeline.core.exceptions import ExportInProgressError
from export_pipeline.core.retry import RetryPolicy


STEP_ORDER = (
    ('start_export', 'StartExport'),
    ('check_export_state', 'CheckExportState'),
    ('create_athena_table', 'CreateAthenaTable'),
    ('create_athena_query', 'CreateAthenaQuery'),
)

FAILED_STATE = 'Failed'


def poll_retry_block(retry_policy: RetryPolicy) -> Dict[str, Any]:
    """Bloco Retry aplicado somente ao erro de exportação em andamento."""
    retry = {
        'ErrorEquals': [ExportInProgressError.__name__],
        'IntervalSeconds': max(1, int(math.ceil(retry_policy.interval_seconds))),
        'BackoffRate': float(retry_policy.backoff_rate),
        'MaxAttempts': retry_policy.max_attempts - 1,
    }
    if retry_policy.max_delay_seconds is not None:
        retry['MaxDelaySeconds'] = max(1, int(math.ceil(retry_policy.max_delay_seconds)))
    return retry


def build_state_machine_definition(
    function_arns: Dict[str, str],
    retry_policy: Optional[RetryPolicy] = None,
    task_timeout_seconds: int = 120,
    comment: str = 'DynamoDB export -> Athena table -> saved query'
) -> Dict[str, Any]:
    """
    Monta a definição da state machine.

    Args:
        function_arns: ARNs das Lambdas, chaves start_export, check_export_state,
            create_athena_table e create_athena_query
        retry_policy: Política do polling (padrão: 30s, fator 2, 10 tentativas)
        task_timeout_seconds: Timeout de cada tarefa
        comment: Comentário da state machine

    Returns:
        Dicionário ASL pronto para json.dumps
    """
    missing = [key for key, _ in STEP_ORDER if not function_arns.get(key)]
    if missing:
        raise ValueError(f"ARNs de função ausentes: {', '.join(missing)}")

    retry_policy = retry_policy or RetryPolicy()
    states: Dict[str, Any] = {}

    for index, (key, state_name) in enumerate(STEP_ORDER):
        state = {
            'Type': 'Task',
            'Resource': 'arn:aws:states:::lambda:invoke',
            'Parameters': {
                'FunctionName': function_arns[key],
                'Payload.$': '$',
            },
            'OutputPath': '$.Payload',
            'TimeoutSeconds': task_timeout_seconds,
            'Catch': [{
                'ErrorEquals': ['States.ALL'],
                'ResultPath': '$.error',
                'Next': FAILED_STATE,
            }],
        }
        if key == 'check_export_state':
            state['Retry'] = [poll_retry_block(retry_policy)]

        if index + 1 < len(STEP_ORDER):
            state['Next'] = STEP_ORDER[index + 1][1]
        else:
            state['End'] = True
        states[state_name] = state

    states[FAILED_STATE] = {
        'Type': 'Fail',
        'Error': 'ExportWorkflowFailed',
        'Cause': 'Uma etapa do workflow de exportação falhou',
    }

    return {
        'Comment': comment,
        'StartAt': STEP_ORDER[0][1],
        'States': states,
    }
