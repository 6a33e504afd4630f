"""
Substituição de placeholders nos templates SQL.

A substituição é literal, global (todas as ocorrências) e feita em uma única
passada, de modo que a ordem dos tokens não importa e valores substituídos
não são reprocessados.
"""
import re
from typing import Dict

TABLE_NAME_TOKEN = 'table_name'
DATABASE_NAME_TOKEN = 'db_name'
EXPORT_ID_TOKEN = 'ddb-export-id'
S3_LOCATION_TOKEN = 's3_location'


def render_template(template: str, substitutions: Dict[str, str]) -> str:
    """
    Substitui todas as ocorrências de cada token pelo valor correspondente.

    Args:
        template: Texto com placeholders
        substitutions: Mapa token -> valor (valores None são ignorados)

    Returns:
        Texto renderizado
    """
    if template is None:
        raise ValueError("template não pode ser None")

    active = {token: str(value) for token, value in substitutions.items() if token and value is not None}
    if not active:
        return template

    # Tokens mais longos primeiro para que um token nunca engula parte de outro
    pattern = re.compile('|'.join(re.escape(token) for token in sorted(active, key=len, reverse=True)))
    return pattern.sub(lambda match: active[match.group(0)], template)


def build_substitutions(
    table_name: str = None,
    database_name: str = None,
    export_id: str = None,
    s3_location: str = None
) -> Dict[str, str]:
    """Monta o mapa de substituições com os tokens conhecidos."""
    return {
        TABLE_NAME_TOKEN: table_name,
        DATABASE_NAME_TOKEN: database_name,
        EXPORT_ID_TOKEN: export_id,
        S3_LOCATION_TOKEN: s3_location,
    }
