"""Configurações da aplicação."""

from export_pipeline.config.settings import AppConfig, load_sql_template

__all__ = ['AppConfig', 'load_sql_template']
