"""
Centralised application settings loaded from environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from sqlalchemy.engine import URL

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseSettings):
    # ── SQL Server (catalog source) ──────────────────────
    sqlserver_host: str = ""
    sqlserver_port: int = 1433
    sqlserver_database: str = ""
    sqlserver_user: str = ""
    sqlserver_password: str = ""
    sqlserver_driver: str = "ODBC Driver 18 for SQL Server"

    # ── Schema discovery ─────────────────────────────────
    catalog_query_timeout_s: int = 30
    catalog_parallel_queries: bool = True

    # ── App ──────────────────────────────────────────────
    log_level: str = "INFO"

    @property
    def is_database_configured(self) -> bool:
        return all((
            self.sqlserver_host,
            self.sqlserver_database,
            self.sqlserver_user,
            self.sqlserver_password,
        ))

    @property
    def database_url(self) -> URL:
        return URL.create(
            "mssql+pyodbc",
            username=self.sqlserver_user,
            password=self.sqlserver_password,
            host=self.sqlserver_host,
            port=self.sqlserver_port,
            database=self.sqlserver_database,
            query={
                "driver": self.sqlserver_driver,
                "Encrypt": "yes",
                "TrustServerCertificate": "yes",
            },
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
