"""
Database configuration shared by every store.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class DatabaseConfig:
    """Connection settings for the PostgreSQL database"""

    # Defaults are for local development only - use env/secrets in production
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_database: str = "anomaly_detection"
    postgres_user: str = "postgres"
    postgres_password: str = ""
    connect_timeout: int = 10

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Build a config from POSTGRES_* environment variables"""
        defaults = cls()
        return cls(
            postgres_host=os.getenv("POSTGRES_HOST", defaults.postgres_host),
            postgres_port=int(os.getenv("POSTGRES_PORT", str(defaults.postgres_port))),
            postgres_database=os.getenv("POSTGRES_DB", defaults.postgres_database),
            postgres_user=os.getenv("POSTGRES_USER", defaults.postgres_user),
            postgres_password=os.getenv("POSTGRES_PASSWORD", defaults.postgres_password),
        )
