# src/neogm/config.py
"""
Connection settings for neogm.

Values come from ``NEO4J_*`` environment variables, optionally loaded from a
``.env`` file in the working directory.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Neo4jSettings(BaseSettings):
    """Neo4j connection settings (``NEO4J_URI``, ``NEO4J_USER``, ...)."""

    uri: str = Field(default="bolt://localhost:7687", description="Bolt/neo4j URI")
    user: str = Field(default="neo4j", description="Username for basic auth")
    password: str = Field(default="password", description="Password for basic auth")
    database: str = Field(default="neo4j", description="Default database for sessions")
    user_agent: str = Field(default="neogm/0.3.0", description="Driver user agent")

    model_config = SettingsConfigDict(
        env_prefix="NEO4J_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def auth(self) -> tuple[str, str]:
        """Basic auth tuple accepted by the driver."""
        return (self.user, self.password)
