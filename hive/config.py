"""
Configuration management for hive
Environment-based configuration, optionally read from a .env file
"""
from typing import Dict

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False

    # Credential shared with the nodes. GITHUB_TOKEN is accepted as a fallback.
    hive_token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("hive_token", "github_token"),
    )

    # Dispatch Configuration
    hive_node_timeout_s: float = Field(default=10.0, gt=0)
    hive_offline_after: int = Field(default=3, ge=1)

    # Fleet Configuration
    hive_seed_defaults: bool = True
    hive_node_urls: str = ""  # comma-separated id=url pairs

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    def get_node_urls(self) -> Dict[str, str]:
        """Parse HIVE_NODE_URLS into a node id -> base URL mapping."""
        urls: Dict[str, str] = {}
        for pair in self.hive_node_urls.split(","):
            node_id, sep, url = pair.partition("=")
            if not sep or not node_id.strip() or not url.strip():
                continue
            urls[node_id.strip()] = url.strip()
        return urls


# Global settings instance
settings = Settings()
