import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

_CONFIG_PATH = os.getenv("NODEDNS_CONFIG", "config.toml")
_ENV_PATH = os.getenv("NODEDNS_ENV", ".env")


class Route53Settings(BaseModel):
    hosted_zone_id: str = ""
    region: Optional[str] = None
    profile: Optional[str] = None


class ManifestSettings(BaseModel):
    # url takes precedence over path when both are set
    url: Optional[str] = None
    path: Optional[Path] = None
    timeout: int = 10


class ReconcileSettings(BaseModel):
    enabled: bool = False
    interval_seconds: int = 300


class AuditSettings(BaseModel):
    enabled: bool = True
    log_file: str = "operations.log"
    log_request_body: bool = True
    max_body_size: int = 10240  # 10KB
    sensitive_fields: list[str] = ["revocation_secret", "secret", "token", "key"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NODEDNS_",
        env_nested_delimiter="__",
        toml_file=_CONFIG_PATH,
        env_file=_ENV_PATH,
    )

    database_url: str = "sqlite:///nodes.db"
    base_domain: str = "nodes.example.com"
    node_ttl: int = 3600
    alias_ttl: int = 300

    host: str = "0.0.0.0"
    port: int = 8000
    trust_forwarded_for: bool = False
    logs_dir: Path = Field(default=Path("logs"))

    route53: Route53Settings = Field(default_factory=Route53Settings)
    manifest: ManifestSettings = Field(default_factory=ManifestSettings)
    reconcile: ReconcileSettings = Field(default_factory=ReconcileSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: init args > OS env > .env > config.toml > secrets
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()
