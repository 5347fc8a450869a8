# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Configuration management using Pydantic Settings.

Registered relying-party clients are part of the settings object and are
handed to the client registry at startup instead of living in module state.
"""

from datetime import timedelta

from beartype import beartype
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseModel):
    """A relying-party application allowed to request identity assertions."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        validate_default=True,
    )

    id: str = Field(..., min_length=1, description="Opaque client identifier")
    secret: str | None = Field(
        default=None, description="Client secret, checked when the caller sends one"
    )
    name: str = Field(..., min_length=1, description="Display name")
    redirect_uris: list[str] = Field(
        ..., min_length=1, description="Exact redirect URIs the client may use"
    )
    active: bool = Field(default=True, description="Inactive clients are rejected")

    @field_validator("redirect_uris")
    @classmethod
    def validate_redirect_uris(cls: type["ClientConfig"], v: list[str]) -> list[str]:
        """Redirect URIs must be absolute http(s) URIs."""
        for uri in v:
            if not uri.startswith(("http://", "https://")):
                raise ValueError(f"Redirect URI must be absolute: {uri}")
        return v


class Settings(BaseSettings):
    """Application settings with immutable configuration."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        frozen=True,
        validate_default=True,
        extra="forbid",
    )

    # API Configuration
    app_name: str = Field(
        default="DID Connect",
        description="Application name",
        min_length=1,
    )
    api_host: str = Field(
        default="0.0.0.0",  # nosec B104 - containerized deployment binds all interfaces
        description="API host to bind to",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API port to bind to",
    )
    api_env: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="API environment",
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Root log level",
    )

    # Credential store
    credential_backend: str = Field(
        default="memory",
        pattern="^(memory|redis|postgres)$",
        description="Credential store backend",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
        min_length=1,
    )
    database_url: str = Field(
        default="postgresql://localhost:5432/did_connect",
        description="PostgreSQL connection URL",
        min_length=1,
    )
    database_pool_min: int = Field(
        default=2,
        ge=1,
        le=20,
        description="Minimum database pool size",
    )
    database_pool_max: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum database pool size",
    )
    database_command_timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=300.0,
        description="Query execution timeout in seconds",
    )
    sweep_interval_seconds: int = Field(
        default=300,
        ge=0,
        le=86400,
        description="Expired credential sweep interval; 0 disables the sweeper",
    )

    # Credential lifetimes
    code_ttl_seconds: int = Field(
        default=600,
        ge=30,
        le=3600,
        description="Authorization code lifetime in seconds",
    )
    token_ttl_seconds: int = Field(
        default=604800,
        ge=60,
        le=2592000,
        description="Access token lifetime in seconds",
    )

    # Identity ledger
    ledger_rpc_url: str = Field(
        default="https://ethereum-sepolia-rpc.publicnode.com",
        description="JSON-RPC endpoint of the ledger node",
        min_length=1,
    )
    ledger_contract_address: str = Field(
        default="0xaF52fF3fe18434226749f2CC8652900Cb7f23937",
        pattern="^0x[0-9a-fA-F]{40}$",
        description="Address of the DID profile contract",
    )
    ledger_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=60.0,
        description="Upper bound for a single ledger read",
    )

    # Flow endpoints owned by the login UI
    login_url: str = Field(
        default="/auth",
        description="Login page that receives the authorization handoff",
        min_length=1,
    )
    error_url: str = Field(
        default="/auth/error",
        description="Page that renders authorization errors",
        min_length=1,
    )

    # Registered relying parties
    clients: list[ClientConfig] = Field(
        default_factory=list,
        description="Registered clients (JSON list in the CLIENTS variable)",
    )

    @field_validator("database_pool_max")
    @classmethod
    def validate_pool_sizes(cls: type["Settings"], v: int, info: ValidationInfo) -> int:
        """Ensure pool max is greater than pool min."""
        min_size = info.data.get("database_pool_min")
        if min_size is not None and v < min_size:
            raise ValueError(
                f"database_pool_max ({v}) must be >= database_pool_min ({min_size})"
            )
        return v

    @field_validator("clients")
    @classmethod
    def validate_unique_clients(
        cls: type["Settings"], v: list[ClientConfig]
    ) -> list[ClientConfig]:
        """Client ids must be unique."""
        seen: set[str] = set()
        for client in v:
            if client.id in seen:
                raise ValueError(f"Duplicate client id: {client.id}")
            seen.add(client.id)
        return v

    @property
    @beartype
    def is_production(self) -> bool:
        return self.api_env == "production"

    @property
    @beartype
    def is_development(self) -> bool:
        return self.api_env == "development"

    @property
    @beartype
    def code_ttl(self) -> timedelta:
        return timedelta(seconds=self.code_ttl_seconds)

    @property
    @beartype
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.token_ttl_seconds)


_settings: Settings | None = None


@beartype
def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


@beartype
def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    global _settings
    _settings = None
