"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="eqms", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/eqms",
        description="Relational store connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    db_create_tables: bool = Field(
        default=True,
        description="Create tables on startup (development only)"
    )

    # ========== Escalation ==========
    escalation_policy_path: Path = Field(
        default=Path("escalation_policy.yaml"),
        description="Path to escalation policy defaults YAML file"
    )
    escalation_scheduler_enabled: bool = Field(
        default=True,
        description="Run the server-owned escalation sweep in-process"
    )
    escalation_sweep_interval: int = Field(
        default=30,
        description="Seconds between escalation sweeps",
        ge=1
    )
    sla_default_warning_seconds: int = Field(
        default=300,
        description="Warning threshold used when neither the SLA config nor the policy file sets one",
        ge=0
    )

    # ========== Authentication ==========
    auth_jwt_secret: str = Field(
        default="change-me",
        description="Shared secret used by the auth provider to sign access tokens"
    )
    auth_jwt_algorithm: str = Field(default="HS256", description="Access token signing algorithm")
    auth_jwt_audience: Optional[str] = Field(
        default="authenticated",
        description="Expected access token audience (None disables the check)"
    )

    # ========== E-mail (SMTP relay) ==========
    email_enabled: bool = Field(default=True, description="Send notification e-mails")
    smtp_host: Optional[str] = Field(default=None, description="SMTP relay host")
    smtp_port: int = Field(default=587, description="SMTP relay port", ge=1, le=65535)
    smtp_username: Optional[str] = Field(default=None, description="SMTP username")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_use_tls: bool = Field(default=False, description="Connect with implicit TLS")
    smtp_start_tls: bool = Field(default=True, description="Upgrade with STARTTLS")
    smtp_from_address: str = Field(
        default="eqms@localhost",
        description="Sender address for notification e-mails"
    )
    smtp_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for SMTP operations",
        ge=0.1,
        le=60
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    NEW = "new"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    ESCALATED_TIER1 = "escalated_tier1"
    ESCALATED_TIER2 = "escalated_tier2"
    ESCALATED_TIER3 = "escalated_tier3"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class UserRole(str, Enum):
    """Roles governing visibility and permitted mutations."""
    ADMIN = "admin"
    MANAGER = "manager"
    AGENT = "agent"
    USER = "user"


class UserStatus(str, Enum):
    """Account states; only active accounts may call the API."""
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


class SBUStatus(str, Enum):
    """Business unit states."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class Tier(str, Enum):
    """Escalation tiers staffed within an SBU."""
    TIER1 = "tier1"
    TIER2 = "tier2"
    TIER3 = "tier3"


class CountdownState(str, Enum):
    """Escalation countdown states."""
    COUNTING = "counting"
    WARNING = "warning"
    EXPIRED = "expired"
    PAUSED = "paused"
    UNKNOWN = "unknown"


# SLA policy key for tickets that are still NEW
OPEN_POLICY_KEY = "open"


# ========== Lists for validation ==========

VALID_STATUSES = [s.value for s in TicketStatus]
VALID_PRIORITIES = [p.value for p in TicketPriority]
VALID_ROLES = [r.value for r in UserRole]
VALID_TIERS = [t.value for t in Tier]
ASSIGNABLE_ROLES = frozenset({UserRole.AGENT, UserRole.MANAGER})

# Every status is keyed by its own value except NEW, which uses "open"
SLA_POLICY_KEYS = [OPEN_POLICY_KEY] + [
    s.value for s in TicketStatus if s is not TicketStatus.NEW
]
