"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "REDWING_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    page_size: int | None = None  # query Limit; None lets DynamoDB fill 1 MB pages


class RedisConfig(BaseSettings):
    """Redis configuration (focus locks)."""

    model_config = {"env_prefix": "REDWING_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = "redwing"


class EscalationConfig(BaseSettings):
    """Escalation protocol tuning."""

    model_config = {"env_prefix": "REDWING_ESCALATION_"}

    focus_ttl_seconds: int = 86400
    group_suffix: str = "@g.us"
    group_origin_agents: list[str] = ["GA"]
    audit_instruction_max_chars: int = 500
    stale_after_hours: int = 48


class TransportConfig(BaseSettings):
    """Push gateway used to reach requesters and authorities."""

    model_config = {"env_prefix": "REDWING_TRANSPORT_"}

    base_url: str = "http://localhost:8080"
    api_token: str = ""
    timeout: float = 10.0
    max_attempts: int = 3


class HistoryConfig(BaseSettings):
    """Conversation history sink configuration."""

    model_config = {"env_prefix": "REDWING_HISTORY_"}

    mask_sensitive: bool = True


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "REDWING_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"
    backend: Literal["memory", "aws"] = "memory"

    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    escalation: EscalationConfig = EscalationConfig()
    transport: TransportConfig = TransportConfig()
    history: HistoryConfig = HistoryConfig()
