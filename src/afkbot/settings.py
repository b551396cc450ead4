# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application settings."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from afkbot import constants


class SessionConfig(BaseModel):
    """Where and as whom the session client connects. Immutable once loaded."""

    host: str
    port: int
    username: str
    version: str
    auth: str

    model_config = ConfigDict(frozen=True)


class Settings(BaseSettings):
    # The bare SERVER_*/BOT_*/MC_* names are what hosting panels already export.
    host: str = Field(
        default=constants.DEFAULT_HOST,
        validation_alias=AliasChoices("AFKBOT_HOST", "SERVER_HOST"),
    )
    port: int = Field(
        default=constants.DEFAULT_PORT,
        validation_alias=AliasChoices("AFKBOT_PORT", "SERVER_PORT"),
    )
    username: str = Field(
        default=constants.DEFAULT_USERNAME,
        validation_alias=AliasChoices("AFKBOT_USERNAME", "BOT_USERNAME"),
    )
    version: str = Field(
        default=constants.DEFAULT_VERSION,
        validation_alias=AliasChoices("AFKBOT_VERSION", "MC_VERSION"),
    )
    auth: str = constants.DEFAULT_AUTH

    max_attempts: int = Field(default=constants.DEFAULT_MAX_ATTEMPTS, ge=0)
    base_delay_s: float = Field(default=constants.DEFAULT_BASE_DELAY_S, gt=0)
    cap_delay_s: float = Field(default=constants.DEFAULT_CAP_DELAY_S, gt=0)
    connect_timeout_s: float = Field(default=constants.DEFAULT_CONNECT_TIMEOUT_S, gt=0)

    activity_interval_s: float = Field(default=constants.DEFAULT_ACTIVITY_INTERVAL_S, gt=0)
    heartbeat_interval_s: float = Field(default=constants.DEFAULT_HEARTBEAT_INTERVAL_S, gt=0)
    shutdown_timeout_s: float = Field(default=constants.DEFAULT_SHUTDOWN_TIMEOUT_S, gt=0)

    status_host: str = constants.STATUS_HOST
    status_port: int = constants.STATUS_PORT
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    # "module:callable" returning a SessionClient; None uses the TCP probe client.
    client_factory: str | None = None
    chaos_fail_every: int = Field(default=0, ge=0)
    chaos_kick_after_s: float | None = None

    model_config = SettingsConfigDict(
        env_prefix="AFKBOT_",
        extra="ignore",
        populate_by_name=True,
    )

    def session_config(self) -> SessionConfig:
        return SessionConfig(
            host=self.host,
            port=self.port,
            username=self.username,
            version=self.version,
            auth=self.auth,
        )
