"""Configuration management for the Imagegen service.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the IMAGEGEN_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (IMAGEGEN_* prefix)
2. .env file in the project root
3. Default values defined in ImageGenConfig

Example .env file:
    IMAGEGEN_BACKEND=base64
    IMAGEGEN_BACKEND_URL=https://api.runpod.ai/v2/<endpoint-id>/runsync
    IMAGEGEN_BACKEND_API_KEY=<secret>
    IMAGEGEN_RETRY_DELAY=2.0

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
It is the single source of truth for the server process; tests build their
own instances instead of mutating it.

Usage Example
-------------
    from imagegen.core.config import config

    print(config.backend)
    print(config.retry_attempts)

Backend Settings
----------------
- backend: which registered backend to instantiate at startup
  ("binary" returns raw image bytes, "base64" returns a JSON envelope)
- backend_url / backend_api_key: opaque to the core, forwarded as-is
- retry_attempts / retry_delay: fixed-delay retry policy for backend calls

Client Settings
---------------
The ``client_*`` fields and ``api_base_url`` configure
:class:`~imagegen.ui.session.SessionManager` when it is created from config.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ImageGenConfig(BaseSettings):
    """Main configuration for the Imagegen service.

    Attributes
    ----------
    Backend Settings:
        backend : Literal["binary", "base64"]
            Name of the inference backend registered in ``backend_registry``
        backend_url : str
            Endpoint URL of the hosted inference backend
        backend_api_key : SecretStr
            Bearer credential sent to the backend (never logged)
        request_timeout : float
            Per-attempt HTTP timeout in seconds
        base64_content_type : str
            Content type reported when a base64 payload's format has no
            registered MIME type

    Retry Policy:
        retry_attempts : int
            Total attempts per generation request (first call included)
        retry_delay : float
            Constant wait in seconds between attempts

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : str
            Root logging level used by ``imagegen.api.main.main``

    Client Settings:
        api_base_url : str
            Base URL of the Imagegen API used by the session client
        client_retry_attempts : int
            Attempts on HTTP 504 before the client reports a timeout
        client_retry_delay : float
            Constant wait in seconds between client retries

    Examples
    --------
    Create a custom configuration:

        >>> custom_config = ImageGenConfig(
        ...     backend="binary",
        ...     backend_url="http://localhost:8000/generate",
        ...     retry_delay=0.5,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IMAGEGEN_",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend settings
    backend: Literal["binary", "base64"] = Field(
        default="base64",
        description="Inference backend to use (binary or base64)",
    )
    backend_url: str = Field(
        default="http://localhost:8000/runsync",
        description="Endpoint URL of the hosted inference backend",
    )
    backend_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer credential for the inference backend",
    )
    request_timeout: float = Field(
        default=120.0,
        description="Per-attempt HTTP timeout in seconds",
        gt=0,
    )
    base64_content_type: Literal["image/jpeg", "image/png"] = Field(
        default="image/png",
        description="Fallback content type for base64 payloads",
    )

    # Retry policy
    retry_attempts: int = Field(
        default=3,
        description="Total attempts per backend call",
        ge=1,
        le=10,
    )
    retry_delay: float = Field(
        default=2.0,
        description="Constant delay in seconds between backend attempts",
        ge=0,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root logging level",
    )

    # Client settings
    api_base_url: str = Field(
        default="http://localhost:7860",
        description="Base URL of the Imagegen API for the session client",
    )
    client_retry_attempts: int = Field(
        default=3,
        description="Client attempts on gateway timeout (504)",
        ge=1,
        le=10,
    )
    client_retry_delay: float = Field(
        default=1.0,
        description="Constant delay in seconds between client retries",
        ge=0,
    )


# Global configuration instance
# Loads values from environment variables (IMAGEGEN_* prefix) and .env file.
config = ImageGenConfig()
