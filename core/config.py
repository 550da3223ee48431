"""
Configuration settings for the workflow node mapping service.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="detailed",
        description="Log output format: simple, detailed or json"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Mapping settings
    strict_mode: bool = Field(
        default=False,
        description="Fail the whole mapping run on unsupported node types or structural errors"
    )
    registry_overwrite_policy: str = Field(
        default="replace",
        description="What registering an existing node type does: replace, keep or error"
    )
    max_workflow_nodes: int = Field(
        default=500,
        description="Workflows larger than this are still mapped but flagged with a warning"
    )
    generated_python_version: str = Field(
        default=">=3.10",
        description="requires-python constraint written into generated projects"
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Create global settings instance
settings = Settings()
