"""Runtime settings, read from the environment."""

import os

from pydantic import BaseModel, Field


class Settings(BaseModel):
    database: str = "warehouse.json"
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    command_timeout: float = Field(default=10.0, gt=0)


def load_settings(**overrides) -> Settings:
    """Build settings from ``WAREHOUSE_*`` variables; explicit overrides win."""
    values = {
        "database": os.getenv("WAREHOUSE_DATABASE"),
        "host": os.getenv("WAREHOUSE_HOST"),
        "port": os.getenv("WAREHOUSE_PORT"),
        "command_timeout": os.getenv("WAREHOUSE_COMMAND_TIMEOUT"),
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return Settings(**{key: value for key, value in values.items() if value is not None})
