from __future__ import annotations

import logging
import pathlib
from typing import Dict

import pydantic

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingFormatter(pydantic.BaseModel):
    file_format: str = pydantic.Field(
        alias="format"
    )  # Avoid shadowing Python `format`


class LoggingHandler(pydantic.BaseModel):
    file_class: str = pydantic.Field(
        alias="class"
    )  # Avoid shadowing Python `class`
    level: str
    formatter: str
    filename: str | None = None

    @pydantic.field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v not in LOG_LEVELS:
            raise ValueError(f"Invalid logging level: {v}")
        return v


class LoggingRoot(pydantic.BaseModel):
    level: str
    handlers: list[str]

    @pydantic.field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v not in LOG_LEVELS:
            raise ValueError(f"Invalid logging level: {v}")
        return v


class LoggingConfig(pydantic.BaseModel):
    version: int = 1
    disable_existing_loggers: bool = False
    formatters: Dict[str, LoggingFormatter]
    handlers: Dict[str, LoggingHandler]
    root: LoggingRoot

    def to_dict_config(self) -> dict:
        """Render in the shape expected by `logging.config.dictConfig`."""
        config = self.model_dump(by_alias=True, exclude_none=True)
        return config


class AssemblyParameters(pydantic.BaseModel):
    # Minimum number of supporting evidence required to report an assembly
    min_support: int = pydantic.Field(default=2, ge=1)
    # Mapping quality assigned to assembly records
    min_mapq: float = pydantic.Field(default=10.0, ge=0)
    assembly_id_prefix: str = "asm"


class VariantCallingParameters(pydantic.BaseModel):
    max_concordant_fragment_size: int = pydantic.Field(default=500, ge=0)
    id_prefix: str = "svsweep"


class ExtractionParameters(pydantic.BaseModel):
    min_clip_length: int = pydantic.Field(default=5, ge=1)
    min_indel_size: int = pydantic.Field(default=10, ge=1)
    min_mapq: int = pydantic.Field(default=10, ge=0)


class SvSweepConfig(pydantic.BaseModel):
    assembly: AssemblyParameters = pydantic.Field(
        default_factory=AssemblyParameters
    )
    calling: VariantCallingParameters = pydantic.Field(
        default_factory=VariantCallingParameters
    )
    extraction: ExtractionParameters = pydantic.Field(
        default_factory=ExtractionParameters
    )
    logging: LoggingConfig | None = None


def load_config(path: pathlib.Path | None) -> SvSweepConfig:
    """Load a JSON configuration file; missing path yields the defaults."""
    if path is None:
        return SvSweepConfig()
    logger.info(f"Loading configuration from {path}")
    return SvSweepConfig.model_validate_json(path.read_text())
