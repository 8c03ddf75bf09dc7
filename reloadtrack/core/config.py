"""Tracker settings, read from the environment or a .env file."""
import logging
import os
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "RELOADTRACK_"

# Named loggers of every reloadtrack component except the CascadeTracer,
# whose level follows trace_cascades.
PACKAGE_LOGGERS = [
    "DependencyTracker",
    "LoadTracker",
    "DependencyGraphWalker",
    "LoadedFileTable",
    "ExplicitDependencyTable",
    "EntityRegistrySnapshot",
    "ReactionHooks",
    "InMemoryRuntime",
    "PythonRuntime",
]


class TrackerSettings(BaseModel):
    """
    Settings for a DependencyTracker.

    load_once_paths: path prefixes whose units are executed but never
        associated with their entities (they are never reloaded).
    explicitly_unloadable: entity names removed by every forced reset.
    trace_cascades: record every nested removal in the CascadeTracer log.

    Loggers are shared by every tracker in the process, so `log_level` is
    process-wide: the tracker most recently built with explicit settings wins.
    """
    log_level: Union[int, str] = "INFO"
    trace_cascades: bool = False
    load_once_paths: List[str] = Field(default_factory=list)
    explicitly_unloadable: List[str] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: Union[int, str]) -> Union[int, str]:
        if isinstance(value, str):
            value = value.upper()
            if not isinstance(logging.getLevelName(value), int):
                raise ValueError(f"Unknown log level: {value}")
        return value

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "TrackerSettings":
        load_dotenv(dotenv_path)
        load_once = os.getenv(f"{ENV_PREFIX}LOAD_ONCE_PATHS", "")
        unloadable = os.getenv(f"{ENV_PREFIX}EXPLICITLY_UNLOADABLE", "")
        return cls(
            log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO"),
            trace_cascades=os.getenv(f"{ENV_PREFIX}TRACE_CASCADES", "").strip().lower() in {"1", "true", "yes", "on"},
            load_once_paths=[p for p in load_once.split(os.pathsep) if p],
            explicitly_unloadable=[n.strip() for n in unloadable.split(",") if n.strip()],
        )

    def apply_log_level(self) -> None:
        """Set `log_level` on every reloadtrack component logger."""
        for logger_name in PACKAGE_LOGGERS:
            logging.getLogger(logger_name).setLevel(self.log_level)
