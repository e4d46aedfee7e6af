# ============================================================================
# livescene/base/config.py
# Application Configuration Management
# ============================================================================
#
# PURPOSE:
# All tunable settings of the scene engine: which document extensions are
# recognized, the reserved attribute names the assembler treats specially,
# how the host tick reacts to failures, and how logging is set up.
#
# KEY CONCEPTS:
# 1. Frozen dataclasses per section, one master SceneConfig
# 2. Environment variables (LIVESCENE_*) override defaults via from_env()
# 3. One shared config per process via get_config()/set_config()
#
# ============================================================================

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


# ============================================================================
# Document Configuration
# ============================================================================

@dataclass(frozen=True)
class DocumentConfig:
    # File extensions loadable as scene documents (without the dot)
    extensions: tuple = ("html",)

    # Base directory that relative document/reference paths resolve against
    root_dir: Path = field(default_factory=Path.cwd)

    # Text encoding of document files
    encoding: str = "utf-8"


# ============================================================================
# Assembly Configuration
# ============================================================================
# Reserved attribute names bypass the type registry entirely.

@dataclass(frozen=True)
class AssemblyConfig:
    # Attribute whose value is assigned to the tag's own type
    placeholder_attribute: str = "x"

    # Tag/attribute name that is a pure identity marker (no facet)
    null_tag: str = "Entity"

    # Attribute accumulating the text style for this element's text content
    text_style_attribute: str = "TextStyle"

    # Unknown keys in a struct-shaped value: False = reject, True = skip with a warning
    ignore_unknown_fields: bool = False

    # Nesting limit for templates expanding into other templates
    max_template_depth: int = 16


# ============================================================================
# Host Configuration
# ============================================================================

@dataclass(frozen=True)
class HostConfig:
    # Re-raise assembly failures out of SceneRuntime.tick() instead of logging them
    fail_fast: bool = False

    # Bound on pending-document rounds per tick (includes that pull in includes)
    max_assembly_rounds: int = 8


# ============================================================================
# Logging Configuration
# ============================================================================

@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    # Optional log file; None = console only
    file_path: Optional[Path] = None
    max_file_size_mb: int = 10
    backup_count: int = 5


# ============================================================================
# Master Configuration Container
# ============================================================================

@dataclass(frozen=True)
class SceneConfig:
    document: DocumentConfig = field(default_factory=DocumentConfig)
    assembly: AssemblyConfig = field(default_factory=AssemblyConfig)
    host: HostConfig = field(default_factory=HostConfig)
    log: LogConfig = field(default_factory=LogConfig)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "SceneConfig":
        extensions_str = os.getenv("LIVESCENE_DOCUMENT_EXTENSIONS", "")
        extensions = tuple(e.strip().lstrip(".") for e in extensions_str.split(",") if e.strip()) or ("html",)

        document = DocumentConfig(
            extensions=extensions,
            root_dir=Path(os.getenv("LIVESCENE_DOCUMENT_ROOT", str(Path.cwd()))),
            encoding=os.getenv("LIVESCENE_DOCUMENT_ENCODING", "utf-8"),
        )

        assembly = AssemblyConfig(
            placeholder_attribute=os.getenv("LIVESCENE_PLACEHOLDER_ATTRIBUTE", "x"),
            null_tag=os.getenv("LIVESCENE_NULL_TAG", "Entity"),
            text_style_attribute=os.getenv("LIVESCENE_TEXT_STYLE_ATTRIBUTE", "TextStyle"),
            ignore_unknown_fields=_env_flag("LIVESCENE_IGNORE_UNKNOWN_FIELDS", "false"),
            max_template_depth=int(os.getenv("LIVESCENE_MAX_TEMPLATE_DEPTH", "16")),
        )

        host = HostConfig(
            fail_fast=_env_flag("LIVESCENE_FAIL_FAST", "false"),
            max_assembly_rounds=int(os.getenv("LIVESCENE_MAX_ASSEMBLY_ROUNDS", "8")),
        )

        log_file = os.getenv("LIVESCENE_LOG_FILE")
        log = LogConfig(
            level=os.getenv("LIVESCENE_LOG_LEVEL", "INFO"),
            file_path=Path(log_file) if log_file else None,
        )

        return cls(
            document=document,
            assembly=assembly,
            host=host,
            log=log,
            debug=_env_flag("LIVESCENE_DEBUG", "false"),
        )


# ============================================================================
# Global Configuration Singleton
# ============================================================================

_config: Optional[SceneConfig] = None


def get_config() -> SceneConfig:
    """
    Get the global configuration instance.

    Returns:
        The shared SceneConfig (loaded from the environment on first use)
    """
    global _config
    if _config is None:
        _config = SceneConfig.from_env()
    return _config


def set_config(config: Optional[SceneConfig]) -> None:
    """Replace the global configuration (None forces a reload from the environment)."""
    global _config
    _config = config


def setup_logging(config: Optional[SceneConfig] = None) -> None:
    """
    Configure Python's logging system based on our settings.

    Console handler always; a rotating file handler when a log file is set.
    """
    cfg = config or get_config()

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if cfg.log.file_path is not None:
        from logging.handlers import RotatingFileHandler
        cfg.log.file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            cfg.log.file_path,
            maxBytes=cfg.log.max_file_size_mb * 1024 * 1024,
            backupCount=cfg.log.backup_count,
        )
        handlers.append(file_handler)

    level = "DEBUG" if cfg.debug else cfg.log.level
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=cfg.log.format,
        handlers=handlers,
        force=True,
    )
