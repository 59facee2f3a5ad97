"""Configuration management for vaultfind."""

from pathlib import Path
from typing import Optional, List
import yaml
from loguru import logger
from pydantic import BaseModel, Field, field_validator


class SearchConfig(BaseModel):
    """Default flags used when a caller does not pass them explicitly."""
    regex: bool = False
    case_sensitive: bool = False
    ignore_front_matter: bool = True


class DocumentsConfig(BaseModel):
    extensions: List[str] = Field(default_factory=lambda: [".md"])
    exclude_dirs: List[str] = Field(
        default_factory=lambda: [".obsidian", ".git", ".trash"]
    )
    encoding: str = "utf-8"

    @field_validator('extensions')
    @classmethod
    def validate_extensions(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one document extension is required")
        return [ext if ext.startswith(".") else f".{ext}" for ext in v]


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[Path] = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        return v.upper()


class Config(BaseModel):
    """Main configuration for vaultfind."""

    vault_path: Path
    search: SearchConfig = Field(default_factory=SearchConfig)
    documents: DocumentsConfig = Field(default_factory=DocumentsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('vault_path')
    @classmethod
    def validate_vault_path(cls, v: Path) -> Path:
        if isinstance(v, str):
            v = Path(v)
        v = v.expanduser().resolve()
        if not v.exists():
            logger.warning(f"Vault path does not exist, will create: {v}")
            v.mkdir(parents=True, exist_ok=True)
        return v

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file."""
        if config_path is None:
            # Try default locations
            candidates = [
                Path("vaultfind.yaml"),
                Path.home() / ".config" / "vaultfind" / "config.yaml",
                Path("/etc/vaultfind/config.yaml"),
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break
            else:
                raise FileNotFoundError(
                    f"No config file found. Searched: {[str(c) for c in candidates]}"
                )

        logger.info(f"Loading config from: {config_path}")
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)
