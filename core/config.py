"""Configuration models and loading."""

import json
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.request_types import CONCRETE_PARTS, DEFAULT_PARTS, Part, keys_match

CONFIG_DIR = Path.home() / ".config" / "request-mutator"
CONFIG_FILE = CONFIG_DIR / "config.json"


class PartsConfigMatcher(BaseModel):
    """Match request fields by key name, key pattern or value pattern."""

    model_config = ConfigDict(populate_by_name=True)

    keys: list[str] = Field(default_factory=list)
    keys_regex: list[str] = Field(default_factory=list, alias="keys-regex")
    values_regex: list[str] = Field(default_factory=list, alias="values-regex")

    @field_validator("keys_regex", "values_regex")
    @classmethod
    def _compiles(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid pattern {pattern!r}: {e}") from e
        return patterns

    def matches(self, key: str, value: str) -> bool:
        if any(keys_match(key, candidate) for candidate in self.keys):
            return True
        if any(re.search(pattern, key) for pattern in self.keys_regex):
            return True
        return any(re.search(pattern, value) for pattern in self.values_regex)


class PartsConfig(BaseModel):
    """Allow / deny rules for the fields of one request part."""

    valid: PartsConfigMatcher | None = None
    invalid: PartsConfigMatcher | None = None

    def allows(self, key: str, value: str) -> bool:
        if self.invalid is not None and self.invalid.matches(key, value):
            return False
        return self.valid is None or self.valid.matches(key, value)


class AnalyzerOptions(BaseModel):
    """Options controlling which mutations are produced for a template."""

    model_config = ConfigDict(populate_by_name=True)

    # Suffixes appended to the original value of each field.
    append: list[str] = Field(default_factory=list)
    # Values that replace the original value of each field.
    replace: list[str] = Field(default_factory=list)
    # Maximum number of path segments for JSON/XML fields; 0 means no limit.
    max_depth: int = Field(default=0, ge=0, alias="max-depth")
    parts: list[Part] = Field(default_factory=list)
    parts_config: dict[Part, list[PartsConfig]] = Field(
        default_factory=dict, alias="parts-config"
    )

    def enabled_parts(self) -> list[Part]:
        """Resolve `parts` into concrete parts, in producer order.

        No parts (or `default`) selects everything except path and cookies;
        `all` selects every part; other values select exactly themselves.
        """
        requested = set(self.parts)
        if not requested:
            requested = {Part.DEFAULT}
        if Part.ALL in requested:
            return list(CONCRETE_PARTS)
        if Part.DEFAULT in requested:
            requested.update(DEFAULT_PARTS)
        return [part for part in CONCRETE_PARTS if part in requested]

    def allows(self, part: Part, key: str, value: str) -> bool:
        """Check the per-part rules for a single field."""
        return all(config.allows(key, value) for config in self.parts_config.get(part, []))


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8087


class TemplateSettings(BaseModel):
    # Scheme used for raw HTTP request files, which do not carry one.
    default_scheme: str = "https"


class SenderSettings(BaseModel):
    timeout: float = 30.0
    verify_tls: bool = True


class Config(BaseModel):
    analyzer: AnalyzerOptions = Field(default_factory=AnalyzerOptions)
    server: ServerSettings = Field(default_factory=ServerSettings)
    template: TemplateSettings = Field(default_factory=TemplateSettings)
    sender: SenderSettings = Field(default_factory=SenderSettings)


def load_config(config_file: Path = CONFIG_FILE) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2, by_alias=True))
        return default

    try:
        data = json.loads(config_file.read_text())
        return Config.model_validate(data)
    except (json.JSONDecodeError, ValidationError):
        # Backup corrupted config and recreate default
        backup = config_file.with_suffix(".json.bak")
        config_file.rename(backup)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2, by_alias=True))
        return default
