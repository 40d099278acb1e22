"""YAML-based loader that builds a LatchSet from configuration.

Schema
------
::

    version: "1.0"
    settings:
      expand_patterns: true
    format:                         # optional; defaults to SOURCE::NOUN::VERB
      pattern: "^(?P<tenant>.+?)/(?P<action>.+)$"
      template: "{tenant}/{action}"
    members:
      - "acme-co::sales::all"
    grants:
      - requires: "acme-co::sales::all"
        members:
          - "acme-co::sales::{create,manage}"

Grants are applied in the order they appear, each one evaluated against
the members held at that point.

Example
-------
::

    loader = LatchSetLoader()
    latches = loader.load("/path/to/permissions.yaml")
    latches.has("acme-co::sales::create")
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from latch.errors import LatchConfigError, LatchError
from latch.handlers import RegexFormat
from latch.latch_set import LatchSet, LatchSetSettings

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])

MemberList = Union[str, list[str]]


def _as_list(value: MemberList) -> list[str]:
    return [value] if isinstance(value, str) else list(value)


class FormatConfig(BaseModel):
    """Custom grammar: a named-group regex plus a render template."""

    model_config = {"extra": "forbid"}

    pattern: str
    template: str
    expected: str | None = Field(default=None)

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, value: str) -> str:
        try:
            compiled = re.compile(value)
        except re.error as exc:
            raise ValueError(f"Invalid regular expression: {exc}") from exc
        if not compiled.groupindex:
            raise ValueError("Format pattern must contain at least one named group")
        return value


class GrantConfig(BaseModel):
    """A conditional grant: ``members`` are added if ``requires`` is held."""

    model_config = {"extra": "forbid"}

    requires: MemberList
    members: MemberList

    @property
    def required(self) -> list[str]:
        return _as_list(self.requires)

    @property
    def granted(self) -> list[str]:
        return _as_list(self.members)


class LatchSetConfig(BaseModel):
    """Validated body of a latch set configuration."""

    model_config = {"extra": "allow"}

    version: str = Field(default="1.0")
    settings: LatchSetSettings = Field(default_factory=LatchSetSettings)
    format: FormatConfig | None = Field(default=None)
    members: list[str] = Field(default_factory=list)
    grants: list[GrantConfig] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: Any) -> str:
        return str(value)


class LatchSetLoader:
    """Loads LatchSet configurations from YAML files, strings or dicts.

    Parameters
    ----------
    strict:
        When ``True``, unknown top-level keys are treated as an error.
        Default ``False`` (unknown keys are ignored).
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["version", "settings", "format", "members", "grants", "metadata", "description"]
    )

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict

    def load(self, config_path: str | Path) -> LatchSet:
        """Load a LatchSet from a YAML file on disk.

        Raises
        ------
        LatchConfigError
            If the file cannot be parsed or is structurally invalid.
        FileNotFoundError
            If the config file does not exist.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Latch config not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw: dict[str, Any] = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise LatchConfigError(f"Failed to parse YAML: {exc}", str(config_path)) from exc

        return self._build_set(raw, config_path=str(config_path))

    def load_from_dict(self, config: dict[str, Any], config_path: str | None = None) -> LatchSet:
        """Load a LatchSet from an already-parsed config dictionary."""
        return self._build_set(config, config_path=config_path)

    def load_from_yaml_string(self, yaml_string: str, config_path: str | None = None) -> LatchSet:
        """Load a LatchSet from a YAML string."""
        try:
            raw: dict[str, Any] = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise LatchConfigError(f"Failed to parse YAML string: {exc}", config_path) from exc
        return self._build_set(raw, config_path=config_path)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_set(self, raw: dict[str, Any], config_path: str | None = None) -> LatchSet:
        """Validate ``raw`` and replay its members and grants into a new set."""
        self._validate_structure(raw, config_path)

        try:
            config = LatchSetConfig.model_validate(raw)
        except ValidationError as exc:
            raise LatchConfigError(f"Invalid latch config: {exc}", config_path) from exc

        if config.version not in _SUPPORTED_VERSIONS:
            raise LatchConfigError(
                f"Unsupported config version {config.version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        latches = LatchSet(settings=config.settings)
        if config.format is not None:
            latches.set_format(
                RegexFormat(config.format.pattern, config.format.template, expected=config.format.expected)
            )

        try:
            latches.add(config.members)
        except LatchError as exc:
            raise LatchConfigError(f"Error in members: {exc}", config_path) from exc

        for index, grant in enumerate(config.grants):
            try:
                latches.grant(grant.required, grant.granted)
            except LatchError as exc:
                raise LatchConfigError(f"Error in grant at index {index}: {exc}", config_path) from exc

        logger.info(
            "Loaded %d latch(es) from %s (%d grant rule(s))",
            len(latches),
            config_path or "<dict>",
            len(config.grants),
        )
        return latches

    def _validate_structure(self, raw: dict[str, Any], config_path: str | None) -> None:
        """Validate top-level structure of the config dict."""
        if not isinstance(raw, dict):
            raise LatchConfigError("Latch config must be a YAML mapping (dict).", config_path)

        if self._strict:
            unknown_keys = set(raw.keys()) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise LatchConfigError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}. "
                    f"Known keys: {sorted(self._KNOWN_TOP_KEYS)}.",
                    config_path,
                )
