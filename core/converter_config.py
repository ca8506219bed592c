"""Converter option loading and validation.

Options come from three places, later ones winning: built-in defaults, an
optional YAML/JSON options file, and ``CPP2CS_*`` environment variables.
Non-strict loading logs and falls back to defaults on bad input; strict
loading raises ``ConfigValidationError``.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "CPP2CS_"


class ConfigValidationError(RuntimeError):
    """Raised when strict option validation fails."""


@dataclass(frozen=True)
class ConverterOptions:
    """Options recognised by the conversion core."""

    preserve_comments: bool = True
    strict_overload_matching: bool = True
    emit_factory_extension: bool = True
    factory_method_names: tuple[str, ...] = ("GetInstance",)
    type_map: dict[str, str] = field(default_factory=dict)
    namespace_prefix: str = "Generated_"
    using_directives: tuple[str, ...] = ()
    encodings: tuple[str, ...] = ("utf-8-sig", "cp1252")
    syntax_check: bool = False
    max_workers: int = 4

    def to_dict(self) -> dict[str, Any]:
        return {
            "preserve_comments": self.preserve_comments,
            "strict_overload_matching": self.strict_overload_matching,
            "emit_factory_extension": self.emit_factory_extension,
            "factory_method_names": list(self.factory_method_names),
            "type_map": dict(sorted(self.type_map.items())),
            "namespace_prefix": self.namespace_prefix,
            "using_directives": list(self.using_directives),
            "encodings": list(self.encodings),
            "syntax_check": self.syntax_check,
            "max_workers": self.max_workers,
        }


_BOOL_KEYS = (
    "preserve_comments",
    "strict_overload_matching",
    "emit_factory_extension",
    "syntax_check",
)
_LIST_KEYS = ("factory_method_names", "using_directives", "encodings")

# camelCase spellings accepted as aliases.
_KEY_ALIASES = {
    "preserveComments": "preserve_comments",
    "strictOverloadMatching": "strict_overload_matching",
    "emitFactoryExtension": "emit_factory_extension",
    "factoryMethodNames": "factory_method_names",
    "typeMap": "type_map",
    "namespacePrefix": "namespace_prefix",
    "usingDirectives": "using_directives",
    "syntaxCheck": "syntax_check",
    "maxWorkers": "max_workers",
}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _fail(msg: str, strict: bool) -> None:
    if strict:
        raise ConfigValidationError(msg)
    logger.warning("%s; using default", msg)


def _coerce_bool(key: str, value: Any, strict: bool) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {
        "1", "true", "yes", "on", "0", "false", "no", "off",
    }:
        return value.strip().lower() in {"1", "true", "yes", "on"}
    _fail(f"Option '{key}' must be a boolean, got {value!r}", strict)
    return None


def _coerce_str_list(key: str, value: Any, strict: bool) -> Optional[tuple[str, ...]]:
    if isinstance(value, str):
        value = [item for item in value.split(",")]
    if not isinstance(value, (list, tuple)):
        _fail(f"Option '{key}' must be a list of strings", strict)
        return None
    items = tuple(str(item).strip() for item in value if str(item).strip())
    if key in ("factory_method_names", "encodings") and not items:
        _fail(f"Option '{key}' must not be empty", strict)
        return None
    return items


def options_from_mapping(
    payload: dict[str, Any],
    base: Optional[ConverterOptions] = None,
    strict: bool = False,
) -> ConverterOptions:
    """Build options from a plain mapping, validating each known key."""
    options = base or ConverterOptions()
    updates: dict[str, Any] = {}

    for raw_key, value in payload.items():
        key = _KEY_ALIASES.get(raw_key, raw_key)
        if key in _BOOL_KEYS:
            coerced = _coerce_bool(key, value, strict)
            if coerced is not None:
                updates[key] = coerced
        elif key in _LIST_KEYS:
            items = _coerce_str_list(key, value, strict)
            if items is not None:
                updates[key] = items
        elif key == "type_map":
            if not isinstance(value, dict):
                _fail("Option 'type_map' must be a mapping", strict)
                continue
            updates[key] = {str(k).strip(): str(v).strip() for k, v in value.items()}
        elif key == "namespace_prefix":
            updates[key] = str(value).strip()
        elif key == "max_workers":
            try:
                workers = int(value)
            except (TypeError, ValueError):
                _fail(f"Option 'max_workers' must be an integer, got {value!r}", strict)
                continue
            if workers < 1:
                _fail("Option 'max_workers' must be >= 1", strict)
                continue
            updates[key] = workers
        else:
            _fail(f"Unknown option '{raw_key}'", strict)

    return replace(options, **updates)


def load_options_file(path: str, strict: bool = False) -> dict[str, Any]:
    """Load an options file (YAML, or JSON by ``.json`` suffix).

    In non-strict mode this returns an empty dict on read/parse failures.
    """
    options_path = Path(path)
    try:
        text = options_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        msg = f"Options file not found: {path}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}

    try:
        if options_path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        msg = f"Failed to parse options file {path}: {exc}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}

    if payload is None:
        logger.info("Options file %s is empty; using defaults", path)
        return {}
    if not isinstance(payload, dict):
        msg = f"Unexpected options payload type: {type(payload).__name__}"
        if strict:
            raise ConfigValidationError(msg)
        logger.warning("%s; continuing with defaults", msg)
        return {}

    # Allow the options to live under a top-level ``converter`` section.
    section = payload.get("converter", payload)
    if not isinstance(section, dict):
        msg = "Options section 'converter' must be a mapping"
        if strict:
            raise ConfigValidationError(msg)
        logger.warning("%s; continuing with defaults", msg)
        return {}
    return section


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for key in _BOOL_KEYS:
        env_name = ENV_PREFIX + key.upper()
        if os.getenv(env_name) is not None:
            overrides[key] = _env_flag(env_name)
    for key in _LIST_KEYS + ("namespace_prefix", "max_workers"):
        raw = os.getenv(ENV_PREFIX + key.upper())
        if raw is not None:
            overrides[key] = raw
    return overrides


def resolve_strict_config_validation(default: bool = False) -> bool:
    """Resolve strict validation mode from ``CPP2CS_STRICT_CONFIG`` env."""
    return _env_flag(ENV_PREFIX + "STRICT_CONFIG", default=default)


def load_converter_options(
    path: Optional[str] = None,
    strict: Optional[bool] = None,
    use_env: bool = True,
) -> ConverterOptions:
    """Resolve converter options from defaults, file and environment."""
    if strict is None:
        strict = resolve_strict_config_validation()

    options = ConverterOptions()
    if path:
        options = options_from_mapping(load_options_file(path, strict=strict), options, strict=strict)
    if use_env:
        overrides = _env_overrides()
        if overrides:
            logger.debug("Applying environment overrides: %s", sorted(overrides))
            options = options_from_mapping(overrides, options, strict=strict)
    return options
