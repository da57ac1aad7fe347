"""Prepper-backed configuration loader for legacytext.

Settings come from three layers, later ones winning:

1. ``legacytext.yaml`` files found by prepper's discovery rules.
2. A ``.env`` file in the working directory.
3. The process environment.

Only ``LEGACYTEXT_*`` names are read from any layer.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

from dotenv import dotenv_values
from prepper import (
    ConfigNotFound,
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .errors import ConfigurationError
from .structures import LegacySource

APP_NAME = "legacytext"
ENV_PREFIX = "LEGACYTEXT_"

_SOURCE_NAMES = {
    "text_rsc": LegacySource.TEXT_RSC,
    "faction_txt": LegacySource.FACTION_TXT,
}


class LegacyTextConfig(SchemaModel):
    """Schema describing all supported configuration options."""

    LEGACYTEXT_ARCHIVE: str | None = Field(
        default=None,
        description="Archive imported when the command line names none.",
    )
    LEGACYTEXT_SOURCE: Literal["text_rsc", "faction_txt"] | None = Field(
        default=None,
        description="Legacy source recorded on imported text groups. Unset keeps the archive's own.",
    )
    LEGACYTEXT_VERBOSE: bool = Field(default=False)

    @model_validator(mode="before")
    def _normalise_source(data: Any) -> Any:
        # Accept the file names too: "TEXT.RSC" -> "text_rsc".
        if isinstance(data, dict):
            raw_value = data.get("LEGACYTEXT_SOURCE")
            if isinstance(raw_value, str):
                normalized = (
                    raw_value.strip().lower().replace(".", "_").replace("-", "_")
                )
                data["LEGACYTEXT_SOURCE"] = normalized if normalized in _SOURCE_NAMES else None
        return data

    def legacy_source(self) -> LegacySource | None:
        if self.LEGACYTEXT_SOURCE is None:
            return None
        return _SOURCE_NAMES[self.LEGACYTEXT_SOURCE]


def _setting_names() -> frozenset[str]:
    return frozenset(
        name for name in LegacyTextConfig.__field_infos__ if name.startswith(ENV_PREFIX)
    )


def _merge_settings(
    target: dict[str, Any],
    values: Mapping[str, Any],
    *,
    provenance: ProvenanceRecorder,
    source: str,
    layer: str,
) -> None:
    known = _setting_names()
    settings = {name: value for name, value in values.items() if name in known}
    if settings:
        merge_layer(target, settings, provenance=provenance, source=source, layer=layer)


def _read_settings_files(
    base_dir: Path,
    provenance: ProvenanceRecorder,
) -> dict[str, Any]:
    settings: dict[str, Any] = {}
    for path, label in discover_file_paths(
        APP_NAME, "yaml", app_dir=base_dir, extra_paths=None
    ):
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise ConfigurationError(
                f"{path} must map LEGACYTEXT_* names to values."
            )
        _merge_settings(
            settings,
            parsed,
            provenance=provenance,
            source=_path_to_source(label, "yaml", path),
            layer="file",
        )
    return settings


def _read_environment(
    settings: dict[str, Any],
    base_dir: Path,
    provenance: ProvenanceRecorder,
) -> None:
    dotenv_path = base_dir / ".env"
    if dotenv_path.exists():
        for name, value in sorted(dotenv_values(dotenv_path).items()):
            if value is not None:
                _merge_settings(
                    settings,
                    {name: value},
                    provenance=provenance,
                    source=f"env:.env:{name}",
                    layer="env",
                )

    for name in sorted(_setting_names()):
        value = os.environ.get(name)
        if value is not None:
            _merge_settings(
                settings,
                {name: value},
                provenance=provenance,
                source=f"env:process:{name}",
                layer="env",
            )


def _describe_invalid_settings(entries: list[dict[str, Any]]) -> str:
    problems = []
    for entry in entries:
        path = entry.get("path") or []
        if isinstance(path, (list, tuple)):
            name = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            name = str(path)
        problem = str(entry.get("message") or entry.get("msg") or "invalid value")
        origin = entry.get("source")
        problems.append(
            f"{name or 'settings'}: {problem}" + (f" (from {origin})" if origin else "")
        )
    return "Invalid legacytext settings: " + "; ".join(problems)


@lru_cache(maxsize=1)
def _load_settings(app_dir: Path | None = None) -> LegacyTextConfig:
    """Read every settings layer once and cache the validated model."""

    base_dir = app_dir or Path.cwd()
    provenance = ProvenanceRecorder()
    try:
        settings = _read_settings_files(base_dir, provenance)
        _read_environment(settings, base_dir, provenance)
        # Every setting has a default, so no layers at all is valid.
        return LegacyTextConfig.validate(settings, provenance=provenance)
    except ConfigNotFound as exc:
        raise ConfigurationError(f"legacytext settings file not found: {exc}") from exc
    except IoError as exc:
        raise ConfigurationError(f"legacytext settings could not be read: {exc}") from exc
    except SchemaError as exc:
        raise ConfigurationError(f"legacytext settings schema is invalid: {exc}") from exc
    except ValidationError as exc:
        raise ConfigurationError(_describe_invalid_settings(exc.to_dict())) from exc


def get_settings(app_dir: Path | None = None) -> LegacyTextConfig:
    """Return the validated settings for typed access."""

    return _load_settings(app_dir=app_dir)
