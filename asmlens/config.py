"""Per-workspace settings and the per-request context object.

Settings are JSON: user-level defaults under the platform config directory,
overridden by ``.asmlens.json`` in each workspace root. All access is
defensive: malformed or missing files and wrongly typed values fall back to
defaults.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir

from .symbols import DEFAULT_LABELS_EXCLUDES, ScannerOptions

APP_NAME = "asmlens"
CONFIG_FILENAME = "config.json"
WORKSPACE_CONFIG_FILENAME = ".asmlens.json"
USER_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

DEFAULT_INCLUDE_FILES = "**/*.{asm,inc,s,a80,list,lis}"


@dataclass(frozen=True)
class LensConfig:
    """Read-only settings for one workspace root."""

    root: Path
    include_files: str = DEFAULT_INCLUDE_FILES
    exclude_files: str = ""
    labels_excludes: tuple[str, ...] = DEFAULT_LABELS_EXCLUDES
    labels_with_colons: bool = True
    labels_without_colons: bool = True
    ca65_cheap_local_label_nesting: bool = False
    workspace_symbols_required_length: int = 2
    completions_required_length: int = 1
    skip_gitignored: bool = False
    enable_outline_view: bool = True
    enable_find_all_references: bool = True
    enable_goto_definition: bool = True
    enable_completions: bool = True
    enable_workspace_symbols: bool = True
    enable_rename: bool = True
    enable_code_lenses: bool = True
    enable_hovering: bool = True

    def is_excluded(self, label: str) -> bool:
        folded = label.casefold()
        return any(folded == exclude.casefold() for exclude in self.labels_excludes)

    def scanner_options(self, language: str) -> ScannerOptions:
        return ScannerOptions(
            language=language,
            labels_with_colons=self.labels_with_colons,
            labels_without_colons=self.labels_without_colons,
            nest_cheap_local_labels=self.ca65_cheap_local_label_nesting,
            labels_excludes=self.labels_excludes,
        )


_BOOL_KEYS = (
    "labels_with_colons",
    "labels_without_colons",
    "ca65_cheap_local_label_nesting",
    "skip_gitignored",
    "enable_outline_view",
    "enable_find_all_references",
    "enable_goto_definition",
    "enable_completions",
    "enable_workspace_symbols",
    "enable_rename",
    "enable_code_lenses",
    "enable_hovering",
)
_INT_KEYS = ("workspace_symbols_required_length", "completions_required_length")
_STR_KEYS = ("include_files", "exclude_files")


def _load_json(path: Path) -> dict[str, object]:
    """Load a JSON object, returning an empty dict for anything unusable."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def load_settings(root: Path) -> dict[str, object]:
    """Merge user-level settings with the workspace file for ``root``."""
    settings = _load_json(USER_CONFIG_PATH)
    settings.update(_load_json(root / WORKSPACE_CONFIG_FILENAME))
    return settings


def _coerce_nonnegative_int(value: object, default: int) -> int:
    """Booleans and non-integers are invalid and give ``default``."""
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return max(0, value)


def _coerce_labels(value: object) -> tuple[str, ...]:
    labels = list(DEFAULT_LABELS_EXCLUDES)
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str) and item and item not in labels:
                labels.append(item)
    return tuple(labels)


def config_from_settings(root: Path, settings: dict[str, object]) -> LensConfig:
    """Build a ``LensConfig``, ignoring unknown keys and wrongly typed values."""
    values: dict[str, object] = {}
    for key in _BOOL_KEYS:
        value = settings.get(key)
        if isinstance(value, bool):
            values[key] = value
    for key in _INT_KEYS:
        if key in settings:
            values[key] = _coerce_nonnegative_int(settings[key], getattr(LensConfig, key))
    for key in _STR_KEYS:
        value = settings.get(key)
        if isinstance(value, str):
            values[key] = value.strip()
    values["labels_excludes"] = _coerce_labels(settings.get("labels_excludes"))
    return LensConfig(root=root.resolve(), **values)


def load_lens_config(root: Path) -> LensConfig:
    return config_from_settings(root, load_settings(root))


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


@dataclass(frozen=True)
class LensContext:
    """Settings of every workspace root, built once and passed to each request.

    A change of settings or roots builds a new context; an existing one is
    never mutated.
    """

    configs: tuple[LensConfig, ...] = field(default_factory=tuple)

    @property
    def roots(self) -> list[Path]:
        return [config.root for config in self.configs]

    def config_for_path(self, path: Path) -> LensConfig | None:
        """Return the config of the innermost root containing ``path``."""
        resolved = path.resolve()
        best: LensConfig | None = None
        for config in self.configs:
            if not _is_within(resolved, config.root):
                continue
            if best is None or len(config.root.parts) > len(best.root.parts):
                best = config
        return best


def build_context(roots: Iterable[Path]) -> LensContext:
    """Load settings for each distinct root, keeping the given order."""
    configs: list[LensConfig] = []
    seen: set[Path] = set()
    for root in roots:
        resolved = root.resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        configs.append(load_lens_config(resolved))
    return LensContext(configs=tuple(configs))
