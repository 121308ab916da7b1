"""Named regex pattern catalog: built-in YAML data plus optional user catalogs."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

import yaml

from bytecarve.core.config import get_user_config_dir
from bytecarve.core.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamedPattern:
    name: str
    pattern: str
    description: str = ""
    is_builtin: bool = True


def get_builtin_patterns_path() -> Path:
    # Relative to this module
    return Path(__file__).parent.parent / "patterns" / "builtin.yaml"


def get_user_patterns_dir() -> Path:
    return get_user_config_dir() / "patterns"


def parse_catalog(text: str, *, is_builtin: bool, origin: str = "<string>") -> list[NamedPattern]:
    """Parse a catalog document of the form ``patterns: {name: {pattern, description}}``.

    A bare string value is accepted as the pattern itself.
    """
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid pattern catalog {origin}: {exc}") from exc
    entries = data.get("patterns", {}) if isinstance(data, dict) else None
    if not isinstance(entries, dict):
        raise ConfigError(f"Pattern catalog {origin} must define a 'patterns' mapping")

    result: list[NamedPattern] = []
    for name, entry in entries.items():
        if isinstance(entry, str):
            result.append(NamedPattern(str(name), entry, is_builtin=is_builtin))
        elif isinstance(entry, dict) and isinstance(entry.get("pattern"), str):
            result.append(
                NamedPattern(
                    name=str(name),
                    pattern=entry["pattern"].strip(),
                    description=str(entry.get("description", "")),
                    is_builtin=is_builtin,
                )
            )
        else:
            logger.warning("Skipping pattern '%s' in %s: no pattern text", name, origin)
    return result


class PatternCatalog(Mapping[str, NamedPattern]):
    """Read-only name -> pattern mapping, loaded once before scanning."""

    def __init__(self, entries: list[NamedPattern]) -> None:
        self._entries = MappingProxyType({e.name: e for e in entries})

    def __getitem__(self, name: str) -> NamedPattern:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, name_or_pattern: str) -> str:
        """Return the catalog pattern for a name, or the argument itself."""
        entry = self._entries.get(name_or_pattern)
        return entry.pattern if entry is not None else name_or_pattern

    def sorted_entries(self) -> list[NamedPattern]:
        return [self._entries[k] for k in sorted(self._entries)]


def load_catalog(
    builtin_path: Path | None = None, user_dir: Path | None = None
) -> PatternCatalog:
    """Load the built-in catalog, then user catalogs (user entries win by name)."""
    builtin_path = builtin_path or get_builtin_patterns_path()
    entries: dict[str, NamedPattern] = {}
    for entry in parse_catalog(
        builtin_path.read_text(encoding="utf-8"), is_builtin=True, origin=str(builtin_path)
    ):
        entries[entry.name] = entry

    user_dir = user_dir if user_dir is not None else get_user_patterns_dir()
    if user_dir.exists():
        for yaml_file in sorted(user_dir.glob("*.yaml")):
            try:
                user_entries = parse_catalog(
                    yaml_file.read_text(encoding="utf-8"), is_builtin=False, origin=str(yaml_file)
                )
            except (ConfigError, OSError) as exc:
                logger.warning("Skipping pattern catalog %s: %s", yaml_file, exc)
                continue
            for entry in user_entries:
                entries[entry.name] = entry

    return PatternCatalog(list(entries.values()))


def load_criteria_file(path: Path | str) -> list[str]:
    """Read one search string or regex per line; blank lines are dropped."""
    path = Path(path)
    lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    return [line for line in lines if line.strip()]
