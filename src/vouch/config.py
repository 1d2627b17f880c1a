from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Mapping, TypeAlias
import tomllib

from vouch.analysis.matchers import join_custom_entries
from vouch.analysis.test_classifier import TestConventions
from vouch.exceptions import ConfigError
from vouch.ingest.python_ingest import DEFAULT_TEST_FILE_PATTERNS

DEFAULT_CONFIG_NAME = "vouch.toml"
PYPROJECT_NAME = "pyproject.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path, *, strict: bool = False) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if strict:
            raise ConfigError(f"config file not found: {path}") from None
        return {}
    except OSError as exc:
        if strict:
            raise ConfigError(f"config file unreadable: {path}: {exc}") from exc
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        if strict:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc
        return {}
    return data if isinstance(data, dict) else {}


def _tool_section(data: TomlTable) -> TomlTable:
    tool = data.get("tool", {})
    if not isinstance(tool, dict):
        return {}
    section = tool.get("vouch", {})
    return section if isinstance(section, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    """Read the first configuration source that exists.

    An explicit ``config_path`` must exist and parse. Otherwise ``vouch.toml``
    in ``root`` wins over ``[tool.vouch]`` in ``pyproject.toml``.
    """
    if config_path is not None:
        data = _load_toml(config_path, strict=True)
        if config_path.name == PYPROJECT_NAME:
            return _tool_section(data)
        return data
    base = root if root is not None else Path.cwd()
    data = _load_toml(base / DEFAULT_CONFIG_NAME)
    if data:
        return data
    return _tool_section(_load_toml(base / PYPROJECT_NAME))


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def _custom_methods(value: TomlValue) -> str:
    # entries are kept verbatim so malformed ones reach the compiler's warning
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return join_custom_entries(str(item) for item in value)
    return ""


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


@dataclass(frozen=True)
class CheckSettings:
    custom_assertion_methods: str = ""
    conventions: TestConventions = field(default_factory=TestConventions)
    test_file_patterns: tuple[str, ...] = DEFAULT_TEST_FILE_PATTERNS
    exclude: tuple[str, ...] = ()


def settings_from_table(table: Mapping[str, TomlValue]) -> CheckSettings:
    defaults = TestConventions()

    def names(key: str, fallback: tuple[str, ...]) -> tuple[str, ...]:
        if key not in table:
            return fallback
        return tuple(_normalize_name_list(table[key]))

    pytest_collection = (
        _as_bool(table["pytest_collection"])
        if "pytest_collection" in table
        else defaults.pytest_collection
    )
    conventions = TestConventions(
        test_markers=names("test_markers", defaults.test_markers),
        test_base_types=names("test_base_types", defaults.test_base_types),
        expected_exception_markers=names(
            "expected_exception_markers", defaults.expected_exception_markers
        ),
        expected_exception_keywords=names(
            "expected_exception_keywords", defaults.expected_exception_keywords
        ),
        pytest_collection=pytest_collection,
    )
    return CheckSettings(
        custom_assertion_methods=_custom_methods(table.get("custom_assertion_methods")),
        conventions=conventions,
        test_file_patterns=names("test_file_patterns", DEFAULT_TEST_FILE_PATTERNS),
        exclude=names("exclude", ()),
    )


def load_settings(
    root: Path | None = None,
    config_path: Path | None = None,
    overrides: TomlTable | None = None,
) -> CheckSettings:
    defaults = load_config(root=root, config_path=config_path)
    return settings_from_table(merge_payload(overrides or {}, defaults))
