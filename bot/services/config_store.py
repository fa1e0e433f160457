from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

from core.models import (
    AuthorizationConfig,
    Branding,
    FieldSpec,
    FieldStyle,
    OptionSpec,
    PanelConfig,
    PanelMode,
)
from utils.constants import (
    DEFAULT_BUTTON_LABEL,
    DEFAULT_OPTION_LABEL,
    MAX_CUSTOM_ID,
    MAX_FORM_FIELDS,
    MAX_INPUT_LENGTH,
    MAX_SELECT_OPTIONS,
    MIN_INPUT_LENGTH,
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Per-field substitution policy for stored documents. A bad value never fails
# the whole document; it is replaced and reported in ParseResult.problems.
#   mode            anything but "dropdown" -> button
#   title/body      non-string -> PanelConfig default
#   buttonLabel     empty or non-string -> "Create ticket"
#   branding        used only when label and url are both non-empty strings
#   buttonForm      list or JSON list string; otherwise [] (first 5 kept)
#   options         list or JSON list string; otherwise [] (first 25 kept)
#   field.id        empty -> field_{n}; duplicates get a _{n} suffix
#   field.label     empty -> field id
#   field.maxLength clamped into [1, 4000]; unparseable -> unset
#   category id     unparseable -> unset (ticket creation reports it missing)
#   staff ids       unparseable entries dropped

_PARAGRAPH_STYLES = {"paragraph", "long"}
_DEFAULT_PANEL = PanelConfig()


@dataclass(slots=True)
class ParseResult(Generic[T]):
    value: T
    problems: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _as_snowflake(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _text(value: Any, default: str) -> str:
    if isinstance(value, str):
        return value.strip()
    return default


def _optional_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def clamp_max_length(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return max(MIN_INPUT_LENGTH, min(MAX_INPUT_LENGTH, parsed))


def _as_list(value: Any, name: str, problems: list[str]) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            problems.append(f"{name}: malformed JSON, using an empty list")
            return []
    if not isinstance(value, list):
        problems.append(f"{name}: expected a list, using an empty list")
        return []
    return value


def parse_fields(raw: Any, name: str, problems: list[str]) -> tuple[FieldSpec, ...]:
    rows = _as_list(raw, name, problems)
    fields: list[FieldSpec] = []
    seen: set[str] = set()
    for index, row in enumerate(rows[:MAX_FORM_FIELDS]):
        if not isinstance(row, dict):
            problems.append(f"{name}[{index}]: expected an object, skipped")
            continue
        field_id = _text(row.get("id"), "")[:MAX_CUSTOM_ID] or f"field_{index + 1}"
        if field_id in seen:
            field_id = f"{field_id[: MAX_CUSTOM_ID - 4]}_{index + 1}"
        seen.add(field_id)
        style = FieldStyle.PARAGRAPH if str(row.get("style", "")).lower() in _PARAGRAPH_STYLES else FieldStyle.SHORT
        fields.append(
            FieldSpec(
                id=field_id,
                label=_text(row.get("label"), "") or field_id,
                placeholder=_optional_text(row.get("placeholder")),
                required=_as_bool(row.get("required", False)),
                style=style,
                max_length=clamp_max_length(row.get("maxLength", row.get("max_length"))),
            )
        )
    return tuple(fields)


def parse_options(raw: Any, problems: list[str]) -> tuple[OptionSpec, ...]:
    rows = _as_list(raw, "options", problems)
    options: list[OptionSpec] = []
    for index, row in enumerate(rows[:MAX_SELECT_OPTIONS]):
        if not isinstance(row, dict):
            problems.append(f"options[{index}]: expected an object, replaced with a default option")
            row = {}
        options.append(
            OptionSpec(
                label=_text(row.get("label"), "") or DEFAULT_OPTION_LABEL,
                description=_optional_text(row.get("description")),
                emoji=_optional_text(row.get("emoji")),
                form=parse_fields(row.get("form"), f"options[{index}].form", problems),
            )
        )
    return tuple(options)


def parse_panel(raw: Any) -> ParseResult[PanelConfig]:
    if not isinstance(raw, dict):
        return ParseResult(value=_DEFAULT_PANEL, problems=["panel document is not an object, using defaults"])

    problems: list[str] = []
    branding_raw = raw.get("branding")
    branding = None
    if isinstance(branding_raw, dict):
        label = _optional_text(branding_raw.get("label"))
        url = _optional_text(branding_raw.get("url"))
        if label and url:
            branding = Branding(label=label, url=url)

    panel = PanelConfig(
        mode=PanelMode.DROPDOWN if str(raw.get("mode", "")).lower() == "dropdown" else PanelMode.BUTTON,
        title=_text(raw.get("title"), _DEFAULT_PANEL.title),
        body=_text(raw.get("body"), _DEFAULT_PANEL.body),
        button_label=_text(raw.get("buttonLabel"), "") or DEFAULT_BUTTON_LABEL,
        branding=branding,
        button_form=parse_fields(raw.get("buttonForm"), "buttonForm", problems),
        options=parse_options(raw.get("options"), problems),
    )
    return ParseResult(value=panel, problems=problems)


def parse_authorization(raw: Any) -> ParseResult[AuthorizationConfig]:
    if not isinstance(raw, dict):
        return ParseResult(value=AuthorizationConfig(), problems=["config document is not an object"])

    problems: list[str] = []
    category_raw = raw.get("destinationCategoryId", raw.get("supportCategoryId"))
    category_id = _as_snowflake(category_raw)
    if category_raw not in (None, "") and category_id is None:
        problems.append("destinationCategoryId: not a valid id")

    staff_raw = raw.get("staffGroupIds", raw.get("allowedRoleIds"))
    staff_ids: list[int] = []
    for value in _as_list(staff_raw, "staffGroupIds", problems):
        parsed = _as_snowflake(value)
        if parsed is None:
            problems.append(f"staffGroupIds: dropped invalid id {value!r}")
            continue
        if parsed not in staff_ids:
            staff_ids.append(parsed)
    legacy_role = _as_snowflake(raw.get("supportRoleId"))
    if legacy_role is not None and legacy_role not in staff_ids:
        staff_ids.append(legacy_role)

    return ParseResult(
        value=AuthorizationConfig(destination_category_id=category_id, staff_group_ids=tuple(staff_ids)),
        problems=problems,
    )


def _default_panel_document() -> dict[str, Any]:
    return {
        "mode": _DEFAULT_PANEL.mode.value,
        "title": _DEFAULT_PANEL.title,
        "body": _DEFAULT_PANEL.body,
        "buttonLabel": _DEFAULT_PANEL.button_label,
        "branding": {"label": "", "url": ""},
        "buttonForm": [],
        "options": [],
    }


class ConfigStore:
    def __init__(self, data_directory: Path, panel_ids: list[int] | tuple[int, ...] = (1, 2)) -> None:
        self.data_directory = data_directory
        self.panel_ids = tuple(panel_ids)

    def panel_path(self, panel_id: int) -> Path:
        return self.data_directory / f"panel{panel_id}.json"

    @property
    def config_path(self) -> Path:
        return self.data_directory / "config.json"

    def ensure_defaults(self) -> None:
        self.data_directory.mkdir(parents=True, exist_ok=True)
        for panel_id in self.panel_ids:
            path = self.panel_path(panel_id)
            if not path.exists():
                path.write_text(json.dumps(_default_panel_document(), indent=2), encoding="utf-8")
                LOGGER.info("Wrote default panel document %s", path)
        if not self.config_path.exists():
            self.config_path.write_text(
                json.dumps({"destinationCategoryId": "", "staffGroupIds": []}, indent=2),
                encoding="utf-8",
            )
            LOGGER.info("Wrote default config document %s", self.config_path)

    def _read_json(self, path: Path) -> tuple[Any, str | None]:
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle), None
        except FileNotFoundError:
            return None, f"{path.name}: missing"
        except (OSError, json.JSONDecodeError) as exc:
            return None, f"{path.name}: unreadable ({exc})"

    def load_panel(self, panel_id: int) -> ParseResult[PanelConfig]:
        raw, problem = self._read_json(self.panel_path(panel_id))
        result = parse_panel(raw) if problem is None else ParseResult(value=_DEFAULT_PANEL, problems=[problem])
        if not result.ok:
            LOGGER.warning("Panel %s document has problems: %s", panel_id, "; ".join(result.problems))
        return result

    def load_authorization(self) -> ParseResult[AuthorizationConfig]:
        raw, problem = self._read_json(self.config_path)
        result = parse_authorization(raw if problem is None else {})
        if problem is not None:
            result.problems.insert(0, problem)

        category_env = os.getenv("SUPPORT_CATEGORY_ID", "").strip()
        role_env = _as_snowflake(os.getenv("SUPPORT_ROLE_ID", "").strip())
        if category_env or role_env is not None:
            config = result.value
            category_id = _as_snowflake(category_env) if category_env else config.destination_category_id
            staff_ids = config.staff_group_ids
            if role_env is not None and role_env not in staff_ids:
                staff_ids = (*staff_ids, role_env)
            result.value = AuthorizationConfig(destination_category_id=category_id, staff_group_ids=staff_ids)

        if not result.ok:
            LOGGER.warning("Authorization config has problems: %s", "; ".join(result.problems))
        return result
