"""
apps.customizations.validators
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Shape validation for the five customization blocks.

Every block is an optional JSON object with a fixed set of keys.  ``None``
is accepted anywhere a value is expected and means "not customised".
List-valued keys hold objects identified by a non-blank ``id``.

This module is **pure Python** and can be exercised without a database.

Public API
----------
CustomizationValidator.validate(customization) -> None
"""
from __future__ import annotations

from datetime import datetime

from .exceptions import CustomizationValidationError
from .models import CONFIG_SECTIONS

#: A single validation error dict with "field", "code", and "message" keys.
ErrorDict = dict[str, str]


# ---------------------------------------------------------------------------
# Block shapes
# ---------------------------------------------------------------------------

_BLOCK_FIELDS: dict[str, dict[str, str]] = {
    "dashboard_config": {
        "title": "string",
        "subtitle": "string",
        "core_section_title": "string",
        "additional_section_title": "string",
    },
    "navigation_config": {
        "items": "list",
    },
    "branding_config": {
        "colors": "dict",
        "organization_name": "string",
        "logo_url": "string",
        "logo_format": "string",
        "logo_file_size": "integer",
        "logo_uploaded_at": "string",
    },
    "stats_config": {
        "cards": "list",
    },
    "department_config": {
        "departments": "list",
        "core_section_title": "string",
        "additional_section_title": "string",
    },
}

_ITEM_FIELDS: dict[str, dict[str, str]] = {
    "navigation_config.items": {
        "id": "string",
        "name": "string",
        "icon": "string",
        "visible": "boolean",
        "order": "integer",
    },
    "stats_config.cards": {
        "id": "string",
        "label": "string",
        "icon": "string",
        "color": "string",
        "metric_type": "string",
        "visible": "boolean",
        "order": "integer",
    },
    "department_config.departments": {
        "id": "string",
        "name": "string",
        "description": "string",
        "color": "string",
        "visible": "boolean",
        "order": "integer",
    },
}

_LOGO_FIELDS: dict[str, str] = {
    "logo_url": "string",
    "logo_format": "string",
    "logo_file_size": "integer",
    "logo_uploaded_at": "datetime",
}

_TYPE_CHECKERS: dict[str, type | tuple[type, ...]] = {
    "string": str,
    "boolean": bool,
    "list": list,
    "dict": dict,
    "datetime": (str, datetime),
}


def _type_matches(declared_type: str, value: object) -> bool:
    if value is None:
        return True
    if declared_type == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, _TYPE_CHECKERS[declared_type])


def _type_error(path: str, declared_type: str, value: object) -> ErrorDict:
    return {
        "field": path,
        "code": "type_mismatch",
        "message": f'"{path}" expects type "{declared_type}"; got {type(value).__name__}.',
    }


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

class CustomizationValidator:
    """
    Validates a partial customization dict before it is persisted.

    All rules are evaluated and all errors are accumulated before raising.
    Keys that are not blocks or logo columns are reported as unknown.
    """

    @staticmethod
    def validate(customization: dict) -> None:
        """
        Raises:
            CustomizationValidationError: With every problem found.
        """
        errors: list[ErrorDict] = []

        if not isinstance(customization, dict):
            raise CustomizationValidationError(
                [{"field": "", "code": "not_an_object", "message": "Customization must be a JSON object."}]
            )

        for key, value in customization.items():
            if key in CONFIG_SECTIONS:
                CustomizationValidator._validate_block(key, value, errors)
            elif key in _LOGO_FIELDS:
                if not _type_matches(_LOGO_FIELDS[key], value):
                    errors.append(_type_error(key, _LOGO_FIELDS[key], value))
            else:
                errors.append({
                    "field": key,
                    "code": "unknown_field",
                    "message": f'"{key}" is not a customization field.',
                })

        if errors:
            raise CustomizationValidationError(errors)

    @staticmethod
    def _validate_block(section: str, block: object, errors: list[ErrorDict]) -> None:
        if block is None:
            return
        if not isinstance(block, dict):
            errors.append({
                "field": section,
                "code": "not_an_object",
                "message": f'"{section}" must be a JSON object.',
            })
            return

        fields = _BLOCK_FIELDS[section]
        for key, value in block.items():
            path = f"{section}.{key}"
            if key not in fields:
                errors.append({
                    "field": path,
                    "code": "unknown_field",
                    "message": f'Field "{key}" does not exist in "{section}".',
                })
                continue
            if not _type_matches(fields[key], value):
                errors.append(_type_error(path, fields[key], value))
                continue
            if path in _ITEM_FIELDS and value:
                CustomizationValidator._validate_items(path, value, errors)

    @staticmethod
    def _validate_items(path: str, items: list, errors: list[ErrorDict]) -> None:
        fields = _ITEM_FIELDS[path]
        seen: set[str] = set()

        for index, item in enumerate(items):
            item_path = f"{path}[{index}]"
            if not isinstance(item, dict):
                errors.append({
                    "field": item_path,
                    "code": "not_an_object",
                    "message": f'"{item_path}" must be a JSON object.',
                })
                continue

            item_id = item.get("id")
            if not isinstance(item_id, str) or not item_id.strip():
                errors.append({
                    "field": f"{item_path}.id",
                    "code": "missing_id",
                    "message": f'"{item_path}" needs a non-blank "id".',
                })
            elif item_id in seen:
                errors.append({
                    "field": f"{item_path}.id",
                    "code": "duplicate_id",
                    "message": f'"{item_id}" appears more than once in "{path}".',
                })
            else:
                seen.add(item_id)

            for key, value in item.items():
                if key not in fields:
                    errors.append({
                        "field": f"{item_path}.{key}",
                        "code": "unknown_field",
                        "message": f'Field "{key}" is not allowed in "{path}" entries.',
                    })
                elif key != "id" and not _type_matches(fields[key], value):
                    errors.append(_type_error(f"{item_path}.{key}", fields[key], value))
