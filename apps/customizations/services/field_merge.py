"""
apps.customizations.services.field_merge
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Field-level merge of a customization block over its vertical defaults.

For each key of *customization*:

* ``None`` and ``""`` are ignored, the default stays.
* a dict (not a list) is shallow-merged over the default's dict at that key.
* anything else, lists included, replaces the default.

Neither input is mutated.

Public API
----------
apply_customization(base, customization) -> dict
merge_items(base_items, custom_items) -> list[dict]
"""
from __future__ import annotations

import copy


def apply_customization(base: dict, customization: dict | None) -> dict:
    result = copy.deepcopy(base)
    if not customization:
        return result

    for key, value in customization.items():
        if value is None or value == "":
            continue
        if isinstance(value, dict):
            current = result.get(key)
            merged = dict(current) if isinstance(current, dict) else {}
            merged.update(copy.deepcopy(value))
            result[key] = merged
        else:
            result[key] = copy.deepcopy(value)
    return result


def merge_items(base_items: list[dict], custom_items: list[dict] | None) -> list[dict]:
    """
    Apply per-item overrides keyed by ``id``.

    Items keep the base order unless an override gives an explicit
    ``order``.  Overrides for ids the base does not declare are dropped.
    """
    overrides = {
        item["id"]: item
        for item in custom_items or []
        if isinstance(item, dict) and item.get("id")
    }

    merged = []
    for index, item in enumerate(base_items):
        entry = apply_customization(item, overrides.get(item["id"]))
        entry.setdefault("visible", True)
        entry.setdefault("order", index)
        merged.append(entry)
    return sorted(merged, key=lambda entry: entry["order"])
