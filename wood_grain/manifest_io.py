from __future__ import annotations

import json
import os
from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd
import yaml

from wood_grain.manifest import (
    GRAIN_IMAGE_SIZE_PX,
    SpeciesImageEntry,
    entry_for,
    validate_entries,
)

DEFAULT_JS_VARIABLE = "speciesNeedingImages"


def _check_manifest_path(path: str) -> str:
    manifest_path = str(path or "").strip()
    if not manifest_path:
        raise ValueError("Manifest path is required")
    if not os.path.exists(manifest_path):
        raise FileNotFoundError(f"Manifest not found: {manifest_path}")
    if os.path.isdir(manifest_path):
        raise ValueError(f"Manifest path is a directory: {manifest_path}")
    if os.path.getsize(manifest_path) == 0:
        raise ValueError(f"Manifest file is empty: {manifest_path}")
    return manifest_path


def _entry_from_mapping(item: Any, *, index: int, source: str, size_px: int) -> SpeciesImageEntry:
    if not isinstance(item, Mapping):
        raise ValueError(f"{source}: species[{index}] must be a mapping with a 'name' key")
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"{source}: species[{index}].name must be a non-empty string")
    filename = item.get("filename")
    if filename is None or (isinstance(filename, str) and not filename.strip()):
        return entry_for(name.strip(), size_px=size_px)
    if not isinstance(filename, str):
        raise ValueError(f"{source}: species[{index}].filename must be a string")
    return SpeciesImageEntry(name=name.strip(), filename=filename.strip())


def _load_csv_items(path: str) -> list[dict[str, Any]]:
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    column_map = {str(col).strip().lower(): col for col in df.columns}
    if "name" not in column_map:
        raise ValueError(f"{path}: manifest CSV requires a 'name' column (found: {list(df.columns)})")

    items: list[dict[str, Any]] = []
    for _, row in df.iterrows():
        name = str(row[column_map["name"]]).strip()
        if not name:
            continue
        filename = str(row[column_map["filename"]]).strip() if "filename" in column_map else ""
        items.append({"name": name, "filename": filename or None})
    return items


def _load_structured_items(path: str, payload: Any) -> list[Any]:
    if isinstance(payload, Mapping):
        payload = payload.get("species")
    if not isinstance(payload, list):
        raise ValueError(f"{path}: manifest must be a list of species or a mapping with a 'species' list")
    return payload


def load_manifest(path: str, *, size_px: int = GRAIN_IMAGE_SIZE_PX) -> tuple[SpeciesImageEntry, ...]:
    """
    Load a species manifest from disk.

    Supported formats (by suffix):
    - .csv: `name` column plus an optional `filename` column
    - .yaml/.yml: a list of {name, filename?} mappings, or {species: [...]}
    - .json: same shapes as YAML

    Missing filenames are derived from the species name. The loaded manifest
    must pass `validate_entries`; every problem is reported in one ValueError.
    """

    manifest_path = _check_manifest_path(path)
    suffix = os.path.splitext(manifest_path)[1].lower()

    if suffix == ".csv":
        items: list[Any] = _load_csv_items(manifest_path)
    elif suffix in {".yaml", ".yml"}:
        try:
            with open(manifest_path, "r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {manifest_path}: {exc}") from exc
        items = _load_structured_items(manifest_path, payload)
    elif suffix == ".json":
        try:
            with open(manifest_path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {manifest_path}: {exc}") from exc
        items = _load_structured_items(manifest_path, payload)
    else:
        raise ValueError(f"Unsupported manifest format {suffix!r}: {manifest_path}")

    entries = tuple(
        _entry_from_mapping(item, index=index, source=manifest_path, size_px=size_px)
        for index, item in enumerate(items)
    )
    if not entries:
        raise ValueError(f"Manifest contains no species: {manifest_path}")

    problems = validate_entries(entries, size_px=size_px)
    if problems:
        raise ValueError(f"Invalid manifest {manifest_path}:\n  - " + "\n  - ".join(problems))
    return entries


def manifest_to_records(entries: Iterable[SpeciesImageEntry]) -> list[dict[str, str]]:
    return [{"name": entry.name, "filename": entry.filename} for entry in entries]


def write_manifest_json(entries: Iterable[SpeciesImageEntry], path: str) -> str:
    text = json.dumps(manifest_to_records(entries), ensure_ascii=False, indent=2) + "\n"
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(text)
    return path


def write_manifest_js(
    entries: Iterable[SpeciesImageEntry],
    path: str,
    *,
    variable: str = DEFAULT_JS_VARIABLE,
) -> str:
    """Write the manifest as a script the page can include directly."""

    if not variable.isidentifier():
        raise ValueError(f"Invalid JavaScript variable name: {variable!r}")
    records = json.dumps(manifest_to_records(entries), ensure_ascii=False, indent=4)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(f"const {variable} = {records};\n")
    return path
