from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from wood_grain.manifest import GRAIN_IMAGE_SIZE_PX


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts True/False, 0/1 and the strings true/false/1/0/yes/no
    (case-insensitive). Anything else raises ValueError naming `path`.
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"Invalid boolean for {path}: {value!r}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
    raise ValueError(f"Invalid boolean for {path}: {value!r}")


def parse_int(value: Any, path: str) -> int:
    if value is None:
        raise ValueError(f"Invalid config value for {path}: None")
    if isinstance(value, bool):
        raise ValueError(f"Invalid config type for {path}: expected int, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid config value for {path}: must be an int") from exc
    raise ValueError(f"Invalid config type for {path}: expected int")


_SCHEMA: Mapping[str, Any] = {
    "strict": None,
    "paths": {"html": None, "images_dir": None, "manifest": None, "log_dir": None},
    "images": {"size_px": None, "jpeg_quality": None},
    "patch": {"backup": None, "overwrite": None},
}


def _collect_unknown_keys(mapping: Any, schema: Mapping[str, Any], *, prefix: str) -> list[str]:
    if not isinstance(mapping, Mapping):
        return []
    unknown: list[str] = []
    for key, value in mapping.items():
        dotted = f"{prefix}.{key}" if prefix else str(key)
        if key not in schema:
            unknown.append(dotted)
            continue
        subschema = schema[key]
        if isinstance(subschema, Mapping):
            unknown.extend(_collect_unknown_keys(value, subschema, prefix=dotted))
    return unknown


@dataclass(frozen=True)
class ToolConfig:
    html_path: str
    images_dir: str
    manifest_path: str | None
    log_dir: str
    image_size_px: int = GRAIN_IMAGE_SIZE_PX
    jpeg_quality: int = 90
    patch_backup: bool = True
    patch_overwrite: bool = False

    @staticmethod
    def from_dict(cfg: Mapping[str, Any], *, base_dir: str | None = None) -> tuple["ToolConfig", list[str]]:
        """
        Parse and validate configuration, returning (ToolConfig, warnings).

        Relative paths are resolved against `base_dir` (default: cwd).

        Raises:
            ValueError: if a key has the wrong type or an out-of-range value.
        """

        if not isinstance(cfg, Mapping):
            raise ValueError("Config must be a mapping")

        warnings: list[str] = []
        strict = parse_bool(cfg["strict"], "strict") if "strict" in cfg else False

        unknown = sorted(set(_collect_unknown_keys(cfg, _SCHEMA, prefix="")))
        if unknown:
            if strict:
                raise ValueError("Unknown config keys: " + ", ".join(unknown))
            warnings.extend(f"Unknown config key: {key}" for key in unknown)

        root = os.path.abspath(base_dir or os.getcwd())

        def section(name: str) -> Mapping[str, Any]:
            value = cfg.get(name)
            if value is None:
                return {}
            if not isinstance(value, Mapping):
                raise ValueError(f"Invalid config type for {name}: expected mapping")
            return value

        def path_value(key: str, default: str | None) -> str | None:
            raw = section("paths").get(key, default)
            if raw is None:
                return None
            if not isinstance(raw, str):
                raise ValueError(f"Invalid config type for paths.{key}: expected string")
            if not raw.strip():
                return None
            expanded = os.path.expandvars(os.path.expanduser(raw.strip()))
            return os.path.abspath(os.path.join(root, expanded))

        html_path = path_value("html", "index.html")
        images_dir = path_value("images_dir", "images")
        log_dir = path_value("log_dir", "logs")
        if html_path is None or images_dir is None or log_dir is None:
            raise ValueError("paths.html, paths.images_dir and paths.log_dir must not be empty")

        images = section("images")
        size_px = parse_int(images.get("size_px", GRAIN_IMAGE_SIZE_PX), "images.size_px")
        if size_px <= 0:
            raise ValueError("Invalid config value for images.size_px: must be > 0")
        quality = parse_int(images.get("jpeg_quality", 90), "images.jpeg_quality")
        if not 1 <= quality <= 95:
            raise ValueError("Invalid config value for images.jpeg_quality: must be between 1 and 95")

        patch = section("patch")
        config = ToolConfig(
            html_path=html_path,
            images_dir=images_dir,
            manifest_path=path_value("manifest", None),
            log_dir=log_dir,
            image_size_px=size_px,
            jpeg_quality=quality,
            patch_backup=parse_bool(patch.get("backup", True), "patch.backup"),
            patch_overwrite=parse_bool(patch.get("overwrite", False), "patch.overwrite"),
        )
        return config, warnings
