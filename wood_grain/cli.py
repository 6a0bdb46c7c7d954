from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Sequence
from datetime import datetime

from wood_grain.config import ToolConfig
from wood_grain.foundation.config_io import load_config
from wood_grain.foundation.logging_utils import (
    close_operational_logger,
    setup_operational_logger,
    write_text_log,
)
from wood_grain.html_patch import PatchStatus, patch_html_file
from wood_grain.images import GrainImageError, ImageStatus, check_grain_images, prepare_grain_image
from wood_grain.manifest import SpeciesImageEntry, find_entry, species_needing_images, validate_entries
from wood_grain.manifest_io import (
    DEFAULT_JS_VARIABLE,
    load_manifest,
    manifest_to_records,
    write_manifest_js,
    write_manifest_json,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wood_grain", add_help=True)
    parser.add_argument("--config", default=None, help="Config file to load instead of config/config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List species that need a grain image")
    list_cmd.add_argument("--format", choices=("text", "json"), default="text")

    sub.add_parser("validate", help="Check the manifest for duplicate or misnamed entries")

    check = sub.add_parser("check-images", help="Check which grain images exist and are usable")
    check.add_argument("--images-dir", default=None)
    check.add_argument("--report", default=None, help="Also write the report to this file")

    patch = sub.add_parser("patch-html", help="Add grainImage properties to index.html")
    patch.add_argument("--html", default=None)
    patch.add_argument("--dry-run", action="store_true")
    patch.add_argument("--overwrite", action="store_true", help="Rewrite grainImage values that differ")
    patch.add_argument("--no-backup", action="store_true")

    prepare = sub.add_parser("prepare-image", help="Produce the grain image for one species")
    prepare.add_argument("species")
    prepare.add_argument("source", help="Local path, http(s) URL or data: URI")
    prepare.add_argument("--images-dir", default=None)

    export = sub.add_parser("export", help="Write the manifest as .json or .js")
    export.add_argument("--out", required=True)
    export.add_argument("--variable", default=DEFAULT_JS_VARIABLE)

    return parser


def _load_entries(config: ToolConfig) -> tuple[SpeciesImageEntry, ...]:
    if config.manifest_path:
        return load_manifest(config.manifest_path, size_px=config.image_size_px)
    return species_needing_images()


def _print(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.write("\n")


def _cmd_list(args: argparse.Namespace, entries: Sequence[SpeciesImageEntry]) -> int:
    if args.format == "json":
        _print(json.dumps(manifest_to_records(entries), ensure_ascii=False, indent=2))
        return 0
    width = max((len(entry.name) for entry in entries), default=0)
    for entry in entries:
        _print(f"{entry.name.ljust(width)}  {entry.filename}")
    return 0


def _cmd_validate(
    entries: Sequence[SpeciesImageEntry], config: ToolConfig, logger: logging.Logger
) -> int:
    problems = validate_entries(entries, size_px=config.image_size_px)
    for problem in problems:
        logger.error("Manifest problem: %s", problem)
    if problems:
        return 1
    logger.info("Manifest OK: %d species", len(entries))
    return 0


def _cmd_check_images(
    args: argparse.Namespace,
    entries: Sequence[SpeciesImageEntry],
    config: ToolConfig,
    logger: logging.Logger,
) -> int:
    images_dir = os.path.abspath(args.images_dir) if args.images_dir else config.images_dir
    checks = check_grain_images(entries, images_dir, expected_px=config.image_size_px)

    lines = []
    for check in checks:
        line = f"{check.status.value:<12} {check.entry.filename}"
        if check.detail:
            line += f"  ({check.detail})"
        lines.append(line)
        _print(line)

    ready = sum(1 for check in checks if check.status == ImageStatus.OK)
    logger.info("%d/%d grain images ready in %s", ready, len(checks), images_dir)
    if args.report:
        write_text_log(args.report, "\n".join(lines) + "\n")
        logger.debug("Report written: %s", args.report)
    return 0 if ready == len(checks) else 1


def _cmd_patch_html(
    args: argparse.Namespace,
    entries: Sequence[SpeciesImageEntry],
    config: ToolConfig,
    logger: logging.Logger,
) -> int:
    html_path = os.path.abspath(args.html) if args.html else config.html_path
    results = patch_html_file(
        html_path,
        entries,
        overwrite=args.overwrite or config.patch_overwrite,
        dry_run=args.dry_run,
        backup=config.patch_backup and not args.no_backup,
        logger=logger,
    )
    added = sum(1 for result in results if result.status == PatchStatus.ADDED)
    logger.info("%d grainImage properties added", added)
    return 0 if all(result.ok for result in results) else 1


def _cmd_prepare_image(
    args: argparse.Namespace,
    entries: Sequence[SpeciesImageEntry],
    config: ToolConfig,
    logger: logging.Logger,
) -> int:
    entry = find_entry(args.species, entries)
    if entry is None:
        logger.error("Species not in manifest: %s", args.species)
        return 1

    images_dir = os.path.abspath(args.images_dir) if args.images_dir else config.images_dir
    dest = os.path.join(images_dir, entry.filename)
    try:
        prepare_grain_image(
            args.source,
            dest,
            target_px=config.image_size_px,
            quality=config.jpeg_quality,
            logger=logger,
        )
    except (GrainImageError, OSError) as exc:
        logger.error("%s: %s", entry.name, exc)
        return 1
    return 0


def _cmd_export(
    args: argparse.Namespace, entries: Sequence[SpeciesImageEntry], logger: logging.Logger
) -> int:
    suffix = os.path.splitext(args.out)[1].lower()
    if suffix not in {".json", ".js"}:
        logger.error("Unsupported export format %r (use .json or .js)", suffix)
        return 2
    try:
        if suffix == ".json":
            write_manifest_json(entries, args.out)
        else:
            write_manifest_js(entries, args.out, variable=args.variable)
    except (ValueError, OSError) as exc:
        logger.error("Export failed: %s", exc)
        return 2
    logger.info("Wrote %d entries to %s", len(entries), args.out)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    try:
        cfg, meta = load_config(config_path=args.config)
        config, warnings = ToolConfig.from_dict(cfg, base_dir=meta["base_dir"])
    except (ValueError, FileNotFoundError) as exc:
        print(f"wood_grain: config error: {exc}", file=sys.stderr)
        return 2

    run_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{args.command}"
    logger, _log_file = setup_operational_logger(config.log_dir, run_id)
    try:
        logger.debug("Config loaded (%s): %s", meta["mode"], ", ".join(meta["paths"]))
        for warning in warnings:
            logger.warning(warning)

        try:
            entries = _load_entries(config)
        except (ValueError, FileNotFoundError) as exc:
            logger.error("Manifest error: %s", exc)
            return 2

        if args.command == "list":
            return _cmd_list(args, entries)
        if args.command == "validate":
            return _cmd_validate(entries, config, logger)
        if args.command == "check-images":
            return _cmd_check_images(args, entries, config, logger)
        if args.command == "patch-html":
            try:
                return _cmd_patch_html(args, entries, config, logger)
            except FileNotFoundError as exc:
                logger.error("%s", exc)
                return 2
        if args.command == "prepare-image":
            return _cmd_prepare_image(args, entries, config, logger)
        if args.command == "export":
            return _cmd_export(args, entries, logger)

        raise AssertionError(f"Unhandled command: {args.command}")
    finally:
        close_operational_logger(logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
