"""Add `grainImage` properties to the species records in index.html.

The page declares each wood species as a JavaScript object literal, e.g.::

    name: "Ash",
    ...
    grainPattern: "linear-gradient(45deg, #d4a574 0%, #c89660 25%, ...)",

Once the photo exists, the record keeps its CSS gradient as a fallback and gains
a property on the next line with the same indentation::

    grainPattern: "linear-gradient(45deg, #d4a574 0%, #c89660 25%, ...)",
    grainImage: "ash_400.jpg",

A record spans from its `name:` key to the next `name:` key in the file. When a
species name appears more than once, the first record that carries a
`grainPattern` (or an existing `grainImage`) is the one patched.
"""

from __future__ import annotations

import enum
import logging
import os
import re
import shutil
from collections.abc import Iterable
from dataclasses import dataclass

from wood_grain.manifest import SpeciesImageEntry


def _key_re(key: str) -> str:
    return rf"""(?<![\w$])["']?{key}["']?\s*:\s*"""


_STRING_VALUE = r"""(?P<quote>["'])(?P<value>(?:\\.|(?!(?P=quote)).)*)(?P=quote)"""

_NAME_RE = re.compile(_key_re("name") + _STRING_VALUE)
_GRAIN_PATTERN_RE = re.compile(_key_re("grainPattern") + _STRING_VALUE + r"(?P<comma>[ \t]*,)?")
_GRAIN_IMAGE_RE = re.compile(_key_re("grainImage") + _STRING_VALUE)


class PatchStatus(str, enum.Enum):
    ADDED = "added"
    ALREADY_PRESENT = "already_present"
    UPDATED = "updated"
    SPECIES_NOT_FOUND = "species_not_found"
    PATTERN_NOT_FOUND = "pattern_not_found"


@dataclass(frozen=True)
class PatchResult:
    species: str
    filename: str
    status: PatchStatus
    line_number: int | None = None

    @property
    def ok(self) -> bool:
        return self.status not in {PatchStatus.SPECIES_NOT_FOUND, PatchStatus.PATTERN_NOT_FOUND}


def _line_number(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _line_indent(text: str, offset: int) -> str:
    line_start = text.rfind("\n", 0, offset) + 1
    line = text[line_start:offset]
    return line[: len(line) - len(line.lstrip())]


def _record_spans(text: str, species: str) -> list[tuple[int, int]]:
    names = list(_NAME_RE.finditer(text))
    spans = []
    for index, match in enumerate(names):
        if match.group("value").strip() == species:
            end = names[index + 1].start() if index + 1 < len(names) else len(text)
            spans.append((match.end(), end))
    return spans


def _patch_one(
    text: str, entry: SpeciesImageEntry, *, newline: str, overwrite: bool
) -> tuple[str, PatchResult]:
    spans = _record_spans(text, entry.name)
    if not spans:
        return text, PatchResult(entry.name, entry.filename, PatchStatus.SPECIES_NOT_FOUND)

    # the same name can appear in other lists (dropdown options) before the species data
    for start, end in spans:
        existing = _GRAIN_IMAGE_RE.search(text, start, end)
        pattern = _GRAIN_PATTERN_RE.search(text, start, end)
        if existing is not None or pattern is not None:
            break
    else:
        return text, PatchResult(entry.name, entry.filename, PatchStatus.PATTERN_NOT_FOUND)

    if existing is not None:
        line = _line_number(text, existing.start())
        if not overwrite or existing.group("value") == entry.filename:
            return text, PatchResult(entry.name, entry.filename, PatchStatus.ALREADY_PRESENT, line)
        text = text[: existing.start("value")] + entry.filename + text[existing.end("value") :]
        return text, PatchResult(entry.name, entry.filename, PatchStatus.UPDATED, line)

    quote = pattern.group("quote")
    prop = f"grainImage: {quote}{entry.filename}{quote},"
    insert_at = pattern.end()
    # last property in the record: the pattern needs a separator now
    separator = "" if pattern.group("comma") else ","

    line_end = text.find("\n", insert_at)
    eol = len(text) if line_end == -1 else line_end
    if eol > insert_at and text[eol - 1] == "\r":
        eol -= 1
    rest_of_line = text[insert_at:eol]

    if rest_of_line.strip():
        patched = text[:insert_at] + separator + " " + prop + text[insert_at:]
        line = _line_number(text, insert_at)
    else:
        indent = _line_indent(text, pattern.start())
        patched = text[:insert_at] + separator + rest_of_line + newline + indent + prop + text[eol:]
        line = _line_number(text, insert_at) + 1

    return patched, PatchResult(entry.name, entry.filename, PatchStatus.ADDED, line)


def add_grain_images(
    html_text: str,
    entries: Iterable[SpeciesImageEntry],
    *,
    overwrite: bool = False,
) -> tuple[str, list[PatchResult]]:
    """
    Apply the grainImage edit to every species in `entries`.

    Returns the new text and one PatchResult per entry, in entry order. Running
    it on its own output changes nothing.
    """

    newline = "\r\n" if "\r\n" in html_text else "\n"
    text = html_text
    results: list[PatchResult] = []
    for entry in entries:
        text, result = _patch_one(text, entry, newline=newline, overwrite=overwrite)
        results.append(result)
    return text, results


def patch_html_file(
    path: str,
    entries: Iterable[SpeciesImageEntry],
    *,
    overwrite: bool = False,
    dry_run: bool = False,
    backup: bool = True,
    logger: logging.Logger | None = None,
) -> list[PatchResult]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"HTML file not found: {path}")

    with open(path, "r", encoding="utf-8", newline="") as handle:
        original = handle.read()

    patched, results = add_grain_images(original, entries, overwrite=overwrite)

    if logger:
        for result in results:
            if result.ok:
                logger.info("%s: %s (%s)", result.species, result.status.value, result.filename)
            else:
                logger.warning("%s: %s", result.species, result.status.value)

    if patched == original:
        if logger:
            logger.info("No changes to %s", path)
        return results
    if dry_run:
        if logger:
            logger.info("Dry run: %s left unchanged", path)
        return results

    if backup:
        backup_path = path + ".bak"
        shutil.copyfile(path, backup_path)
        if logger:
            logger.debug("Backup written: %s", backup_path)

    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write(patched)
    if logger:
        logger.info("Updated %s", path)
    return results
