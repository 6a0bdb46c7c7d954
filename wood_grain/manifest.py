"""Wood species that still need a grain photograph, and the file each one should use.

Once a `.jpg` exists for a species, its record in index.html gets a
`grainImage` property next to the CSS `grainPattern` fallback
(see `wood_grain.html_patch`).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

GRAIN_IMAGE_SIZE_PX = 400
GRAIN_IMAGE_SUFFIX = ".jpg"

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class SpeciesImageEntry:
    name: str
    filename: str


def slugify_species_name(name: str) -> str:
    """'Eastern White Pine' -> 'eastern_white_pine'."""
    return _WHITESPACE_RE.sub("_", str(name).strip()).lower()


def grain_image_filename(name: str, *, size_px: int = GRAIN_IMAGE_SIZE_PX) -> str:
    slug = slugify_species_name(name)
    if not slug:
        raise ValueError("Species name must be a non-empty string")
    return f"{slug}_{size_px}{GRAIN_IMAGE_SUFFIX}"


def entry_for(name: str, *, size_px: int = GRAIN_IMAGE_SIZE_PX) -> SpeciesImageEntry:
    return SpeciesImageEntry(name=name, filename=grain_image_filename(name, size_px=size_px))


SPECIES_NEEDING_IMAGES: tuple[SpeciesImageEntry, ...] = (
    SpeciesImageEntry("Ash", "ash_400.jpg"),
    SpeciesImageEntry("Basswood", "basswood_400.jpg"),
    SpeciesImageEntry("Beech", "beech_400.jpg"),
    SpeciesImageEntry("Birch", "birch_400.jpg"),
    SpeciesImageEntry("Eastern White Pine", "eastern_white_pine_400.jpg"),
    SpeciesImageEntry("Hickory", "hickory_400.jpg"),
    SpeciesImageEntry("Mahogany", "mahogany_400.jpg"),
    SpeciesImageEntry("Poplar", "poplar_400.jpg"),
    SpeciesImageEntry("Purple Heart", "purple_heart_400.jpg"),
    SpeciesImageEntry("Teak", "teak_400.jpg"),
    SpeciesImageEntry("Western Red Cedar", "western_red_cedar_400.jpg"),
    SpeciesImageEntry("White Oak", "white_oak_400.jpg"),
)


def species_needing_images() -> tuple[SpeciesImageEntry, ...]:
    return SPECIES_NEEDING_IMAGES


def find_entry(
    name: str, entries: Iterable[SpeciesImageEntry] | None = None
) -> SpeciesImageEntry | None:
    wanted = _WHITESPACE_RE.sub(" ", str(name).strip()).casefold()
    for entry in SPECIES_NEEDING_IMAGES if entries is None else entries:
        if _WHITESPACE_RE.sub(" ", entry.name.strip()).casefold() == wanted:
            return entry
    return None


def validate_entries(
    entries: Iterable[SpeciesImageEntry], *, size_px: int = GRAIN_IMAGE_SIZE_PX
) -> list[str]:
    """Return a list of problems with `entries`; an empty list means the manifest is usable."""

    problems: list[str] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        label = f"entry {index}"
        name = entry.name.strip() if isinstance(entry.name, str) else ""
        if not name:
            problems.append(f"{label}: name must be a non-empty string")
            continue
        label = f"{label} ({name})"

        key = name.casefold()
        if key in seen:
            problems.append(f"{label}: duplicate species name")
        seen.add(key)

        filename = entry.filename if isinstance(entry.filename, str) else ""
        if not filename.strip():
            problems.append(f"{label}: filename must be a non-empty string")
            continue
        if not filename.endswith(GRAIN_IMAGE_SUFFIX):
            problems.append(f"{label}: filename {filename!r} must end with {GRAIN_IMAGE_SUFFIX}")
            continue
        expected = grain_image_filename(name, size_px=size_px)
        if filename != expected:
            problems.append(f"{label}: filename {filename!r} does not match expected {expected!r}")
    return problems
