"""Label converters turning entities into training records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from services.entities import Entity

HARD_SURFACES = frozenset({'asphalt', 'paved', 'concrete', 'metal'})


@dataclass(frozen=True)
class SampleRecord:
    """One manifest row: the record id, its image file and the label."""

    id: str
    image_file_name: str
    label: str | bool | int | float


class LabelConverter(Protocol):
    def accepts(self, tags: Mapping[str, str]) -> bool: ...

    def convert(self, image_file_name: str, entity: Entity) -> SampleRecord | None: ...


def is_hard_surface(surface: str | None) -> bool:
    """asphalt, paved, metal and every concrete variant count as hard."""
    if not surface:
        return False
    value = surface.strip().lower()
    return value in HARD_SURFACES or value.startswith('concrete')


class RunwaySurfaceConverter:
    """Runways labelled by whether their surface is hard."""

    def accepts(self, tags: Mapping[str, str]) -> bool:
        return tags.get('aeroway') == 'runway' and bool(tags.get('surface'))

    def convert(self, image_file_name: str, entity: Entity) -> SampleRecord | None:
        return SampleRecord(
            id=image_file_name,
            image_file_name=image_file_name,
            label=is_hard_surface(entity.tag('surface')),
        )


class TagValueConverter:
    """Entities carrying ``key``, labelled with its value.

    When ``allowed`` is given, only those values are accepted.
    """

    def __init__(self, key: str, allowed: Iterable[str] | None = None) -> None:
        self.key = key
        self.allowed = frozenset(allowed) if allowed is not None else None

    def accepts(self, tags: Mapping[str, str]) -> bool:
        value = tags.get(self.key)
        if not value:
            return False
        return self.allowed is None or value in self.allowed

    def convert(self, image_file_name: str, entity: Entity) -> SampleRecord | None:
        value = entity.tag(self.key)
        if value is None:
            return None
        return SampleRecord(id=image_file_name, image_file_name=image_file_name, label=value)
