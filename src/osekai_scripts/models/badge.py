"""Badge catalog: deduplicates badge observations across users.

Badge descriptions are not unique: several visually distinct badges share
the same text (e.g. "Mapping contest winner"). A badge's identity is its
image, so every observation is keyed by description first and by the name
derived from the image file second.

    names:         name -> image url (first seen wins)
    descriptions:  description -> name -> {owner, ...}

Owners are compared by user id only, so pushing the same observation twice
leaves the catalog unchanged.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from osekai_scripts.models.user import RawBadge

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BadgeOwner:
    user_id: int
    awarded_at: datetime = field(compare=False)


def strip_query(url: str) -> str:
    return url.split("?", 1)[0]


def parse_badge_name(image_url: str) -> str | None:
    """Derive a display name from the image file name.

    ``https://assets.ppy.sh/profile-badges/owc_2020-winner.png`` becomes
    ``"owc 2020 winner"``. Returns None if the url has no path separator
    or the file has no extension.
    """
    _, sep, file_name = strip_query(image_url).rpartition("/")
    if not sep:
        return None

    stem, dot, _ = file_name.rpartition(".")
    if not dot or not stem:
        return None

    return stem.replace("-", " ").replace("_", " ")


class BadgeCatalog:
    """Accumulates badge ownership across users."""

    def __init__(self) -> None:
        self.names: dict[str, str] = {}
        self.descriptions: dict[str, dict[str, set[BadgeOwner]]] = {}

    def push(self, user_id: int, badge: RawBadge) -> bool:
        """Record that ``user_id`` owns ``badge``.

        Returns False if the badge image could not be turned into a name,
        in which case the observation is dropped.
        """
        image_url = strip_query(badge.image_url)
        name = parse_badge_name(image_url)

        if name is None:
            logger.warning(
                "badge_name_unparseable",
                user_id=user_id,
                image_url=badge.image_url,
                description=badge.description,
            )
            return False

        self.add_owner(badge.description, name, image_url, BadgeOwner(user_id, badge.awarded_at))
        return True

    def add_owner(self, description: str, name: str, image_url: str, owner: BadgeOwner) -> None:
        self.names.setdefault(name, image_url)
        self.descriptions.setdefault(description, {}).setdefault(name, set()).add(owner)

    def merge(self, other: BadgeCatalog) -> None:
        """Union ``other`` into this catalog.

        Existing name to image mappings are kept; owner sets are unioned
        per description and name.
        """
        for name, image_url in other.names.items():
            self.names.setdefault(name, image_url)

        for description, names in other.descriptions.items():
            stored_names = self.descriptions.setdefault(description, {})
            for name, owners in names.items():
                stored_names.setdefault(name, set()).update(owners)

    def owners(self, description: str, name: str) -> set[BadgeOwner]:
        return self.descriptions.get(description, {}).get(name, set())

    def iter_rows(self) -> Iterator[tuple[str, str, str, set[BadgeOwner]]]:
        """Yield ``(description, name, image_url, owners)`` in sorted order."""
        for description in sorted(self.descriptions):
            names = self.descriptions[description]
            for name in sorted(names):
                yield description, name, self.names.get(name, ""), names[name]

    def copy(self) -> BadgeCatalog:
        clone = BadgeCatalog()
        clone.merge(self)
        return clone

    def __len__(self) -> int:
        return sum(len(owners) for names in self.descriptions.values() for owners in names.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BadgeCatalog):
            return NotImplemented
        return self.names == other.names and self.descriptions == other.descriptions

    def __repr__(self) -> str:
        return f"BadgeCatalog(names={len(self.names)}, owners={len(self)})"
