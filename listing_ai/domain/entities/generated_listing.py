from dataclasses import dataclass
from typing import Any

from listing_ai.domain.errors import UpstreamMalformedError

TITLE_MAX_LENGTH = 80


@dataclass(frozen=True)
class ItemSpecific:
    name: str
    value: str


@dataclass(frozen=True)
class GeneratedListing:
    """
    AI-generated listing content, treated as immutable input to publishing.

    Build instances through ``from_payload`` so that whatever the generator
    returned has been shape-checked first.
    """

    title: str
    category: tuple[str, ...]
    item_specifics: tuple[ItemSpecific, ...]
    description: str

    @classmethod
    def from_payload(cls, payload: Any) -> "GeneratedListing":
        if not isinstance(payload, dict):
            raise UpstreamMalformedError("Received malformed data from the listing generator.")

        title = payload.get("title")
        category = payload.get("category")
        specifics = payload.get("itemSpecifics")
        description = payload.get("description")

        if not isinstance(title, str) or not title.strip():
            raise UpstreamMalformedError("Generated listing is missing a title.")
        if (
            not isinstance(category, list)
            or not category
            or not all(isinstance(c, str) and c.strip() for c in category)
        ):
            raise UpstreamMalformedError("Generated listing is missing a category.")
        if not isinstance(specifics, list):
            raise UpstreamMalformedError("Generated listing is missing item specifics.")
        if not isinstance(description, str) or not description.strip():
            raise UpstreamMalformedError("Generated listing is missing a description.")

        item_specifics: list[ItemSpecific] = []
        for entry in specifics:
            if (
                not isinstance(entry, dict)
                or not isinstance(entry.get("name"), str)
                or not isinstance(entry.get("value"), str)
            ):
                raise UpstreamMalformedError("Generated listing has a malformed item specific.")
            item_specifics.append(ItemSpecific(name=entry["name"], value=entry["value"]))

        return cls(
            title=title.strip()[:TITLE_MAX_LENGTH],
            category=tuple(c.strip() for c in category),
            item_specifics=tuple(item_specifics),
            description=description,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "category": list(self.category),
            "itemSpecifics": [{"name": s.name, "value": s.value} for s in self.item_specifics],
            "description": self.description,
        }

    def specific(self, name: str) -> str | None:
        """Case-insensitive lookup of an item specific's value."""
        wanted = name.casefold()
        for entry in self.item_specifics:
            if entry.name.casefold() == wanted:
                return entry.value
        return None

    def aspects(self) -> dict[str, list[str]]:
        """Item specifics grouped the way the Inventory API expects them."""
        grouped: dict[str, list[str]] = {}
        for entry in self.item_specifics:
            if not entry.name.strip() or not entry.value.strip():
                continue
            values = grouped.setdefault(entry.name.strip(), [])
            if entry.value.strip() not in values:
                values.append(entry.value.strip())
        return grouped
