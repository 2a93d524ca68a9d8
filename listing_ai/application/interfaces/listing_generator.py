from abc import ABC, abstractmethod
from typing import Any

from listing_ai.domain.entities.image_asset import ImageAsset


class ListingGeneratorError(Exception):
    """The generator failed to produce a listing; ``message`` is user-presentable."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ListingGenerator(ABC):
    """Port for the AI collaborator that drafts a listing from photos."""

    @abstractmethod
    async def generate(
        self,
        images: list[ImageAsset],
        personal_note: str,
        is_high_quality: bool,
    ) -> Any:
        """Return the generator's raw JSON body; shape-checking is the caller's job."""
        ...
