import hashlib
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ImageAsset:
    """Raw image bytes as selected by the seller."""

    data: bytes = field(repr=False)
    mime_type: str
    filename: str = "image"

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    def digest(self) -> str:
        return hashlib.sha256(self.data).hexdigest()
