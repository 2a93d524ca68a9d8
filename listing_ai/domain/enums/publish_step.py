from enum import Enum


class PublishStep(str, Enum):
    """Stages a single publish attempt moves through."""

    VALIDATING = "VALIDATING"
    UPLOADING_MEDIA = "UPLOADING_MEDIA"
    BUILDING_DRAFT = "BUILDING_DRAFT"
    CREATING_OFFER = "CREATING_OFFER"
    ACTIVATING = "ACTIVATING"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        """Terminal steps cannot be transitioned out of."""
        return self in (PublishStep.PUBLISHED, PublishStep.FAILED)
