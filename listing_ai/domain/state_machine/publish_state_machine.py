from listing_ai.domain.enums.publish_step import PublishStep


# Mapping of valid transitions: from_step -> set of allowed to_steps
VALID_TRANSITIONS: dict[PublishStep, frozenset[PublishStep]] = {
    PublishStep.VALIDATING: frozenset({PublishStep.UPLOADING_MEDIA, PublishStep.FAILED}),
    PublishStep.UPLOADING_MEDIA: frozenset({PublishStep.BUILDING_DRAFT, PublishStep.FAILED}),
    PublishStep.BUILDING_DRAFT: frozenset({PublishStep.CREATING_OFFER, PublishStep.FAILED}),
    PublishStep.CREATING_OFFER: frozenset({PublishStep.ACTIVATING, PublishStep.FAILED}),
    PublishStep.ACTIVATING: frozenset({PublishStep.PUBLISHED, PublishStep.FAILED}),
    # Terminal steps have no outgoing transitions
    PublishStep.PUBLISHED: frozenset(),
    PublishStep.FAILED: frozenset(),
}


class InvalidStepTransitionError(Exception):
    """Raised when a publish attempt tries to skip or revisit a step."""

    def __init__(self, from_step: PublishStep, to_step: PublishStep) -> None:
        self.from_step = from_step
        self.to_step = to_step
        super().__init__(
            f"Invalid transition from {from_step.value} to {to_step.value}. "
            f"Allowed transitions: {[s.value for s in VALID_TRANSITIONS.get(from_step, frozenset())]}"
        )


class PublishStateMachine:
    """
    Validates step transitions for the upload → draft → offer → activate pipeline.

    Stateless. Call with explicit steps.
    """

    def can_transition(self, from_step: PublishStep, to_step: PublishStep) -> bool:
        if from_step.is_terminal:
            return False
        return to_step in VALID_TRANSITIONS.get(from_step, frozenset())

    def validate_transition(self, from_step: PublishStep, to_step: PublishStep) -> None:
        """Raise InvalidStepTransitionError if the transition is not permitted."""
        if not self.can_transition(from_step, to_step):
            raise InvalidStepTransitionError(from_step, to_step)

    def get_allowed_transitions(self, from_step: PublishStep) -> frozenset[PublishStep]:
        return VALID_TRANSITIONS.get(from_step, frozenset())
