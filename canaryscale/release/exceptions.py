class CanaryError(Exception):
    pass


class InvalidStageSpecError(CanaryError):
    pass


class InvalidTransitionError(CanaryError):
    pass


class CollaboratorError(CanaryError):
    pass


class RollbackIssuanceError(CanaryError):
    pass


class RunLeaseHeldError(CanaryError):
    pass
