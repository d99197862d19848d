class LabelgateError(Exception):
    """
    Base exception for all labelgate failures.
    """

    pass


class PolicyConfigurationError(LabelgateError):
    """
    Raised when the policy configuration is unreadable, malformed or invalid.
    """

    pass


class DecodeFailure(LabelgateError):
    """
    Raised when a resource body of a supported kind cannot be deserialized.

    This is a hard failure, never a policy denial.
    """

    def __init__(self, kind: str, cause: Exception):
        super().__init__(f"failed to decode {kind}: {cause}")
        self.kind = kind
        self.cause = cause


class ReviewFailure(LabelgateError):
    """
    Raised when an admission review cannot produce a verdict.
    """

    pass
