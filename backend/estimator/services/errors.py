"""
Error taxonomy for the estimation core.

Only DocumentReadError is expected to reach a caller. The others mark
degraded paths that each stage converts into a visible fallback
(skipped pattern, fallback stage result). Rate misses are NOT_FOUND
quotes and missing datasets zero their bucket; neither raises.
"""


class EstimatorError(Exception):
    """Base class for all estimation-core errors."""


class PatternError(EstimatorError):
    """A catalog row whose match expression cannot be compiled."""

    def __init__(self, pattern_id: str, reason: str):
        self.pattern_id = pattern_id
        self.reason = reason
        super().__init__(f"PATTERN_INVALID: {pattern_id} ({reason})")


class ResponseParseError(EstimatorError):
    """A generative-call response that holds no usable structured object."""

    def __init__(self, reason: str, excerpt: str = ""):
        self.reason = reason
        self.excerpt = excerpt[:200]
        super().__init__(f"RESPONSE_UNPARSEABLE: {reason}")


class DocumentReadError(EstimatorError):
    """A drawing document that cannot be opened or decoded."""
