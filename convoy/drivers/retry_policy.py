"""Retry policy for the http driver's requests."""

from dataclasses import dataclass


@dataclass
class RetryPolicy:
    """Exponential backoff between request attempts."""
    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0

    def get_delay(self, attempt: int) -> float:
        """Delay in seconds before retry ``attempt`` (0 = first retry)."""
        delay = self.initial_delay * (self.backoff_factor ** attempt)
        return min(delay, self.max_delay)

    @classmethod
    def from_options(cls, options: dict) -> "RetryPolicy":
        """Build a policy from the ``retry`` block of ``driver.http``."""
        known = {k: v for k, v in (options or {}).items() if k in cls.__dataclass_fields__}
        return cls(**known)


def no_retry_policy() -> RetryPolicy:
    """Fail on the first error."""
    return RetryPolicy(max_retries=0)
