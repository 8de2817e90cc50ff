"""
Error taxonomy for the Triage Assist gateway.

Each failure the gateway anticipates has an exception type and a matching
ErrorKind. I/O helpers report failures as CallResult values carrying an
ErrorKind; recovery_for() decides what the gateway substitutes for each kind.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    RATE_LIMITED = "rate_limited"
    NETWORK_FAILURE = "network_failure"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"
    INVALID_INPUT = "invalid_input"


class Recovery(str, Enum):
    MOCK = "mock"            # keyword mock with an "unavailable" note
    EMERGENCY = "emergency"  # fixed immediate-referral payload
    PROPAGATE = "propagate"  # surface to the caller


class TriageError(Exception):
    """Base class for all gateway and validation errors."""

    kind: ErrorKind = ErrorKind.NETWORK_FAILURE


class MissingCredential(TriageError):
    kind = ErrorKind.MISSING_CREDENTIAL

    def __init__(self, service: str):
        self.service = service
        super().__init__(
            f"{service} API key not configured. "
            f"Set it in the environment or .env file."
        )


class RateLimitExceeded(TriageError):
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, service: str, retry_after: float):
        self.service = service
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {service}. "
            f"Try again in {retry_after:.1f} seconds."
        )


class NetworkFailure(TriageError):
    kind = ErrorKind.NETWORK_FAILURE

    def __init__(self, service: str, detail: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} request failed: {detail}")


class UpstreamTimeout(TriageError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, service: str, timeout: float):
        self.service = service
        self.timeout = timeout
        super().__init__(f"{service} did not respond within {timeout}s")


class MalformedResponse(TriageError):
    kind = ErrorKind.MALFORMED_RESPONSE


class InvalidInput(TriageError):
    kind = ErrorKind.INVALID_INPUT

    def __init__(self, reasons: list[str]):
        self.reasons = list(reasons)
        super().__init__("Invalid patient data: " + "; ".join(self.reasons))


_RECOVERY = {
    ErrorKind.MISSING_CREDENTIAL: Recovery.MOCK,
    ErrorKind.RATE_LIMITED: Recovery.MOCK,
    ErrorKind.NETWORK_FAILURE: Recovery.MOCK,
    ErrorKind.TIMEOUT: Recovery.MOCK,
    # A 2xx body we cannot read is treated as worse than an unreachable service
    ErrorKind.MALFORMED_RESPONSE: Recovery.EMERGENCY,
    ErrorKind.INVALID_INPUT: Recovery.PROPAGATE,
}


def recovery_for(kind: ErrorKind) -> Recovery:
    """Map a failure kind to the substitution the gateway performs."""
    return _RECOVERY[kind]


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Outcome of one upstream call: either a value or an error."""

    value: Optional[T] = None
    error: Optional[TriageError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    @classmethod
    def success(cls, value: T) -> "CallResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: TriageError) -> "CallResult[T]":
        return cls(error=error)
