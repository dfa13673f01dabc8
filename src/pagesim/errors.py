"""Error taxonomy for the paging simulator.

Every failure a caller can trigger has its own exception class so the
UI can explain exactly what went wrong.  They all derive from
``PagingError``, which lets a front end catch "anything the simulator
rejected" in one clause while letting genuine bugs propagate.

A failed operation never leaves a partial mutation behind, so every one
of these errors is recoverable: the session stays fully usable.
"""

from enum import StrEnum


class PagingError(Exception):
    """Base class for errors raised by the paging simulator."""


class NotFoundError(PagingError):
    """Raise when a process id is outside the configured range."""


class InvalidAddressError(PagingError):
    """Raise when a page number is outside the process's address space.

    This is the simulator's protection-fault analog for *virtual*
    addresses; it is never confused with an ordinary page fault.
    """


class InvalidFrameError(PagingError):
    """Raise when a target frame index does not exist in RAM."""


class ProtectionViolation(PagingError):  # noqa: N818
    """Raise when fault resolution targets a frame below the user area."""


class SwapExhausted(PagingError):  # noqa: N818
    """Raise when a victim must be evicted but every swap block is taken."""


class PageResidentError(PagingError):
    """Raise when resolving a page that is already mapped in RAM."""


class FaultPendingError(PagingError):
    """Raise when an access is attempted while a fault is unresolved."""


class NoPendingFaultError(PagingError):
    """Raise when resolving or cancelling with no matching pending fault."""


class FailureReason(StrEnum):
    """Why a fault resolution was refused (user-facing)."""

    INVALID_FRAME = "invalid_frame"
    PROTECTION_VIOLATION = "protection_violation"
    SWAP_EXHAUSTED = "swap_exhausted"


# Failures the caller may recover from by picking another frame.
RECOVERABLE_RESOLVE_ERRORS: dict[type[PagingError], FailureReason] = {
    InvalidFrameError: FailureReason.INVALID_FRAME,
    ProtectionViolation: FailureReason.PROTECTION_VIOLATION,
    SwapExhausted: FailureReason.SWAP_EXHAUSTED,
}
