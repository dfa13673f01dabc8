"""The MMU — decides whether a memory access hits or faults.

On every access the hardware MMU looks up the page table entry for the
virtual page being touched:

    RESIDENT  →  HIT    — translate to frame * page_size + offset.
    INVALID   →  FAULT  — cold start, the page has never been loaded.
    SWAPPED   →  FAULT  — swap-in, the page lives on the swap device.

The MMU only *reads* the memory state.  Resolving a fault is the job of
the page fault handler, after someone has picked a frame for the page.

Two translators share the ``access(pid, page)`` interface:

- ``MMU`` — demand paging over the real page tables.
- ``SimpleTranslator`` — the introductory mode, where every page is
  assumed to be mapped and the frame comes from a fixed formula, so a
  user can focus on address arithmetic alone.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from pagesim.logging import Logger, LogLevel
from pagesim.memory.state import NO_LOCATION, MemoryState, PageState

_SOURCE = "mmu"


class AccessStatus(StrEnum):
    """Outcome of a translation."""

    HIT = "HIT"
    FAULT = "FAULT"


class FaultKind(StrEnum):
    """Why a page fault was raised."""

    COLD_START = "COLD_START"
    SWAP_IN = "SWAP_IN"


@dataclass(frozen=True)
class AccessResult:
    """What the MMU decided for one access.

    ``frame`` is set for a HIT; ``fault_kind`` for a FAULT, plus
    ``swap_block`` when the page is out on swap.  The offset is the
    position of the accessed variable inside the page and only matters
    for the displayed addresses.
    """

    status: AccessStatus
    pid: int
    page: int
    offset: int
    page_size: int
    frame: int = NO_LOCATION
    fault_kind: FaultKind | None = None
    swap_block: int = NO_LOCATION

    @property
    def is_hit(self) -> bool:
        """Return True if the page was resident."""
        return self.status is AccessStatus.HIT

    @property
    def virtual_address(self) -> int:
        """Return the virtual address that was accessed."""
        return self.page * self.page_size + self.offset

    @property
    def physical_address(self) -> int | None:
        """Return the translated physical address, or None on a fault."""
        if not self.is_hit:
            return None
        return self.frame * self.page_size + self.offset

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        data: dict[str, object] = {
            "status": str(self.status),
            "pid": self.pid,
            "page": self.page,
            "virtual_address": self.virtual_address,
        }
        if self.is_hit:
            data["frame"] = self.frame
            data["physical_address"] = self.physical_address
        else:
            data["fault_kind"] = str(self.fault_kind)
            if self.swap_block != NO_LOCATION:
                data["swap_block"] = self.swap_block
        return data


class Translator(Protocol):
    """Interface shared by the two translation modes."""

    def access(self, pid: int, page: int) -> AccessResult:
        """Translate an access to ``page`` of process ``pid``."""
        ...


class MMU:
    """Demand-paging translator over the memory state's page tables."""

    def __init__(self, state: MemoryState, *, logger: Logger | None = None) -> None:
        """Create an MMU reading from ``state``.

        Args:
            state: The memory state to consult (never modified).
            logger: Optional trace log.

        """
        self._state = state
        self._logger = logger

    def _log(self, message: str, *, pid: int, level: LogLevel = LogLevel.INFO) -> None:
        if self._logger is not None:
            self._logger.log(level, message, source=_SOURCE, pid=pid)

    def access(self, pid: int, page: int) -> AccessResult:
        """Decide HIT or FAULT for an access to ``page`` of ``pid``.

        Args:
            pid: The accessing process.
            page: The virtual page number.

        Returns:
            A HIT carrying the frame, or a FAULT carrying its kind.

        Raises:
            NotFoundError: If ``pid`` is not a configured process.
            InvalidAddressError: If ``page`` is outside the address space.

        """
        entry = self._state.entry(pid, page)
        config = self._state.config
        offset = config.offset_for(page)
        self._log(f"Access P{pid} page {page}", pid=pid)

        if entry.state is PageState.RESIDENT:
            result = AccessResult(
                status=AccessStatus.HIT,
                pid=pid,
                page=page,
                offset=offset,
                page_size=config.page_size,
                frame=entry.location,
            )
            self._log(
                f"HIT: page {page} is in frame {entry.location} "
                f"(virtual {result.virtual_address} -> physical {result.physical_address})",
                pid=pid,
            )
            return result

        if entry.state is PageState.SWAPPED:
            self._log(
                f"MISS: page {page} is on swap block {entry.location}, raising page fault",
                pid=pid,
                level=LogLevel.WARNING,
            )
            return AccessResult(
                status=AccessStatus.FAULT,
                pid=pid,
                page=page,
                offset=offset,
                page_size=config.page_size,
                fault_kind=FaultKind.SWAP_IN,
                swap_block=entry.location,
            )

        self._log(
            f"MISS: page {page} has never been loaded, raising page fault",
            pid=pid,
            level=LogLevel.WARNING,
        )
        return AccessResult(
            status=AccessStatus.FAULT,
            pid=pid,
            page=page,
            offset=offset,
            page_size=config.page_size,
            fault_kind=FaultKind.COLD_START,
        )


class SimpleTranslator:
    """Introductory translator: every page is mapped by a fixed formula.

    Page ``n`` of process ``p`` lives in frame ``(2p + n) mod ram_frames``.
    No page table is consulted and no fault is ever raised.
    """

    def __init__(self, state: MemoryState, *, logger: Logger | None = None) -> None:
        """Create a translator for the layout in ``state``."""
        self._state = state
        self._logger = logger

    def frame_for(self, pid: int, page: int) -> int:
        """Return the frame the formula assigns to ``(pid, page)``."""
        return (pid * 2 + page) % self._state.config.ram_frames

    def access(self, pid: int, page: int) -> AccessResult:
        """Translate an access; always a HIT.

        Raises:
            NotFoundError: If ``pid`` is not a configured process.
            InvalidAddressError: If ``page`` is outside the address space.

        """
        # Validates pid and page through the page table's bounds checks.
        self._state.entry(pid, page)
        config = self._state.config
        result = AccessResult(
            status=AccessStatus.HIT,
            pid=pid,
            page=page,
            offset=config.offset_for(page),
            page_size=config.page_size,
            frame=self.frame_for(pid, page),
        )
        if self._logger is not None:
            self._logger.log(
                LogLevel.INFO,
                f"Simple translation: P{pid} VPN {page} -> PFN {result.frame} "
                f"(virtual {result.virtual_address} -> physical {result.physical_address})",
                source=_SOURCE,
                pid=pid,
            )
        return result
