"""Page fault handler — the only code that mutates the memory state.

When the MMU reports a fault, somebody (in this simulator, the user)
picks the RAM frame that should receive the page.  The handler then:

    1. Checks that the frame is a legal target (not a kernel or
       page-table frame, not off the end of RAM).
    2. If a resident page occupies the frame, evicts that **victim** to
       the lowest free swap block and marks its entry SWAPPED.
    3. If the faulting page was on swap, frees its old swap block
       (swap-in).  A never-loaded page is simply zero-filled.
    4. Gives the frame to the faulting page and marks it RESIDENT.

Atomicity: every check (including "is there room in swap for the
victim?") runs before the first write.  A refused resolution raises and
leaves the memory state exactly as it was, so the caller can retry with
another frame.

The handler does not know whether a fault is "pending" — that is the
session's business.  It only refuses to resolve a page that is already
resident, since that would map one page into two frames.
"""

from dataclasses import dataclass

from pagesim.errors import InvalidFrameError, PageResidentError, ProtectionViolation, SwapExhausted
from pagesim.logging import Logger, LogLevel
from pagesim.memory.mmu import FaultKind
from pagesim.memory.state import FREE, MemoryState, OwnershipRecord, PageState, PageTableEntry

_SOURCE = "pfh"


@dataclass(frozen=True)
class ResolveOutcome:
    """What a successful resolution did.

    Attributes:
        frame: The frame the faulting page now occupies.
        fault_kind: Whether the page was zero-filled or swapped in.
        victim: The page evicted from the frame, if any.
        evicted_to: The swap block the victim was written to (-1 if none).
        freed_swap_block: The block released by a swap-in (-1 if none).

    """

    frame: int
    fault_kind: FaultKind
    victim: OwnershipRecord | None = None
    evicted_to: int = -1
    freed_swap_block: int = -1


class PageFaultHandler:
    """Resolve page faults into a caller-chosen frame."""

    def __init__(self, state: MemoryState, *, logger: Logger | None = None) -> None:
        """Create a handler that mutates ``state``.

        Args:
            state: The memory state to update.
            logger: Optional trace log.

        """
        self._state = state
        self._logger = logger

    def _log(self, message: str, *, pid: int, level: LogLevel = LogLevel.INFO) -> None:
        if self._logger is not None:
            self._logger.log(level, message, source=_SOURCE, pid=pid)

    def check_target(self, target_frame: int) -> None:
        """Verify that ``target_frame`` may receive a process page.

        Raises:
            InvalidFrameError: If the frame does not exist.
            ProtectionViolation: If the frame is below the user area.

        """
        config = self._state.config
        if not 0 <= target_frame < config.ram_frames:
            msg = f"Frame {target_frame} does not exist (RAM has frames 0-{config.ram_frames - 1})"
            raise InvalidFrameError(msg)
        if target_frame < config.user_ram_start:
            role = config.reserved_frames.get(target_frame)
            if role is not None:
                msg = f"Frame {target_frame} is reserved for the {role}; user pages cannot go there"
            else:
                msg = (
                    f"Frame {target_frame} is below the user area "
                    f"(user frames start at {config.user_ram_start})"
                )
            raise ProtectionViolation(msg)

    def resolve(self, pid: int, page: int, target_frame: int) -> ResolveOutcome:
        """Bring ``page`` of ``pid`` into ``target_frame``.

        Args:
            pid: The faulting process.
            page: The faulting virtual page.
            target_frame: The RAM frame chosen to receive the page.

        Returns:
            A description of the eviction and swap-in that took place.

        Raises:
            NotFoundError: If ``pid`` is not a configured process.
            InvalidAddressError: If ``page`` is outside the address space.
            PageResidentError: If the page is already in RAM.
            InvalidFrameError: If ``target_frame`` does not exist.
            ProtectionViolation: If ``target_frame`` is a system frame.
            SwapExhausted: If the frame's occupant cannot be evicted.

        """
        state = self._state
        table = state.page_table(pid)
        entry = table[page]
        self._log(f"Resolving page fault for P{pid} page {page} into frame {target_frame}", pid=pid)

        if entry.state is PageState.RESIDENT:
            msg = f"P{pid} page {page} is already resident in frame {entry.location}"
            raise PageResidentError(msg)

        try:
            self.check_target(target_frame)
        except (InvalidFrameError, ProtectionViolation) as e:
            self._log(f"Refused: {e}", pid=pid, level=LogLevel.ERROR)
            raise

        # Plan the eviction before touching anything.
        occupant = state.frame_owner(target_frame)
        victim = occupant if occupant.is_user else None
        evict_block = -1
        if victim is not None:
            self._log(f"Frame {target_frame} is taken by {victim}", pid=pid, level=LogLevel.WARNING)
            free_block = state.find_free_swap_slot()
            if free_block is None:
                msg = f"No free swap block to evict {victim} from frame {target_frame}"
                self._log(f"Refused: {msg}", pid=pid, level=LogLevel.ERROR)
                raise SwapExhausted(msg)
            evict_block = free_block

        # Commit.
        if victim is not None:
            state.set_block_owner(evict_block, victim)
            state.page_table(victim.owner_pid)[victim.owner_page] = PageTableEntry.swapped(evict_block)
            state.set_frame_owner(target_frame, FREE)
            self._log(f"Victim {victim} moved to swap block {evict_block}", pid=victim.owner_pid)

        freed_block = -1
        if entry.state is PageState.SWAPPED:
            kind = FaultKind.SWAP_IN
            freed_block = entry.location
            state.set_block_owner(freed_block, FREE)
            self._log(f"Swapping in from block {freed_block}", pid=pid)
        else:
            kind = FaultKind.COLD_START
            self._log("Zero-filling a fresh page", pid=pid)

        state.set_frame_owner(target_frame, OwnershipRecord(owner_pid=pid, owner_page=page))
        table[page] = PageTableEntry.resident(target_frame)
        self._log(f"Page {page} of P{pid} mapped in frame {target_frame}", pid=pid)

        return ResolveOutcome(
            frame=target_frame,
            fault_kind=kind,
            victim=victim,
            evicted_to=evict_block,
            freed_swap_block=freed_block,
        )
