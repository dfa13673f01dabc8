"""Memory state — who owns every RAM frame, swap block, and page.

The memory state is pure bookkeeping: three tables and nothing else.

    RAM ownership   frame  →  (owner_pid, owner_page)
    swap ownership  block  →  (owner_pid, owner_page)
    page tables     pid    →  [PageTableEntry per virtual page]

An ownership record's ``owner_pid`` is ``0`` for a free slot, ``-1`` for
a frame the system keeps for itself (kernel image, page tables), and a
positive pid when a process page lives there.

The tables must always agree with each other:

    entry(p, n) is RESIDENT  ⇔  exactly one RAM record is (p, n)
    entry(p, n) is SWAPPED   ⇔  exactly one swap record is (p, n)
    entry(p, n) is INVALID   ⇔  neither

This module does not *enforce* that agreement — only the page fault
handler mutates the tables, and it is responsible for keeping them in
step.  ``check_invariants()`` lets tests (and curious users) verify
it at any point.

Design choices:
    - **Frozen records, replaced wholesale.**  A frame is reassigned by
      storing a new ``OwnershipRecord``, so a snapshot is just a tuple
      of the current records and compares with ``==``.
    - **Page tables are dense lists**, indexed by page number, because
      page numbers are small and bounded.
"""

from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

from pagesim.config import PagingConfig
from pagesim.errors import InvalidAddressError, NotFoundError

FREE_PID = 0
SYSTEM_PID = -1
NO_PAGE = -1
NO_LOCATION = -1


@dataclass(frozen=True)
class OwnershipRecord:
    """Owner of one RAM frame or swap block."""

    owner_pid: int = FREE_PID
    owner_page: int = NO_PAGE

    @property
    def is_free(self) -> bool:
        """Return True if nothing occupies the slot."""
        return self.owner_pid == FREE_PID

    @property
    def is_system(self) -> bool:
        """Return True if the slot is reserved for the system."""
        return self.owner_pid == SYSTEM_PID

    @property
    def is_user(self) -> bool:
        """Return True if a process page occupies the slot."""
        return self.owner_pid > 0

    def __str__(self) -> str:
        """Format like the RAM panel: ``P1:0``, ``system`` or ``free``."""
        if self.is_user:
            return f"P{self.owner_pid}:{self.owner_page}"
        return "system" if self.is_system else "free"


FREE = OwnershipRecord()
SYSTEM = OwnershipRecord(owner_pid=SYSTEM_PID)


class PageState(StrEnum):
    """Residency of a virtual page."""

    INVALID = "invalid"
    RESIDENT = "resident"
    SWAPPED = "swapped"


@dataclass(frozen=True)
class PageTableEntry:
    """Residency state and location of one virtual page.

    ``location`` is a RAM frame index when RESIDENT, a swap block index
    when SWAPPED, and ``-1`` when INVALID.
    """

    state: PageState = PageState.INVALID
    location: int = NO_LOCATION

    @classmethod
    def resident(cls, frame: int) -> "PageTableEntry":
        """Build an entry for a page mapped in ``frame``."""
        return cls(state=PageState.RESIDENT, location=frame)

    @classmethod
    def swapped(cls, block: int) -> "PageTableEntry":
        """Build an entry for a page stored in swap ``block``."""
        return cls(state=PageState.SWAPPED, location=block)


INVALID_ENTRY = PageTableEntry()


class PageTable:
    """One process's page table: a fixed-size list of entries."""

    def __init__(self, *, pid: int, num_pages: int) -> None:
        """Create a page table with every entry INVALID.

        Args:
            pid: The owning process.
            num_pages: Size of the virtual address space in pages.

        """
        self._pid = pid
        self._entries: list[PageTableEntry] = [INVALID_ENTRY] * num_pages

    @property
    def pid(self) -> int:
        """Return the owning process id."""
        return self._pid

    def _check(self, page: int) -> None:
        if not 0 <= page < len(self._entries):
            msg = (
                f"Page {page} is outside the address space of P{self._pid} "
                f"(pages 0-{len(self._entries) - 1})"
            )
            raise InvalidAddressError(msg)

    def __getitem__(self, page: int) -> PageTableEntry:
        """Return the entry for ``page``.

        Raises:
            InvalidAddressError: If the page number is out of range.

        """
        self._check(page)
        return self._entries[page]

    def __setitem__(self, page: int, entry: PageTableEntry) -> None:
        """Replace the entry for ``page``.

        Raises:
            InvalidAddressError: If the page number is out of range.

        """
        self._check(page)
        self._entries[page] = entry

    def __len__(self) -> int:
        """Return the number of virtual pages."""
        return len(self._entries)

    def __iter__(self) -> Iterator[PageTableEntry]:
        """Iterate over entries in page order."""
        return iter(self._entries)

    def reset(self) -> None:
        """Mark every page INVALID."""
        self._entries = [INVALID_ENTRY] * len(self._entries)


@dataclass(frozen=True)
class StateSnapshot:
    """Immutable copy of the whole memory state.

    Two snapshots compare equal exactly when every frame, block and
    page table entry is the same.
    """

    ram: tuple[OwnershipRecord, ...]
    swap: tuple[OwnershipRecord, ...]
    page_tables: tuple[tuple[PageTableEntry, ...], ...]

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        return {
            "ram": [{"owner_pid": r.owner_pid, "owner_page": r.owner_page} for r in self.ram],
            "swap": [{"owner_pid": r.owner_pid, "owner_page": r.owner_page} for r in self.swap],
            "page_tables": {
                str(pid): [{"state": str(e.state), "location": e.location} for e in table]
                for pid, table in enumerate(self.page_tables, start=1)
            },
        }


class MemoryState:
    """RAM ownership, swap ownership, and every process's page table.

    The constructor calls ``initialize()``, so a new instance is always
    a freshly booted machine.
    """

    def __init__(self, config: PagingConfig | None = None) -> None:
        """Create the tables described by ``config``.

        Args:
            config: Machine layout; defaults to ``PagingConfig()``.

        """
        self._config = config or PagingConfig()
        self._ram: list[OwnershipRecord] = []
        self._swap: list[OwnershipRecord] = []
        self._page_tables: list[PageTable] = [
            PageTable(pid=pid, num_pages=self._config.pages_per_process)
            for pid in self._config.pids
        ]
        self.initialize()

    @property
    def config(self) -> PagingConfig:
        """Return the machine layout."""
        return self._config

    def initialize(self) -> None:
        """Free every frame and block except the reserved frames."""
        self._ram = [
            SYSTEM if frame in self._config.reserved_frames else FREE
            for frame in range(self._config.ram_frames)
        ]
        self._swap = [FREE] * self._config.swap_frames
        for table in self._page_tables:
            table.reset()

    # -- Lookups -----------------------------------------------------------

    @property
    def pids(self) -> range:
        """Return the valid process ids."""
        return self._config.pids

    @property
    def ram(self) -> tuple[OwnershipRecord, ...]:
        """Return the RAM ownership table."""
        return tuple(self._ram)

    @property
    def swap(self) -> tuple[OwnershipRecord, ...]:
        """Return the swap ownership table."""
        return tuple(self._swap)

    def page_table(self, pid: int) -> PageTable:
        """Return the page table of process ``pid``.

        Raises:
            NotFoundError: If ``pid`` is not a configured process.

        """
        if pid not in self._config.pids:
            msg = f"Process {pid} does not exist (valid: 1-{self._config.process_count})"
            raise NotFoundError(msg)
        return self._page_tables[pid - 1]

    def entry(self, pid: int, page: int) -> PageTableEntry:
        """Return the page table entry for ``(pid, page)``."""
        return self.page_table(pid)[page]

    def frame_owner(self, frame: int) -> OwnershipRecord:
        """Return the ownership record of RAM ``frame``."""
        return self._ram[frame]

    def block_owner(self, block: int) -> OwnershipRecord:
        """Return the ownership record of swap ``block``."""
        return self._swap[block]

    def find_free_swap_slot(self) -> int | None:
        """Return the lowest free swap block, or None when swap is full."""
        for block, record in enumerate(self._swap):
            if record.is_free:
                return block
        return None

    def free_user_frames(self) -> list[int]:
        """Return the free frames a process page may occupy."""
        return [f for f in self._config.user_frames if self._ram[f].is_free]

    # -- Mutators (page fault handler only) --------------------------------

    def set_frame_owner(self, frame: int, record: OwnershipRecord) -> None:
        """Record who occupies RAM ``frame``."""
        self._ram[frame] = record

    def set_block_owner(self, block: int, record: OwnershipRecord) -> None:
        """Record who occupies swap ``block``."""
        self._swap[block] = record

    # -- Inspection ---------------------------------------------------------

    def snapshot(self) -> StateSnapshot:
        """Return an immutable copy of every table."""
        return StateSnapshot(
            ram=tuple(self._ram),
            swap=tuple(self._swap),
            page_tables=tuple(tuple(table) for table in self._page_tables),
        )

    def check_invariants(self) -> list[str]:
        """Verify that the three tables agree with each other.

        Returns:
            One message per violation; empty when the state is consistent.

        """
        problems: list[str] = []
        ram_owners = Counter((r.owner_pid, r.owner_page) for r in self._ram if r.is_user)
        swap_owners = Counter((r.owner_pid, r.owner_page) for r in self._swap if r.is_user)

        for where, owners in (("RAM frame", ram_owners), ("swap block", swap_owners)):
            for (pid, page), count in owners.items():
                if count > 1:
                    problems.append(f"P{pid}:{page} owns {count} {where}s")

        for table in self._page_tables:
            for page, entry in enumerate(table):
                key = (table.pid, page)
                in_ram = ram_owners[key]
                in_swap = swap_owners[key]
                label = f"P{table.pid}:{page}"
                if entry.state is PageState.RESIDENT:
                    if in_ram != 1 or in_swap:
                        problems.append(f"{label} is resident but owns {in_ram} frames, {in_swap} blocks")
                    elif self._ram[entry.location] != OwnershipRecord(*key):
                        problems.append(f"{label} points at frame {entry.location} it does not own")
                elif entry.state is PageState.SWAPPED:
                    if in_swap != 1 or in_ram:
                        problems.append(f"{label} is swapped but owns {in_ram} frames, {in_swap} blocks")
                    elif self._swap[entry.location] != OwnershipRecord(*key):
                        problems.append(f"{label} points at block {entry.location} it does not own")
                elif in_ram or in_swap:
                    problems.append(f"{label} is invalid but owns {in_ram} frames, {in_swap} blocks")

        for frame in self._config.reserved_frames:
            if not self._ram[frame].is_system:
                problems.append(f"Reserved frame {frame} is not system-owned")
        return problems
