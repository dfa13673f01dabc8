"""Tests for the MMU and the simple translator.

The MMU decides HIT or FAULT by reading the page table; it never
changes the memory state.  The simple translator maps every page by a
fixed formula and never faults.
"""

import pytest

from pagesim.errors import InvalidAddressError, NotFoundError
from pagesim.logging import Logger, LogLevel
from pagesim.memory.mmu import MMU, AccessStatus, FaultKind, SimpleTranslator
from pagesim.memory.state import MemoryState, OwnershipRecord, PageTableEntry

PAGE_SIZE = 1024
FRAME = 7
BLOCK = 3


def _state_with_resident_and_swapped() -> MemoryState:
    """P1 page 0 resident in frame 7, P1 page 1 swapped to block 3."""
    state = MemoryState()
    state.set_frame_owner(FRAME, OwnershipRecord(1, 0))
    state.page_table(1)[0] = PageTableEntry.resident(FRAME)
    state.set_block_owner(BLOCK, OwnershipRecord(1, 1))
    state.page_table(1)[1] = PageTableEntry.swapped(BLOCK)
    return state


class TestMMUDecisions:
    """Verify HIT / FAULT classification."""

    def test_invalid_page_is_cold_start(self) -> None:
        """A never-loaded page should fault with COLD_START."""
        mmu = MMU(MemoryState())
        result = mmu.access(1, 0)
        assert result.status is AccessStatus.FAULT
        assert result.fault_kind is FaultKind.COLD_START
        assert result.physical_address is None

    def test_resident_page_hits(self) -> None:
        """A resident page should hit with its frame."""
        mmu = MMU(_state_with_resident_and_swapped())
        result = mmu.access(1, 0)
        assert result.is_hit
        assert result.frame == FRAME
        assert result.fault_kind is None

    def test_swapped_page_is_swap_in(self) -> None:
        """A swapped page should fault with SWAP_IN and its block."""
        mmu = MMU(_state_with_resident_and_swapped())
        result = mmu.access(1, 1)
        assert result.status is AccessStatus.FAULT
        assert result.fault_kind is FaultKind.SWAP_IN
        assert result.swap_block == BLOCK

    def test_other_process_same_page_independent(self) -> None:
        """P2's page 0 should not hit just because P1's page 0 is resident."""
        mmu = MMU(_state_with_resident_and_swapped())
        assert mmu.access(2, 0).fault_kind is FaultKind.COLD_START


class TestMMUIsReadOnly:
    """Verify the MMU never mutates state."""

    def test_repeated_hits_are_idempotent(self) -> None:
        """Accessing a resident page repeatedly should not change anything."""
        state = _state_with_resident_and_swapped()
        mmu = MMU(state)
        before = state.snapshot()
        frames = {mmu.access(1, 0).frame for _ in range(10)}
        assert frames == {FRAME}
        assert state.snapshot() == before

    def test_faults_do_not_mutate(self) -> None:
        """Faulting accesses should not change anything either."""
        state = _state_with_resident_and_swapped()
        mmu = MMU(state)
        before = state.snapshot()
        mmu.access(1, 1)
        mmu.access(3, 2)
        assert state.snapshot() == before


class TestMMUErrors:
    """Verify bad addresses are rejected distinctly from page faults."""

    def test_unknown_pid(self) -> None:
        """An unknown pid should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            MMU(MemoryState()).access(9, 0)

    @pytest.mark.parametrize("page", [-1, 4, 1000])
    def test_page_out_of_range(self, page: int) -> None:
        """An out-of-range page should raise InvalidAddressError."""
        with pytest.raises(InvalidAddressError):
            MMU(MemoryState()).access(1, page)


class TestAddresses:
    """Verify the synthesized display addresses."""

    def test_virtual_address_uses_variable_offset(self) -> None:
        """Page 1's variable sits at offset 200."""
        result = MMU(MemoryState()).access(1, 1)
        assert result.virtual_address == 1 * PAGE_SIZE + 200

    def test_physical_address_on_hit(self) -> None:
        """The physical address should be frame * page_size + offset."""
        result = MMU(_state_with_resident_and_swapped()).access(1, 0)
        assert result.physical_address == FRAME * PAGE_SIZE + 100

    def test_to_dict_fault(self) -> None:
        """A fault's JSON form should carry the fault kind and block."""
        data = MMU(_state_with_resident_and_swapped()).access(1, 1).to_dict()
        assert data["status"] == "FAULT"
        assert data["fault_kind"] == "SWAP_IN"
        assert data["swap_block"] == BLOCK


class TestMMULogging:
    """Verify the MMU writes a trace."""

    def test_fault_logged_as_warning(self) -> None:
        """A miss should leave a WARNING entry from the mmu source."""
        logger = Logger()
        MMU(MemoryState(), logger=logger).access(2, 3)
        warnings = logger.filter(min_level=LogLevel.WARNING, source="mmu")
        assert len(warnings) == 1
        assert warnings[0].pid == 2  # noqa: PLR2004
        assert "MISS" in warnings[0].message

    def test_bad_access_not_logged(self) -> None:
        """A rejected access should not be logged as an access."""
        logger = Logger()
        with pytest.raises(NotFoundError):
            MMU(MemoryState(), logger=logger).access(0, 0)
        assert len(logger) == 0


class TestSimpleTranslator:
    """Verify the formula-based translation mode."""

    def test_always_hits(self) -> None:
        """Every valid access should hit, even on a fresh state."""
        translator = SimpleTranslator(MemoryState())
        for pid in range(1, 5):
            for page in range(4):
                assert translator.access(pid, page).is_hit

    def test_formula(self) -> None:
        """Frame should be (2 * pid + page) mod RAM frames."""
        translator = SimpleTranslator(MemoryState())
        assert translator.access(1, 0).frame == 2  # noqa: PLR2004
        assert translator.access(4, 3).frame == 11  # noqa: PLR2004

    def test_does_not_touch_tables(self) -> None:
        """Simple translation should leave the page tables alone."""
        state = MemoryState()
        before = state.snapshot()
        SimpleTranslator(state).access(2, 1)
        assert state.snapshot() == before

    def test_out_of_range_page_is_hard_error(self) -> None:
        """Out-of-range pages should not wrap around silently."""
        with pytest.raises(InvalidAddressError):
            SimpleTranslator(MemoryState()).access(1, 4)

    def test_unknown_pid(self) -> None:
        """An unknown pid should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            SimpleTranslator(MemoryState()).access(0, 0)
