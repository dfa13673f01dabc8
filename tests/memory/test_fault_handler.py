"""Tests for the page fault handler.

The handler is the only component that changes the memory state.  It
loads a faulting page into a caller-chosen frame, evicting the frame's
occupant to swap when necessary, and refuses illegal targets without
changing anything.
"""

import pytest

from pagesim.config import PagingConfig
from pagesim.errors import (
    InvalidAddressError,
    InvalidFrameError,
    NotFoundError,
    PageResidentError,
    ProtectionViolation,
    SwapExhausted,
)
from pagesim.logging import Logger, LogLevel
from pagesim.memory.fault import PageFaultHandler
from pagesim.memory.mmu import FaultKind
from pagesim.memory.state import FREE, MemoryState, OwnershipRecord, PageState, PageTableEntry

TINY = PagingConfig(process_count=2, pages_per_process=4, ram_frames=4, swap_frames=2)


def _handler(config: PagingConfig | None = None) -> tuple[MemoryState, PageFaultHandler]:
    """Create a fresh state and a handler bound to it."""
    state = MemoryState(config)
    return state, PageFaultHandler(state)


def _full_tiny() -> tuple[MemoryState, PageFaultHandler]:
    """A tiny machine with RAM and swap both full.

    RAM frames 2, 3 hold P1 pages 2, 3; swap blocks 0, 1 hold P1 pages 0, 1.
    """
    state, handler = _handler(TINY)
    handler.resolve(1, 0, 2)
    handler.resolve(1, 1, 3)
    handler.resolve(1, 2, 2)
    handler.resolve(1, 3, 3)
    return state, handler


class TestColdStart:
    """Verify zero-fill loading of never-touched pages."""

    def test_maps_page_into_free_frame(self) -> None:
        """A cold page should become RESIDENT in the chosen frame."""
        state, handler = _handler()
        outcome = handler.resolve(1, 0, 2)
        assert outcome.frame == 2  # noqa: PLR2004
        assert outcome.fault_kind is FaultKind.COLD_START
        assert outcome.victim is None
        assert state.entry(1, 0) == PageTableEntry.resident(2)
        assert state.frame_owner(2) == OwnershipRecord(1, 0)

    def test_does_not_touch_swap(self) -> None:
        """A cold start into a free frame should leave swap alone."""
        state, handler = _handler()
        handler.resolve(3, 1, 9)
        assert all(b.is_free for b in state.swap)

    def test_state_stays_consistent(self) -> None:
        """The tables should agree after loading."""
        state, handler = _handler()
        handler.resolve(2, 3, 15)
        assert state.check_invariants() == []


class TestEviction:
    """Verify victim swap-out when the chosen frame is occupied."""

    def test_victim_moves_to_lowest_free_block(self) -> None:
        """The occupant should go to swap block 0 and become SWAPPED."""
        state, handler = _handler()
        handler.resolve(1, 0, 5)
        outcome = handler.resolve(2, 0, 5)
        assert outcome.victim == OwnershipRecord(1, 0)
        assert outcome.evicted_to == 0
        assert state.entry(1, 0) == PageTableEntry.swapped(0)
        assert state.block_owner(0) == OwnershipRecord(1, 0)
        assert state.entry(2, 0) == PageTableEntry.resident(5)
        assert state.frame_owner(5) == OwnershipRecord(2, 0)
        assert state.check_invariants() == []

    def test_victim_from_same_process(self) -> None:
        """A process may evict its own other page."""
        state, handler = _handler()
        handler.resolve(1, 0, 5)
        handler.resolve(1, 1, 5)
        assert state.entry(1, 0).state is PageState.SWAPPED
        assert state.entry(1, 1) == PageTableEntry.resident(5)
        assert state.check_invariants() == []

    def test_swap_in_frees_old_block(self) -> None:
        """Bringing a swapped page back should free its block."""
        state, handler = _handler()
        handler.resolve(1, 0, 5)
        handler.resolve(2, 0, 5)
        outcome = handler.resolve(1, 0, 6)
        assert outcome.fault_kind is FaultKind.SWAP_IN
        assert outcome.freed_swap_block == 0
        assert state.block_owner(0) == FREE
        assert state.entry(1, 0) == PageTableEntry.resident(6)
        assert state.check_invariants() == []

    def test_swap_in_with_eviction(self) -> None:
        """A swap-in into an occupied frame evicts first, then frees the old block."""
        state, handler = _handler()
        handler.resolve(1, 0, 5)
        handler.resolve(2, 0, 5)  # P1:0 -> block 0
        handler.resolve(3, 0, 6)
        outcome = handler.resolve(1, 0, 6)  # evict P3:0 -> block 1, free block 0
        assert outcome.evicted_to == 1
        assert outcome.freed_swap_block == 0
        assert state.block_owner(0) == FREE
        assert state.block_owner(1) == OwnershipRecord(3, 0)
        assert state.check_invariants() == []


class TestRefusals:
    """Verify illegal targets are refused without side effects."""

    @pytest.mark.parametrize("frame", [0, 1])
    def test_reserved_frame_is_protection_violation(self, frame: int) -> None:
        """Kernel and page-table frames should never receive user pages."""
        state, handler = _handler()
        before = state.snapshot()
        with pytest.raises(ProtectionViolation, match="reserved"):
            handler.resolve(1, 0, frame)
        assert state.snapshot() == before

    def test_protection_message_names_role(self) -> None:
        """The error should explain which system structure lives there."""
        _state, handler = _handler()
        with pytest.raises(ProtectionViolation, match="page tables"):
            handler.resolve(1, 0, 1)

    def test_unreserved_low_frame_is_protection_violation(self) -> None:
        """Frames below the user area are protected even when not named."""
        config = PagingConfig(reserved_frames={0: "kernel"}, user_ram_start=3)
        _state, handler = _handler(config)
        with pytest.raises(ProtectionViolation, match="below the user area"):
            handler.resolve(1, 0, 2)

    @pytest.mark.parametrize("frame", [-1, 16, 500])
    def test_nonexistent_frame(self, frame: int) -> None:
        """Frames off the end of RAM should raise InvalidFrameError."""
        state, handler = _handler()
        before = state.snapshot()
        with pytest.raises(InvalidFrameError):
            handler.resolve(1, 0, frame)
        assert state.snapshot() == before

    def test_swap_exhausted(self) -> None:
        """With RAM and swap full, evicting should fail and change nothing."""
        state, handler = _full_tiny()
        before = state.snapshot()
        for frame in TINY.user_frames:
            with pytest.raises(SwapExhausted):
                handler.resolve(2, 0, frame)
        assert state.snapshot() == before

    def test_swap_exhausted_on_swap_in(self) -> None:
        """A swap-in into an occupied frame still needs a free block first."""
        state, handler = _full_tiny()
        before = state.snapshot()
        with pytest.raises(SwapExhausted):
            handler.resolve(1, 0, 2)
        assert state.snapshot() == before

    def test_already_resident(self) -> None:
        """A resident page cannot be resolved again."""
        state, handler = _handler()
        handler.resolve(1, 0, 5)
        before = state.snapshot()
        with pytest.raises(PageResidentError):
            handler.resolve(1, 0, 6)
        assert state.snapshot() == before

    def test_unknown_pid(self) -> None:
        """An unknown pid should raise NotFoundError."""
        _state, handler = _handler()
        with pytest.raises(NotFoundError):
            handler.resolve(7, 0, 5)

    def test_bad_page(self) -> None:
        """An out-of-range page should raise InvalidAddressError."""
        _state, handler = _handler()
        with pytest.raises(InvalidAddressError):
            handler.resolve(1, 4, 5)

    def test_usable_after_refusal(self) -> None:
        """A refusal should not stop a later valid resolution."""
        state, handler = _handler()
        with pytest.raises(ProtectionViolation):
            handler.resolve(1, 0, 0)
        handler.resolve(1, 0, 2)
        assert state.entry(1, 0) == PageTableEntry.resident(2)


class TestHandlerLogging:
    """Verify the handler traces its steps."""

    def test_eviction_logged(self) -> None:
        """An eviction should be recorded from the pfh source."""
        state = MemoryState()
        logger = Logger()
        handler = PageFaultHandler(state, logger=logger)
        handler.resolve(1, 0, 5)
        handler.resolve(2, 0, 5)
        messages = [e.message for e in logger.filter(source="pfh")]
        assert any("moved to swap block 0" in m for m in messages)

    def test_refusal_logged_as_error(self) -> None:
        """A refused target should leave an ERROR entry."""
        logger = Logger()
        handler = PageFaultHandler(MemoryState(), logger=logger)
        with pytest.raises(ProtectionViolation):
            handler.resolve(1, 0, 0)
        assert logger.filter(min_level=LogLevel.ERROR)
