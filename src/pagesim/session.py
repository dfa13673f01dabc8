"""Sessions — one run of the simulator from reset to reset.

A session bundles everything that used to be loose global state in a
classroom demo: the memory state, the translator for the chosen mode,
the fault handler, the process currently "on the CPU", the fault that is
waiting for the user to pick a frame, and the trace log.

Lifecycle::

    reset(mode)  →  Session  →  access / resolve / cancel ...  →  reset(mode)

A session is never torn down piecemeal; resetting builds a new one.

The access → fault → resolve cycle is deliberately one-at-a-time: while
a fault is pending, further accesses are refused until the fault is
resolved or cancelled.  Cancelling touches nothing, because all
mutation happens atomically inside the fault handler.

Modes are chosen once, at creation:

- **SIMPLE** — formula-based translation, never faults.
- **DEMAND** — real page tables, faults, eviction and swap.
"""

import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pagesim.config import PagingConfig
from pagesim.errors import (
    RECOVERABLE_RESOLVE_ERRORS,
    FailureReason,
    FaultPendingError,
    InvalidFrameError,
    NoPendingFaultError,
    NotFoundError,
    ProtectionViolation,
    SwapExhausted,
)
from pagesim.logging import Logger, LogLevel
from pagesim.memory.fault import PageFaultHandler, ResolveOutcome
from pagesim.memory.mmu import MMU, AccessResult, FaultKind, SimpleTranslator, Translator
from pagesim.memory.state import NO_LOCATION, MemoryState, StateSnapshot

_SOURCE = "session"


class Mode(StrEnum):
    """Which translation model a session runs."""

    SIMPLE = "1"
    DEMAND = "2"

    @property
    def label(self) -> str:
        """Return a human-readable name for the mode."""
        return "simple translation" if self is Mode.SIMPLE else "demand paging"


@dataclass(frozen=True)
class PendingFault:
    """A page fault waiting for the user to choose a frame."""

    pid: int
    page: int
    fault_kind: FaultKind
    swap_block: int = NO_LOCATION


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of a resolution attempt as reported to the UI.

    On success ``frame`` is the page's new frame and ``outcome`` holds
    the eviction details.  On failure ``reason`` says why and the
    pending fault is still in place.
    """

    success: bool
    frame: int = NO_LOCATION
    reason: FailureReason | None = None
    message: str = ""
    outcome: ResolveOutcome | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        if not self.success:
            return {"success": False, "reason": str(self.reason), "message": self.message}
        data: dict[str, object] = {"success": True, "frame": self.frame}
        if self.outcome is not None:
            data["fault_kind"] = str(self.outcome.fault_kind)
            if self.outcome.victim is not None:
                data["victim"] = {
                    "pid": self.outcome.victim.owner_pid,
                    "page": self.outcome.victim.owner_page,
                    "swap_block": self.outcome.evicted_to,
                }
            if self.outcome.freed_swap_block != NO_LOCATION:
                data["freed_swap_block"] = self.outcome.freed_swap_block
        return data


class Session:
    """The state of one simulator run.

    Every public operation holds the session lock, so a threaded host
    (such as the web server) always sees a consistent snapshot.
    """

    def __init__(self, *, mode: Mode = Mode.DEMAND, config: PagingConfig | None = None) -> None:
        """Create a freshly booted machine.

        Args:
            mode: The translation model to run.
            config: Machine layout; defaults to ``PagingConfig()``.

        """
        self._mode = Mode(mode)
        self._config = config or PagingConfig()
        self._lock = threading.RLock()
        self._logger = Logger()
        self._state = MemoryState(self._config)
        self._translator: Translator
        self._handler: PageFaultHandler | None
        if self._mode is Mode.SIMPLE:
            self._translator = SimpleTranslator(self._state, logger=self._logger)
            self._handler = None
        else:
            self._translator = MMU(self._state, logger=self._logger)
            self._handler = PageFaultHandler(self._state, logger=self._logger)
        self._active_pid = 1
        self._pending: PendingFault | None = None

        cfg = self._config
        self._logger.log(
            LogLevel.INFO,
            f"System reset. Mode: {self._mode.label}. {cfg.process_count} processes loaded. "
            f"RAM: {cfg.ram_frames} frames ({len(cfg.reserved_frames)} reserved), "
            f"swap: {cfg.swap_frames} blocks.",
            source=_SOURCE,
        )

    # -- Read-only views ----------------------------------------------------

    @property
    def mode(self) -> Mode:
        """Return the translation model."""
        return self._mode

    @property
    def config(self) -> PagingConfig:
        """Return the machine layout."""
        return self._config

    @property
    def state(self) -> MemoryState:
        """Return the memory state (treat as read-only)."""
        return self._state

    @property
    def logger(self) -> Logger:
        """Return the session trace log."""
        return self._logger

    @property
    def active_pid(self) -> int:
        """Return the process currently on the CPU."""
        return self._active_pid

    @property
    def pending_fault(self) -> PendingFault | None:
        """Return the unresolved fault, if any."""
        return self._pending

    def snapshot(self) -> StateSnapshot:
        """Return an immutable copy of the memory state."""
        with self._lock:
            return self._state.snapshot()

    def candidate_frames(self) -> list[int]:
        """Return the frames worth offering for the pending fault.

        Free user frames when there are any; otherwise every user frame,
        since the user must then pick a victim to swap out.
        """
        with self._lock:
            free = self._state.free_user_frames()
            return free or list(self._config.user_frames)

    def describe(self) -> dict[str, Any]:
        """Return the whole session as one JSON-friendly dict.

        Everything is read under a single hold of the lock, so the
        pending fault always matches the frames in the same payload.
        """
        with self._lock:
            cfg = self._config
            pending = None
            if self._pending is not None:
                pending = {
                    "pid": self._pending.pid,
                    "page": self._pending.page,
                    "fault_kind": str(self._pending.fault_kind),
                    "candidate_frames": self.candidate_frames(),
                }
            return {
                "mode": str(self._mode),
                "active_pid": self._active_pid,
                "reserved_frames": {str(f): role for f, role in cfg.reserved_frames.items()},
                "user_ram_start": cfg.user_ram_start,
                **self._state.snapshot().to_dict(),
                "pending_fault": pending,
            }

    # -- Operations ---------------------------------------------------------

    def select_process(self, pid: int) -> None:
        """Put process ``pid`` on the CPU.

        Raises:
            NotFoundError: If ``pid`` is not a configured process.

        """
        with self._lock:
            if pid not in self._config.pids:
                msg = f"Process {pid} does not exist (valid: 1-{self._config.process_count})"
                raise NotFoundError(msg)
            self._active_pid = pid
            self._logger.log(LogLevel.INFO, f"Context switched to P{pid}", source=_SOURCE, pid=pid)

    def access(self, pid: int, page: int) -> AccessResult:
        """Access ``page`` of ``pid`` and record any resulting fault.

        Args:
            pid: The accessing process.
            page: The virtual page number.

        Returns:
            The translator's HIT/FAULT decision.

        Raises:
            FaultPendingError: If an earlier fault is still unresolved.
            NotFoundError: If ``pid`` is not a configured process.
            InvalidAddressError: If ``page`` is outside the address space.

        """
        with self._lock:
            if self._pending is not None:
                p = self._pending
                msg = f"Resolve the pending page fault (P{p.pid} page {p.page}) before continuing"
                raise FaultPendingError(msg)
            result = self._translator.access(pid, page)
            if not result.is_hit and result.fault_kind is not None:
                self._pending = PendingFault(
                    pid=pid,
                    page=page,
                    fault_kind=result.fault_kind,
                    swap_block=result.swap_block,
                )
            return result

    def resolve(self, pid: int, page: int, target_frame: int) -> ResolveResult:
        """Resolve the pending fault for ``(pid, page)`` into ``target_frame``.

        Refusals the user can fix by choosing another frame (bad
        index, protected frame, full swap) come back as an unsuccessful
        result and keep the fault pending.

        Raises:
            NoPendingFaultError: If no fault is pending for ``(pid, page)``.

        """
        with self._lock:
            pending = self._pending
            if pending is None or (pending.pid, pending.page) != (pid, page):
                msg = f"No page fault is pending for P{pid} page {page}"
                raise NoPendingFaultError(msg)
            # A pending fault only exists in demand mode, where the handler is set.
            assert self._handler is not None  # noqa: S101
            try:
                outcome = self._handler.resolve(pid, page, target_frame)
            except (InvalidFrameError, ProtectionViolation, SwapExhausted) as e:
                return ResolveResult(
                    success=False,
                    reason=RECOVERABLE_RESOLVE_ERRORS[type(e)],
                    message=str(e),
                )
            self._pending = None
            return ResolveResult(success=True, frame=outcome.frame, outcome=outcome)

    def resolve_pending(self, target_frame: int) -> ResolveResult:
        """Resolve whatever fault is pending into ``target_frame``.

        Raises:
            NoPendingFaultError: If nothing is pending.

        """
        with self._lock:
            if self._pending is None:
                msg = "No page fault is pending"
                raise NoPendingFaultError(msg)
            return self.resolve(self._pending.pid, self._pending.page, target_frame)

    def cancel(self) -> PendingFault:
        """Abandon the pending fault without touching the memory state.

        Returns:
            The fault that was discarded.

        Raises:
            NoPendingFaultError: If nothing is pending.

        """
        with self._lock:
            if self._pending is None:
                msg = "No page fault is pending"
                raise NoPendingFaultError(msg)
            pending, self._pending = self._pending, None
            self._logger.log(
                LogLevel.WARNING,
                f"Page fault for P{pending.pid} page {pending.page} cancelled by user",
                source=_SOURCE,
                pid=pending.pid,
            )
            return pending


def reset(mode: Mode | str = Mode.DEMAND, config: PagingConfig | None = None) -> Session:
    """Start a new session, discarding nothing but the caller's old reference.

    Args:
        mode: ``Mode`` or its value (``"1"`` simple, ``"2"`` demand).
        config: Machine layout; defaults to ``PagingConfig()``.

    Returns:
        A freshly booted session.

    Raises:
        ValueError: If ``mode`` is not a known mode.

    """
    return Session(mode=Mode(mode), config=config)
