"""Memory subsystem — ownership tables, the MMU, and the fault handler.

Re-exports public symbols so callers can write::

    from pagesim.memory import MMU, MemoryState, PageFaultHandler
"""

from pagesim.memory.fault import PageFaultHandler, ResolveOutcome
from pagesim.memory.mmu import (
    MMU,
    AccessResult,
    AccessStatus,
    FaultKind,
    SimpleTranslator,
    Translator,
)
from pagesim.memory.state import (
    MemoryState,
    OwnershipRecord,
    PageState,
    PageTable,
    PageTableEntry,
    StateSnapshot,
)

__all__ = [
    "MMU",
    "AccessResult",
    "AccessStatus",
    "FaultKind",
    "MemoryState",
    "OwnershipRecord",
    "PageFaultHandler",
    "PageState",
    "PageTable",
    "PageTableEntry",
    "ResolveOutcome",
    "SimpleTranslator",
    "StateSnapshot",
    "Translator",
]
