"""Simulator configuration — the fixed "hardware" of a session.

Every session is built from one ``PagingConfig``.  The defaults describe
the classroom machine: 4 processes of 4 pages each compete for 16 RAM
frames, two of which are permanently taken by the kernel and the page
tables.  That leaves 14 user frames for 16 pages, so the RAM *must*
overflow into swap once every page has been touched.

Design choices:
    - **Frozen dataclass** — a config is a value; changing it means
      starting a new session.
    - **Validated in ``__post_init__``** — a bad config fails at
      construction, never halfway through a fault resolution.
    - **Reserved frames carry a role name** so protection errors can
      explain *why* a frame is off limits.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any

DEFAULT_PROCESS_COUNT = 4
DEFAULT_PAGES_PER_PROCESS = 4
DEFAULT_RAM_FRAMES = 16
DEFAULT_SWAP_FRAMES = 32
DEFAULT_USER_RAM_START = 2
DEFAULT_PAGE_SIZE = 1024

FRAME_KERNEL = 0
FRAME_TABLES = 1

# Offset of the demo "variable" on each page (page n uses offsets[n % len]).
DEFAULT_VARIABLE_OFFSETS = (100, 200, 50, 300)


def _default_reserved() -> Mapping[int, str]:
    return MappingProxyType({FRAME_KERNEL: "kernel", FRAME_TABLES: "page tables"})


@dataclass(frozen=True)
class PagingConfig:
    """Sizes and layout of the simulated machine.

    Attributes:
        process_count: Number of processes (pids are 1..process_count).
        pages_per_process: Virtual pages per process.
        ram_frames: Total physical frames, reserved ones included.
        swap_frames: Number of swap blocks.
        reserved_frames: Frame index → role for system-owned frames.
        user_ram_start: First frame a process page may occupy.
        page_size: Bytes per page/frame (display addresses only).
        variable_offsets: In-page offset of each page's demo variable.

    """

    process_count: int = DEFAULT_PROCESS_COUNT
    pages_per_process: int = DEFAULT_PAGES_PER_PROCESS
    ram_frames: int = DEFAULT_RAM_FRAMES
    swap_frames: int = DEFAULT_SWAP_FRAMES
    reserved_frames: Mapping[int, str] = field(default_factory=_default_reserved)
    user_ram_start: int = DEFAULT_USER_RAM_START
    page_size: int = DEFAULT_PAGE_SIZE
    variable_offsets: tuple[int, ...] = DEFAULT_VARIABLE_OFFSETS

    def __post_init__(self) -> None:
        """Reject configurations that cannot describe a working machine.

        Raises:
            ValueError: If any count is non-positive or the reserved
                frames do not sit below ``user_ram_start``.

        """
        for name in ("process_count", "pages_per_process", "ram_frames", "swap_frames", "page_size"):
            value = getattr(self, name)
            if value <= 0:
                msg = f"{name} must be positive, got {value}"
                raise ValueError(msg)
        if not 0 <= self.user_ram_start < self.ram_frames:
            msg = f"user_ram_start must lie in [0, {self.ram_frames}), got {self.user_ram_start}"
            raise ValueError(msg)
        for frame in self.reserved_frames:
            if not 0 <= frame < self.user_ram_start:
                msg = f"Reserved frame {frame} must lie below user_ram_start ({self.user_ram_start})"
                raise ValueError(msg)
        for offset in self.variable_offsets:
            if not 0 <= offset < self.page_size:
                msg = f"Variable offset {offset} does not fit in a {self.page_size}-byte page"
                raise ValueError(msg)
        # Freeze the mapping even when a plain dict was passed in.
        object.__setattr__(self, "reserved_frames", MappingProxyType(dict(self.reserved_frames)))
        object.__setattr__(self, "variable_offsets", tuple(self.variable_offsets))

    @property
    def user_frames(self) -> range:
        """Return the frame indices available to process pages."""
        return range(self.user_ram_start, self.ram_frames)

    @property
    def pids(self) -> range:
        """Return the valid process ids."""
        return range(1, self.process_count + 1)

    def offset_for(self, page: int) -> int:
        """Return the in-page offset of the demo variable on ``page``."""
        if not self.variable_offsets:
            return 0
        return self.variable_offsets[page % len(self.variable_offsets)]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PagingConfig":
        """Build a config from loosely typed input such as a JSON body.

        Unknown keys are ignored.  JSON object keys are always strings,
        so reserved frame indices are converted back to ints.

        Args:
            data: Option name → value.

        Returns:
            A validated config.

        Raises:
            ValueError: If a value has the wrong shape or is out of range.

        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            try:
                if key == "reserved_frames":
                    kwargs[key] = {int(frame): str(role) for frame, role in dict(value).items()}
                elif key == "variable_offsets":
                    kwargs[key] = tuple(int(v) for v in value)
                else:
                    kwargs[key] = int(value)
            except (TypeError, ValueError):
                msg = f"Invalid value for '{key}': {value!r}"
                raise ValueError(msg) from None
        return cls(**kwargs)
