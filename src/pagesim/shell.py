"""The shell — a text front end for a simulator session.

The shell reads a command string, splits it into a name and arguments,
dispatches to a handler, and returns a string result.  It is the
terminal counterpart of the clickable panels of the classroom demo:

- ``select 2``     — click a process on the left panel.
- ``access 1``     — click one of its variables (page 1).
- ``frames``       — the dialog listing frames to load a faulting page.
- ``resolve 7``    — pick frame 7 in that dialog.
- ``ram``/``swap`` — the right-hand memory panels.

Design choices:
    - **Returns strings, not prints.**  The shell stays fully testable;
      the REPL decides how to display output.
    - **Command dispatch via a dict.**  Adding a command means writing a
      method and adding one dict entry.
    - **Simulator errors become ``Error: ...`` lines.**  A refused
      operation never ends the session.
"""

from collections.abc import Callable

from pagesim.errors import PagingError
from pagesim.memory.state import PageState
from pagesim.session import Mode, Session, reset

# Type alias for a command handler: takes a list of args, returns output.
_Handler = Callable[[list[str]], str]

_DEFAULT_LOG_LINES = 20


def _parse_int(text: str, what: str) -> int:
    try:
        return int(text)
    except ValueError:
        msg = f"invalid {what} '{text}'"
        raise ValueError(msg) from None


class Shell:
    """Command interpreter over one simulator session.

    ``reset`` replaces the session wholesale; every other command works
    on the current one.
    """

    EXIT_SENTINEL = "__EXIT__"

    def __init__(self, *, session: Session | None = None) -> None:
        """Create a shell, starting a demand-paging session if none is given.

        Args:
            session: The session to drive.

        """
        self._session = session or reset(Mode.DEMAND)
        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "reset": self._cmd_reset,
            "ps": self._cmd_ps,
            "select": self._cmd_select,
            "access": self._cmd_access,
            "frames": self._cmd_frames,
            "resolve": self._cmd_resolve,
            "cancel": self._cmd_cancel,
            "ram": self._cmd_ram,
            "swap": self._cmd_swap,
            "table": self._cmd_table,
            "log": self._cmd_log,
            "check": self._cmd_check,
            "exit": self._cmd_exit,
        }

    @property
    def session(self) -> Session:
        """Return the current session."""
        return self._session

    @property
    def command_names(self) -> list[str]:
        """Return the sorted list of command names."""
        return sorted(self._commands)

    def execute(self, command: str) -> str:
        """Parse and execute one command.

        Args:
            command: The raw command string (e.g. "access 2").

        Returns:
            The command output, an error message, or the exit sentinel.

        """
        parts = command.split()
        if not parts:
            return ""
        name, args = parts[0], parts[1:]
        handler = self._commands.get(name)
        if handler is None:
            return f"Unknown command: {name}"
        try:
            return handler(args)
        except (PagingError, ValueError) as e:
            return f"Error: {e}"

    # -- Commands -----------------------------------------------------------

    def _cmd_help(self, _args: list[str]) -> str:
        """List available commands."""
        return "Available commands: " + ", ".join(self.command_names)

    def _cmd_reset(self, args: list[str]) -> str:
        """Start a new session: ``reset [1|2]`` (default: current mode)."""
        mode = Mode(args[0]) if args else self._session.mode
        self._session = reset(mode, self._session.config)
        return f"System reset. Mode: {mode.label}."

    def _cmd_ps(self, _args: list[str]) -> str:
        """List processes with their resident and swapped page counts."""
        session = self._session
        lines = ["PID  RESIDENT  SWAPPED"]
        for pid in session.config.pids:
            table = session.state.page_table(pid)
            resident = sum(1 for e in table if e.state is PageState.RESIDENT)
            swapped = sum(1 for e in table if e.state is PageState.SWAPPED)
            marker = "*" if pid == session.active_pid else " "
            lines.append(f"{marker}P{pid}  {resident:>8}  {swapped:>7}")
        return "\n".join(lines)

    def _cmd_select(self, args: list[str]) -> str:
        """Put a process on the CPU: ``select <pid>``."""
        if not args:
            return "Usage: select <pid>"
        pid = _parse_int(args[0], "PID")
        self._session.select_process(pid)
        return f"Context switched to P{pid}."

    def _cmd_access(self, args: list[str]) -> str:
        """Access a page of the active process: ``access <page>``."""
        if not args:
            return "Usage: access <page>"
        page = _parse_int(args[0], "page")
        pid = self._session.active_pid
        result = self._session.access(pid, page)
        if result.is_hit:
            return (
                f"HIT: P{pid} page {page} -> frame {result.frame} "
                f"(virtual {result.virtual_address} -> physical {result.physical_address})"
            )
        where = f" (swap block {result.swap_block})" if result.swap_block >= 0 else ""
        return (
            f"PAGE FAULT [{result.fault_kind}]: P{pid} page {page} is not in RAM{where}.\n"
            f"Choose a frame with 'resolve <frame>' (see 'frames'), or 'cancel'."
        )

    def _cmd_frames(self, _args: list[str]) -> str:
        """List the frames offered for the pending fault."""
        session = self._session
        pending = session.pending_fault
        if pending is None:
            return "No page fault is pending."
        candidates = session.candidate_frames()
        ram = session.state.ram
        header = f"P{pending.pid} needs page {pending.page}."
        if all(ram[f].is_user for f in candidates):
            header += " RAM FULL! Choose a victim to swap out:"
        else:
            header += " Choose a free frame:"
        return "\n".join([header, *(f"  frame {f}: {ram[f]}" for f in candidates)])

    def _cmd_resolve(self, args: list[str]) -> str:
        """Resolve the pending fault into a frame: ``resolve <frame>``."""
        if not args:
            return "Usage: resolve <frame>"
        frame = _parse_int(args[0], "frame")
        result = self._session.resolve_pending(frame)
        if not result.success:
            return f"Error: {result.message}"
        lines: list[str] = []
        outcome = result.outcome
        if outcome is not None and outcome.victim is not None:
            lines.append(f"Victim {outcome.victim} moved to swap block {outcome.evicted_to}.")
        if outcome is not None and outcome.freed_swap_block >= 0:
            lines.append(f"Page brought in from swap block {outcome.freed_swap_block}.")
        lines.append(f"Page mapped in frame {result.frame}.")
        return "\n".join(lines)

    def _cmd_cancel(self, _args: list[str]) -> str:
        """Abandon the pending fault."""
        pending = self._session.cancel()
        return f"Page fault for P{pending.pid} page {pending.page} cancelled."

    def _cmd_ram(self, _args: list[str]) -> str:
        """Show RAM frame ownership."""
        config = self._session.config
        lines: list[str] = []
        for frame, record in enumerate(self._session.state.ram):
            label = str(record)
            if record.is_system:
                label = config.reserved_frames.get(frame, "system")
            lines.append(f"Q{frame:<3} {label}")
        return "\n".join(lines)

    def _cmd_swap(self, _args: list[str]) -> str:
        """Show occupied swap blocks."""
        used = [(b, r) for b, r in enumerate(self._session.state.swap) if r.is_user]
        if not used:
            return "Swap is empty."
        return "\n".join(f"B{block:<3} {record}" for block, record in used)

    def _cmd_table(self, args: list[str]) -> str:
        """Show a page table: ``table [pid]`` (default: active process)."""
        pid = _parse_int(args[0], "PID") if args else self._session.active_pid
        table = self._session.state.page_table(pid)
        lines = [f"Page table of P{pid}", "PAGE  STATE     LOCATION"]
        for page, entry in enumerate(table):
            location = "-" if entry.state is PageState.INVALID else str(entry.location)
            lines.append(f"{page:<5} {entry.state:<9} {location}")
        return "\n".join(lines)

    def _cmd_log(self, args: list[str]) -> str:
        """Show recent trace entries: ``log [count]``."""
        count = _parse_int(args[0], "count") if args else _DEFAULT_LOG_LINES
        entries = self._session.logger.tail(count)
        return "\n".join(str(e) for e in entries) if entries else "No log entries."

    def _cmd_check(self, _args: list[str]) -> str:
        """Verify that the ownership tables and page tables agree."""
        problems = self._session.state.check_invariants()
        if not problems:
            return "Memory state is consistent."
        return "\n".join(problems)

    def _cmd_exit(self, _args: list[str]) -> str:
        """Signal the REPL to stop."""
        return self.EXIT_SENTINEL
