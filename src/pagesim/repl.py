"""Interactive REPL (Read-Eval-Print Loop) for the paging simulator.

The REPL wraps the shell in the classic loop:

    1. **Read** — display a prompt and read user input.
    2. **Eval** — pass the command to ``shell.execute()``.
    3. **Print** — display the result.
    4. **Loop** — repeat until the shell returns the exit sentinel.

The helper functions (``build_prompt``, ``format_banner``) are pure and
testable.  The ``run()`` function is the I/O entrypoint.
"""

import readline

from pagesim.session import Session
from pagesim.shell import Shell

_BANNER_WIDTH = 38


def format_banner(session: Session) -> str:
    """Format the start-up banner for a session.

    Args:
        session: The session being started.

    Returns:
        A formatted string suitable for printing to the console.

    """
    border = "=" * _BANNER_WIDTH
    header = f"\n  {border}\n        PyPageSim v0.1.0\n   Paging and page-fault simulator\n  {border}\n\n"
    body = "\n".join(f"  {entry.message}" for entry in session.logger.entries)
    footer = "\nType 'help' for commands, 'exit' to quit.\n"
    return header + body + footer


def build_prompt(session: Session) -> str:
    """Build the prompt showing the active process and any pending fault.

    Args:
        session: The current session.

    Returns:
        A prompt like ``P1 $ `` or ``P1 [fault: page 2] $ ``.

    """
    pending = session.pending_fault
    if pending is not None:
        return f"P{session.active_pid} [fault: page {pending.page}] $ "
    return f"P{session.active_pid} $ "


def run() -> None:
    """Run the interactive REPL until ``exit``, Ctrl+D or Ctrl+C."""
    shell = Shell()

    readline.set_completer_delims(" \t")
    readline.parse_and_bind("tab: complete")
    readline.set_completer(
        lambda text, state: ([c for c in shell.command_names if c.startswith(text)] + [None])[state]
    )

    print(format_banner(shell.session))  # noqa: T201

    try:
        while True:
            try:
                command = input(build_prompt(shell.session))
            except EOFError:
                # Ctrl+D — graceful exit
                print()  # noqa: T201
                break

            result = shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                break
            if result:
                print(result)  # noqa: T201

    except KeyboardInterrupt:
        print("\nInterrupted.")  # noqa: T201

    finally:
        print("Simulator stopped.")  # noqa: T201
