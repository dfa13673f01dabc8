"""PyPageSim — a teaching simulator for address translation and demand paging.

Typical use::

    from pagesim import Mode, reset

    session = reset(Mode.DEMAND)
    result = session.access(1, 0)            # FAULT (cold start)
    session.resolve(1, 0, target_frame=5)    # page 0 of P1 → frame 5
"""

from pagesim.config import PagingConfig
from pagesim.session import Mode, PendingFault, ResolveResult, Session, reset

__all__ = ["Mode", "PagingConfig", "PendingFault", "ResolveResult", "Session", "reset"]
