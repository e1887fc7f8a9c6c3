"""Post-commit dispatch to downstream notifiers (email, activity log, push).

Listeners run after a ledger write has been committed. A failing listener is
logged and skipped; it never turns a committed ledger write into an error.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[str, object], None]

_listeners: list[Listener] = []


def register_listener(listener: Listener) -> None:
    if listener not in _listeners:
        _listeners.append(listener)


def unregister_listener(listener: Listener) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


def clear_listeners() -> None:
    _listeners.clear()


def notify(event: str, record) -> int:
    """Deliver ``event`` to every listener; return how many succeeded."""
    delivered = 0
    for listener in list(_listeners):
        try:
            listener(event, record)
        except Exception:
            logger.exception(
                "Notifier failed",
                extra={"ledger_event": event, "record_id": getattr(record, "id", None)},
            )
            continue
        delivered += 1
    return delivered
