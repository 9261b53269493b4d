"""
core/flash.py -- One-shot notifications carried in the signed session cookie.

Screens push a message before redirecting; the next rendered page pops and
shows them as toasts. The session object is Starlette's request.session
(a dict), so nothing here imports from the web framework.
"""

from collections.abc import MutableMapping

_KEY = "_flash"

SUCCESS = "success"
ERROR = "error"
WARNING = "warning"
INFO = "info"


def push(session: MutableMapping, category: str, message: str) -> None:
    messages = list(session.get(_KEY, []))
    entry = {"category": category, "message": message}
    if entry in messages:
        return
    messages.append(entry)
    session[_KEY] = messages


def pop_all(session: MutableMapping) -> list[dict]:
    return session.pop(_KEY, None) or []
