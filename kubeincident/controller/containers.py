"""Best-effort extraction of a failing container's name from a condition message.

The kubelet reports unready containers in the ``Ready``/``ContainersReady``
condition message, e.g.::

    containers with unready status: [web sidecar]

Grammar accepted by ``UnreadyStatusParser``::

    message  := <anything> MARKER "[" IDENT { " " IDENT } "]" <anything>
    MARKER   := "containers with unready status: "
              | "containers with incomplete status: "
    IDENT    := DNS-1123 label

The first IDENT is returned. A message that does not match yields None and
callers fall back to the composite per-container report.
"""

from __future__ import annotations

import re
from typing import Protocol

_IDENT = r"[a-z0-9](?:[-a-z0-9]*[a-z0-9])?"

_RE_UNREADY = re.compile(
    r"containers with (?:unready|incomplete) status: \[\s*(" + _IDENT + r")(?:\s+" + _IDENT + r")*\s*\]"
)


class ErroredContainerParser(Protocol):
    """Finds the name of the container a condition message blames, if any."""

    def extract(self, message: str) -> str | None: ...


class UnreadyStatusParser:
    """Default parser for kubelet ``containers with unready status`` messages."""

    def extract(self, message: str) -> str | None:
        if not message:
            return None
        match = _RE_UNREADY.search(message)
        if match is None:
            return None
        return match.group(1)
