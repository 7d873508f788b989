"""Terraform-safe naming for DaVinci resources.

Labels are escaped rather than lossy-replaced so two distinct labels never
collapse into one base name: every character outside ``[A-Za-z0-9_-]`` becomes
``-XXXX-`` (hex code point), and the result carries the ``pingcli__`` prefix.
"""

import logging
import re
from typing import Dict, Set

logger = logging.getLogger(__name__)

NAME_PREFIX = "pingcli__"

_ILLEGAL_CHARS = re.compile(r"[^0-9A-Za-z_\-]")


def _escape(label: str) -> str:
    return _ILLEGAL_CHARS.sub(lambda m: f"-{ord(m.group(0)):04X}-", label)


def sanitize(label: str) -> str:
    """Sanitize a free-text label into a Terraform resource name.

    Example:
        >>> sanitize("My HTTP Connector")
        'pingcli__My-0020-HTTP-0020-Connector'
    """
    return NAME_PREFIX + _escape(label)


def sanitize_composite(*labels: str) -> str:
    """Sanitize a multi-field identity, e.g. a variable's name and context."""
    return NAME_PREFIX + "_".join(_escape(label) for label in labels)


def strip_prefix(name: str) -> str:
    """Drop the namespace prefix, for building derived identifiers."""
    if name.startswith(NAME_PREFIX):
        return name[len(NAME_PREFIX) :]
    return name


class NameRegistry:
    """Per-run uniqueness counter for sanitized names.

    Shared across all resource kinds. The first occurrence of a name is
    returned unchanged; later occurrences get ``_2``, ``_3`` and so on, in
    registration order. A suffix already handed out (including a label that
    itself ends in ``_2``) is skipped, so no two calls return the same name.
    """

    def __init__(self) -> None:
        self._counts: Dict[str, int] = {}
        self._issued: Set[str] = set()

    def ensure_unique(self, name: str) -> str:
        count = self._counts.get(name, 0) + 1
        self._counts[name] = count
        if name not in self._issued:
            self._issued.add(name)
            return name

        suffix = max(count, 2)
        unique = f"{name}_{suffix}"
        while unique in self._issued:
            suffix += 1
            unique = f"{name}_{suffix}"
        self._issued.add(unique)
        logger.debug(f"Name collision on '{name}', using '{unique}'")
        return unique

    def seen(self, name: str) -> int:
        """How many times a base name has been requested."""
        return self._counts.get(name, 0)
