"""Alias resolver: recursive token substitution over a flat namespace.

A token is an identifier, optionally wrapped in angle brackets:

    resolve("<pe-asnum>:100", {"pe-asnum": "64512"})  ->  "64512:100"

Tokens that are not namespace keys are left verbatim. Substitution is
recursive; a definition that keeps expanding past MAX_DEPTH is reported
as a CyclicAliasError instead of exhausting the interpreter stack.
"""
import logging
import re
from typing import Iterable, Mapping, Optional

from ..errors import CyclicAliasError

logger = logging.getLogger(__name__)

MAX_DEPTH = 32

TOKEN_PATTERN = re.compile(r"<?([A-Za-z0-9_-]+)>?")


def resolve(
    text: str,
    namespace: Mapping[str, str],
    max_depth: int = MAX_DEPTH,
    _depth: int = 0,
) -> str:
    """Substitute every known token in text, recursively.

    Args:
        text: String possibly containing alias tokens
        namespace: Flat alias map
        max_depth: Maximum substitution nesting before giving up

    Raises:
        CyclicAliasError: If nesting exceeds max_depth
    """
    def _substitute(match: re.Match) -> str:
        key = match.group(1)
        if key not in namespace:
            return match.group(0)
        if _depth >= max_depth:
            raise CyclicAliasError(key, max_depth)
        return resolve(namespace[key], namespace, max_depth, _depth + 1)

    return TOKEN_PATTERN.sub(_substitute, text)


def resolve_map(
    mapping: Mapping[str, str],
    namespace: Mapping[str, str],
    max_depth: int = MAX_DEPTH,
) -> dict[str, str]:
    """Resolve both keys and values of a flat map into a new map."""
    return {
        resolve(key, namespace, max_depth): resolve(value, namespace, max_depth)
        for key, value in mapping.items()
    }


def build_reverse(
    namespace: Mapping[str, str],
    exclude: Iterable[str] = (),
) -> dict[str, str]:
    """Map each alias value back to the key that defines it.

    Keys in exclude are never reverse-displayed. When several keys share a
    value, the lexicographically smallest key wins.
    """
    excluded = set(exclude)
    reverse: dict[str, str] = {}
    for key in sorted(namespace):
        if key in excluded:
            continue
        value = namespace[key]
        if value in reverse:
            logger.debug(
                f"Alias value '{value}' shared by '{reverse[value]}' and "
                f"'{key}'; keeping '{reverse[value]}'"
            )
            continue
        reverse[value] = key
    return reverse


class AliasResolver:
    """Resolver bound to one merged namespace.

    Usage:
        resolver = AliasResolver(aliases, reverse_exclude=["rd"])
        resolver.resolve("<pe-asnum>:100")
        resolver.reverse["64512"]  ->  "pe-asnum"
    """

    def __init__(
        self,
        namespace: Mapping[str, str],
        reverse_exclude: Optional[Iterable[str]] = None,
        max_depth: int = MAX_DEPTH,
    ):
        self.namespace = dict(namespace)
        self.max_depth = max_depth
        self.reverse = build_reverse(self.namespace, reverse_exclude or ())

    def resolve(self, text: str) -> str:
        return resolve(text, self.namespace, self.max_depth)

    def resolve_map(self, mapping: Mapping[str, str]) -> dict[str, str]:
        return resolve_map(mapping, self.namespace, self.max_depth)
