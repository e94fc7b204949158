"""Regex helpers for utterance and rule patterns.

Utterances double as case-insensitive regular expressions. Patterns that do
not compile, or that contain nested quantifiers prone to catastrophic
backtracking, are rejected and callers skip them silently.
"""

import logging
import re
from functools import lru_cache

logger = logging.getLogger(__name__)

MAX_PATTERN_LENGTH = 1000

_DANGEROUS_PATTERNS = (
    re.compile(r"\([^)]*\+\)\+"),  # (a+)+
    re.compile(r"\([^)]*\*\)\*"),  # (a*)*
    re.compile(r"\([^)]*\?\)\?"),  # (a?)?
    re.compile(r"\([^)]*\{[^}]*\}\)\{[^}]*\}"),  # (a{1,3}){2}
)


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """Compile a pattern case-insensitively, or return None if it is unusable."""
    if not isinstance(pattern, str) or len(pattern) > MAX_PATTERN_LENGTH:
        return None
    for dangerous in _DANGEROUS_PATTERNS:
        if dangerous.search(pattern):
            logger.debug(f"[Patterns] Rejected nested-quantifier pattern: {pattern!r}")
            return None
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.debug(f"[Patterns] Skipping invalid pattern {pattern!r}: {e}")
        return None


def is_safe_pattern(pattern: str) -> bool:
    """Check whether a pattern compiles and passes the backtracking guard."""
    return compile_pattern(pattern) is not None


def pattern_matches(pattern: str, text: str) -> bool:
    """Search ``text`` for ``pattern``; unusable patterns never match."""
    compiled = compile_pattern(pattern)
    return compiled is not None and compiled.search(text) is not None


def normalize_text(text: str) -> str:
    return text.strip().lower()
