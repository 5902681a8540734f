"""File-pattern, hot-keyword and rule matching for one changed file."""

import re
from functools import lru_cache
from typing import List, NamedTuple, Optional, Sequence

from hookreview.models.code_review import ChangedFile, ReviewComment, Severity
from hookreview.models.definitions import KeywordDefinition, RuleBinding
from hookreview.utils.logger import logger


@lru_cache(maxsize=512)
def _glob_to_regex(pattern: str) -> "re.Pattern[str]":
    translated = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(translated, re.IGNORECASE)


def matches_file_pattern(path: str, patterns: Optional[str]) -> bool:
    """True when ``path`` matches any comma-separated glob, or the list is blank.

    ``*`` matches any run of characters (slashes included) and ``?`` exactly
    one. Each glob is anchored on both ends and case-insensitive.
    """
    if not patterns or not patterns.strip():
        return True
    for pattern in patterns.split(","):
        pattern = pattern.strip()
        if pattern and _glob_to_regex(pattern).fullmatch(path):
            return True
    return False


class KeywordHit(NamedTuple):
    keyword: KeywordDefinition
    comment: ReviewComment


def keyword_matches(keyword: KeywordDefinition, text: str) -> bool:
    if keyword.is_regex:
        try:
            return re.search(keyword.pattern, text, re.IGNORECASE) is not None
        except re.error as e:
            logger.warning(
                f"Hot keyword {keyword.id} has an invalid regex '{keyword.pattern}': {e}"
            )
            return False
    return keyword.pattern.casefold() in text.casefold()


def keyword_comment(keyword: KeywordDefinition) -> ReviewComment:
    return ReviewComment(
        text=f"⚠️ **{keyword.category} Alert**: {keyword.alert_message}",
        severity=Severity.coerce(keyword.severity),
        category=keyword.category,
    )


def scan_keywords(
    changed_file: ChangedFile, keywords: Sequence[KeywordDefinition]
) -> List[KeywordHit]:
    """At most one hit per keyword, however often it occurs in the diff."""
    if not changed_file.patch:
        return []

    hits = []
    for keyword in keywords:
        if not keyword.active or not keyword.pattern:
            continue
        if not matches_file_pattern(changed_file.path, keyword.file_patterns):
            continue
        if keyword_matches(keyword, changed_file.patch):
            hits.append(KeywordHit(keyword, keyword_comment(keyword)))
    return hits


def select_rules(path: str, bindings: Sequence[RuleBinding]) -> List[RuleBinding]:
    """Applicable rules for ``path``, lowest effective priority first.

    ``bindings`` must already be in rule creation order; the sort is stable so
    equal priorities keep that order.
    """
    selected = [
        binding
        for binding in bindings
        if binding.rule.active
        and matches_file_pattern(path, binding.effective_file_patterns)
    ]
    return sorted(selected, key=lambda binding: binding.effective_priority)
