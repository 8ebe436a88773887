#!/usr/bin/env python3
"""
Whole-word text replacements for TTS Overlay.

Each configured pattern becomes a regex that only matches complete words.
A backslash right before a word suppresses its replacement, so
``\\brb`` is spoken as ``brb`` even when ``brb`` has a rule.
"""

import re
import sys
from dataclasses import dataclass
from typing import List, Mapping

ESCAPE_MARKER = '\\'


@dataclass(frozen=True)
class CompiledMatcher:
    """A compiled whole-word rule and its literal replacement"""
    pattern: str
    regex: re.Pattern
    replacement: str

    def apply(self, text: str) -> str:
        """Run one full substitution pass over text"""
        return self.regex.sub(self._substitute, text)

    def _substitute(self, match: re.Match) -> str:
        # Escaped word: drop the marker, keep the word as typed
        if match.group(1) is not None:
            return match.group(2)
        return self.replacement


def build_regex(pattern: str) -> str:
    """Wrap a pattern so it matches whole words with an optional escape"""
    return r'(\\)?(\b' + pattern + r'\b)'


def compile_replacements(replacements: Mapping[str, str]) -> List[CompiledMatcher]:
    """
    Compile a pattern -> replacement mapping into matchers.

    Matchers keep the mapping's iteration order, which for a TOML table is
    document order. A pattern that fails to compile is skipped with a
    warning; the remaining rules are still returned.

    Args:
        replacements: Mapping of regex pattern to literal replacement text

    Returns:
        List of CompiledMatcher in application order
    """
    compiled: List[CompiledMatcher] = []

    for pattern, replacement in replacements.items():
        new_pattern = build_regex(pattern)
        try:
            regex = re.compile(new_pattern)
        except re.error as e:
            print(f"⚠️  Failed to compile replacement '{new_pattern}': {e}",
                  file=sys.stderr, flush=True)
            continue

        compiled.append(CompiledMatcher(pattern=pattern, regex=regex, replacement=replacement))

    return compiled


def apply_replacements(text: str, matchers: List[CompiledMatcher]) -> str:
    """
    Apply every matcher to text, one pass per matcher, in order.

    Later matchers see the output of earlier ones, so a replacement can be
    rewritten again by a rule further down the list.
    """
    current_text = text
    for matcher in matchers:
        current_text = matcher.apply(current_text)
    return current_text
