"""Shell-style glob matching for changed file paths.

Patterns are translated into anchored regular expressions. Supported syntax:

* ``*`` and ``?`` within a single path segment, ``[...]``/``[!...]`` classes
* ``**`` as a whole segment, matching zero or more directories
* ``{a,b}`` alternation (nestable) and numeric ranges such as ``{1..3}``
* extglobs ``@(a|b)``, ``?(a|b)``, ``*(a|b)``, ``+(a|b)`` and ``!(a|b)``
* a leading ``!`` negating the whole pattern
* backslash escapes

Several patterns can be combined in one rule, separated by newlines or by
top-level commas. A path matches the rule when it matches at least one
positive pattern and no negated one.
"""

from __future__ import annotations

import re
from typing import Callable, List, Protocol, Tuple

from .models import MonomatrixError

GlobPredicate = Callable[[str], bool]

_EXTGLOB_PREFIXES = "@?*+!"
_NUMERIC_RANGE = re.compile(r"^(-?\d+)\.\.(-?\d+)$")
_MAX_RANGE_SIZE = 10_000
_OPENERS = {"{": "}", "(": ")", "[": "]"}


class MalformedGlobError(MonomatrixError):
    """Raised when an include/exclude pattern cannot be compiled."""


class GlobMatcher(Protocol):
    """Capability that turns a glob rule into a path predicate."""

    def compile(self, pattern: str) -> GlobPredicate:
        ...


class ShellGlobMatcher:
    """Default matcher implementing shell/globstar matching conventions."""

    def compile(self, pattern: str) -> GlobPredicate:
        patterns = split_patterns(pattern)
        if not patterns:
            raise MalformedGlobError(f"Glob {pattern!r} does not contain any pattern")

        positives: List[re.Pattern[str]] = []
        negatives: List[re.Pattern[str]] = []
        for item in patterns:
            negated, regex = compile_pattern(item)
            (negatives if negated else positives).append(regex)

        def predicate(path: str) -> bool:
            candidate = normalize_path(path)
            if any(regex.fullmatch(candidate) for regex in negatives):
                return False
            if not positives:
                return True
            return any(regex.fullmatch(candidate) for regex in positives)

        return predicate


def split_patterns(text: str) -> List[str]:
    """Split a rule into individual patterns on newlines and top-level commas."""
    patterns: List[str] = []
    for line in text.splitlines():
        for part in _split_top_level(line, ","):
            stripped = part.strip()
            if stripped:
                patterns.append(stripped)
    return patterns


def compile_pattern(pattern: str) -> Tuple[bool, re.Pattern[str]]:
    """Compile one pattern, returning ``(negated, regex)``."""
    negated = False
    body = pattern
    if body.startswith("!") and not body.startswith("!("):
        negated = True
        body = body[1:]
    body = normalize_path(body)
    if not body:
        raise MalformedGlobError(f"Glob {pattern!r} is empty")
    try:
        return negated, re.compile(_Translator(body).translate())
    except re.error as exc:
        raise MalformedGlobError(f"Invalid glob {pattern!r}: {exc}") from exc


def normalize_path(path: str) -> str:
    normalized = path
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


class _Translator:
    """Recursive-descent translation of a single glob into regex source."""

    def __init__(self, pattern: str) -> None:
        self._pattern = pattern

    def translate(self) -> str:
        return self._translate(self._pattern, top_level=True)

    def _translate(self, text: str, *, top_level: bool, segment_start: bool = True) -> str:
        out: List[str] = []
        i = 0
        n = len(text)
        while i < n:
            char = text[i]
            if char == "\\":
                if i + 1 >= n:
                    raise MalformedGlobError(f"Glob {self._pattern!r} ends with an escape")
                out.append(re.escape(text[i + 1]))
                i += 2
            elif char in _EXTGLOB_PREFIXES and i + 1 < n and text[i + 1] == "(":
                close = _find_closing(text, i + 1, self._pattern)
                inner = "|".join(
                    self._translate(alt, top_level=False)
                    for alt in _split_top_level(text[i + 2 : close], "|")
                )
                if char == "!":
                    # Reject the segment when ``inner`` followed by the rest of
                    # this segment's pattern would account for all of it.
                    tail = ""
                    if top_level:
                        tail = self._translate(
                            _split_top_level(text[close + 1 :], "/")[0],
                            top_level=False,
                            segment_start=False,
                        )
                    out.append(f"(?:(?!(?:{inner}){tail}(?:/|\\Z))[^/]*?)")
                else:
                    suffix = {"@": "", "?": "?", "*": "*", "+": "+"}[char]
                    out.append(f"(?:{inner}){suffix}")
                i = close + 1
            elif char == "*":
                j = i
                while j < n and text[j] == "*":
                    j += 1
                at_segment_start = (i == 0 and segment_start) or (i > 0 and text[i - 1] == "/")
                at_segment_end = j == n or text[j] == "/"
                if j - i >= 2 and at_segment_start and at_segment_end:
                    if j == n:
                        if out and out[-1] == "/":
                            out.pop()
                            out.append("(?:/.*)?")
                        else:
                            out.append(".*")
                    else:
                        out.append("(?:[^/]*/)*")
                        j += 1
                else:
                    out.append("[^/]*")
                i = j
            elif char == "?":
                out.append("[^/]")
                i += 1
            elif char == "[":
                close = _find_class_end(text, i)
                if close == -1:
                    raise MalformedGlobError(
                        f"Glob {self._pattern!r} has an unterminated character class"
                    )
                out.append(_translate_class(text[i + 1 : close]))
                i = close + 1
            elif char == "{":
                close = _find_closing(text, i, self._pattern)
                out.append(self._translate_braces(text[i + 1 : close]))
                i = close + 1
            else:
                out.append(re.escape(char))
                i += 1
        return "".join(out)

    def _translate_braces(self, content: str) -> str:
        numeric = _NUMERIC_RANGE.match(content)
        if numeric:
            start, end = int(numeric.group(1)), int(numeric.group(2))
            if abs(end - start) > _MAX_RANGE_SIZE:
                raise MalformedGlobError(f"Brace range {{{content}}} is too large")
            step = 1 if end >= start else -1
            values = range(start, end + step, step)
            return "(?:" + "|".join(re.escape(str(value)) for value in values) + ")"
        alternatives = _split_top_level(content, ",")
        if len(alternatives) < 2:
            # A brace pair without alternatives is literal text, as in the shell.
            return re.escape("{") + self._translate(content, top_level=False) + re.escape("}")
        translated = [self._translate(alt, top_level=False) for alt in alternatives]
        return "(?:" + "|".join(translated) + ")"


def _translate_class(content: str) -> str:
    negated = content[:1] in ("!", "^")
    if negated:
        content = content[1:]
    body = "".join("\\" + ch if ch in "\\[]^" else ch for ch in content)
    if negated:
        return f"[^/{body}]"
    return f"[{body}]"


def _find_class_end(text: str, start: int) -> int:
    """Return the index of the ``]`` closing the class at ``start``, or -1."""
    i = start + 1
    if text[i : i + 1] in ("!", "^"):
        i += 1
    # A leading ``]`` is a member of the class, not its terminator.
    if text[i : i + 1] == "]":
        i += 1
    return text.find("]", i)


def _find_closing(text: str, start: int, pattern: str) -> int:
    """Return the index of the bracket closing the one at ``start``."""
    stack = [_OPENERS[text[start]]]
    i = start + 1
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == "[":
            end = _find_class_end(text, i)
            i = end + 1 if end != -1 else i + 1
            continue
        if char in ("{", "("):
            stack.append(_OPENERS[char])
        elif char == stack[-1]:
            stack.pop()
            if not stack:
                return i
        i += 1
    raise MalformedGlobError(f"Glob {pattern!r} has an unbalanced {text[start]!r}")


def _split_top_level(text: str, separator: str) -> List[str]:
    """Split on ``separator`` occurrences outside of any bracket pair."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\" and i + 1 < len(text):
            current.append(text[i : i + 2])
            i += 2
            continue
        if char in ("{", "(", "["):
            depth += 1
        elif char in ("}", ")", "]") and depth > 0:
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1
    parts.append("".join(current))
    return parts


__all__ = [
    "GlobMatcher",
    "GlobPredicate",
    "MalformedGlobError",
    "ShellGlobMatcher",
    "compile_pattern",
    "normalize_path",
    "split_patterns",
]
