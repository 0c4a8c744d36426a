"""
Element resolution for AI-authored selectors.

Strategies run in order and stop at the first hit:
1. exact selector
2. text search driven by keywords pulled from the step description
3. relaxed selectors (nearby nth-of-type indices, generic equivalents)
4. positional pick on the index-free base selector, clamped to range
"""

import logging
import re
from typing import Any, Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# Only the trailing index counts; ancestors keep theirs
NTH_OF_TYPE_RE = re.compile(r":nth-of-type\((\d+)\)\s*$")
QUOTED_RE = re.compile(r"'([^']+)'|\"([^\"]+)\"")
ACTION_WORDS_RE = re.compile(r"\b(sign up|login|submit|get|access|early|button|click)\b", re.IGNORECASE)
ANCHOR_RE = re.compile(r"(?:^|[\s>+~,(])a(?=$|[\s\[.:#>+~,)])")

_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = "abcdefghijklmnopqrstuvwxyz"

# (label, xpath template); {needle} is an XPath string literal
TEXT_SEARCH_TEMPLATES: Tuple[Tuple[str, str], ...] = (
    ("button text", f"//button[contains(translate(text(), '{_UPPER}', '{_LOWER}'), {{needle}})]"),
    ("link text", f"//a[contains(translate(text(), '{_UPPER}', '{_LOWER}'), {{needle}})]"),
    ("clickable text",
     f"//*[@role='button' or @onclick or name()='button' or name()='a']"
     f"[contains(translate(text(), '{_UPPER}', '{_LOWER}'), {{needle}})]"),
    ("partial text", f"//*[contains(translate(., '{_UPPER}', '{_LOWER}'), {{needle}})]"),
)

GENERIC_BUTTON = ('button', '[role="button"]', 'input[type="button"]', 'input[type="submit"]')
GENERIC_INPUT = ('input', 'input[type="text"]', 'input[type="email"]')
GENERIC_ANCHOR = ('a', 'a[href]')


def extract_nth_index(selector: str) -> int:
    """1-based nth-of-type index encoded in the selector, 1 when absent."""
    match = NTH_OF_TYPE_RE.search((selector or "").strip())
    return int(match.group(1)) if match else 1


def strip_nth_index(selector: str) -> str:
    return NTH_OF_TYPE_RE.sub("", (selector or "").strip()).strip()


def extract_text_keywords(description: Optional[str]) -> List[str]:
    """Quoted substrings first, then action words; de-duplicated case-insensitively."""
    if not description:
        return []

    candidates = [single or double for single, double in QUOTED_RE.findall(description)]
    candidates.extend(m.group(0) for m in ACTION_WORDS_RE.finditer(description))

    seen = set()
    keywords = []
    for candidate in candidates:
        candidate = candidate.strip()
        key = candidate.lower()
        if candidate and key not in seen:
            seen.add(key)
            keywords.append(candidate)
    return keywords


def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath expression."""
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    parts = value.split('"')
    return "concat(" + ", '\"', ".join(f'"{p}"' for p in parts) + ")"


def build_text_search_xpaths(keyword: str) -> List[Tuple[str, str]]:
    needle = xpath_literal(keyword.lower())
    return [(label, template.format(needle=needle)) for label, template in TEXT_SEARCH_TEMPLATES]


def generate_fallback_selectors(selector: str) -> List[str]:
    """Relaxed variants of a selector, most specific first."""
    fallbacks: List[str] = []
    selector = selector or ""

    if NTH_OF_TYPE_RE.search(selector):
        base = strip_nth_index(selector)
        current = extract_nth_index(selector)
        for i in range(max(1, current - 2), current + 3):
            if i != current:
                fallbacks.append(f"{base}:nth-of-type({i})")
        fallbacks.append(f"{base}:first-of-type")
        fallbacks.append(f"{base}:last-of-type")
        fallbacks.append(base)

    if "button" in selector:
        fallbacks.extend(GENERIC_BUTTON)
    if "input" in selector:
        fallbacks.extend(GENERIC_INPUT)
    if ANCHOR_RE.search(selector):
        fallbacks.extend(GENERIC_ANCHOR)

    deduped = []
    for candidate in fallbacks:
        if candidate and candidate != selector and candidate not in deduped:
            deduped.append(candidate)
    return deduped


class ElementResolver:
    """Turn a selector + description hint into one live element handle."""

    def __init__(self, page: Any):
        self.page = page
        self.strategies: List[Tuple[str, Callable]] = [
            ("exact", self._exact),
            ("text", self._by_text),
            ("relaxed", self._relaxed),
            ("positional", self._positional),
        ]

    async def query(self, selector: str):
        try:
            return await self.page.query_selector(selector)
        except Exception as e:
            # Malformed selectors from the planner are a miss, not a failure
            logger.debug(f"Selector query failed for {selector!r}: {e}")
            return None

    async def query_all(self, selector: str) -> Sequence[Any]:
        try:
            return await self.page.query_selector_all(selector)
        except Exception as e:
            logger.debug(f"Selector query failed for {selector!r}: {e}")
            return []

    async def _exact(self, selector: str, description: str):
        return await self.query(selector)

    async def _by_text(self, selector: str, description: str):
        for keyword in extract_text_keywords(description):
            for label, xpath in build_text_search_xpaths(keyword):
                element = await self.query(f"xpath={xpath}")
                if element:
                    logger.debug(f"Element found by {label}: keyword={keyword!r}")
                    return element
        return None

    async def _relaxed(self, selector: str, description: str):
        for candidate in generate_fallback_selectors(selector):
            element = await self.query(candidate)
            if element:
                logger.debug(f"Element found with fallback selector {candidate!r} (original {selector!r})")
                return element
        return None

    async def _positional(self, selector: str, description: str):
        base = strip_nth_index(selector)
        if not base:
            return None
        elements = await self.query_all(base)
        if not elements:
            return None
        target = extract_nth_index(selector)
        picked = max(0, min(target, len(elements)) - 1)
        logger.debug(f"Element picked by position: base={base!r} found={len(elements)} index={picked}")
        return elements[picked]

    async def resolve(self, selector: str, description: str = ""):
        """Return the first element any strategy finds, or None."""
        logger.debug(f"Resolving element: selector={selector!r} description={description!r}")
        for name, strategy in self.strategies:
            element = await strategy(selector, description or "")
            if element:
                logger.debug(f"Resolved {selector!r} via {name} strategy")
                return element

        logger.warning(f"Element not found with any strategy: {selector!r} ({description})")
        return None
