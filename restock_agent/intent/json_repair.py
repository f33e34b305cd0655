"""
Tolerant JSON decoding for model output

Decoding walks an ordered chain of strategies, each returning a DecodeResult.
The first success wins; new tiers are added by extending the chain.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```(?:json|JSON)?")
SMART_QUOTES = {
    "“": '"',
    "”": '"',
    "„": '"',
    "‘": "'",
    "’": "'",
}


@dataclass
class DecodeResult:
    value: Any = None
    error: Optional[str] = None
    strategy: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


Strategy = Callable[[str], DecodeResult]


def strip_code_fences(text: Optional[str]) -> str:
    """Drop reasoning preambles and markdown fences around the payload"""
    cleaned = (text or "").strip()

    # Remove <think> tags (used by some models for reasoning)
    if "</think>" in cleaned:
        cleaned = cleaned.split("</think>", 1)[1]

    return CODE_FENCE.sub("", cleaned).strip()


def _scan(text: str, start: int = 0) -> Iterator[Tuple[int, str, bool]]:
    """Yield (index, char, quoted); quoted is True inside double-quoted strings"""
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            yield i, ch, True
            continue

        if ch == '"':
            in_string = True
            yield i, ch, True
        else:
            yield i, ch, False


def extract_first_object(text: str) -> Optional[str]:
    """
    Return the first top-level {...} substring, or None

    Braces inside double-quoted strings are ignored.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    for i, ch, quoted in _scan(text, start):
        if quoted:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def drop_trailing_commas(text: str) -> str:
    """Remove commas directly before a closing } or ], outside strings"""
    out = []
    comma = None
    for _, ch, quoted in _scan(text):
        if quoted or not ch.isspace():
            if comma is not None and not quoted and ch in "}]":
                del out[comma]
            comma = None
        if ch == "," and not quoted:
            comma = len(out)
        out.append(ch)
    return "".join(out)


def repair_json_text(text: str) -> str:
    """Normalize quote characters and drop trailing commas"""
    for bad, good in SMART_QUOTES.items():
        text = text.replace(bad, good)

    # Single-quoted pseudo-JSON
    if '"' not in text and "'" in text:
        text = text.replace("'", '"')

    return drop_trailing_commas(text)


def _loads(text: str) -> DecodeResult:
    try:
        return DecodeResult(value=json.loads(text))
    except json.JSONDecodeError as e:
        return DecodeResult(error=f"{e.msg} at line {e.lineno} column {e.colno}")


def decode_as_is(text: str) -> DecodeResult:
    return _loads(text)


def decode_first_object(text: str) -> DecodeResult:
    candidate = extract_first_object(text)
    if candidate is None:
        return DecodeResult(error="no JSON object found")
    return _loads(candidate)


def decode_repaired(text: str) -> DecodeResult:
    repaired = repair_json_text(text)
    return _loads(extract_first_object(repaired) or repaired)


DEFAULT_STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("as_is", decode_as_is),
    ("first_object", decode_first_object),
    ("repaired", decode_repaired),
)


def decode_llm_json(
    text: Optional[str],
    strategies: Sequence[Tuple[str, Strategy]] = DEFAULT_STRATEGIES,
) -> DecodeResult:
    """
    Decode model output with escalating tolerance

    Args:
        text: Raw model output
        strategies: Ordered (name, strategy) pairs

    Returns:
        The first successful DecodeResult, or the last failure
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        return DecodeResult(error="empty response")

    result = DecodeResult(error="no decode strategies")
    for name, strategy in strategies:
        result = strategy(cleaned)
        result.strategy = name
        if result.ok:
            return result
        logger.debug("Decode strategy %s failed: %s", name, result.error)
    return result
