"""Turn raw Acumatica error text into messages a user can act on."""
import re
from typing import Any, Callable, List, Match, Optional, Pattern, Tuple

MAX_MESSAGE_LENGTH = 300
MAX_DEPTH = 5

Rewriter = Callable[[Match, int], str]


def _recurse(group: int, fallback: Optional[str] = None) -> Rewriter:
    def rewrite(match: Match, depth: int) -> str:
        inner = (match.group(group) or "").strip()
        if not inner and fallback is not None:
            return fallback
        return humanize_error(inner, depth + 1)

    return rewrite


def _constant(message: str) -> Rewriter:
    return lambda match, depth: message


def _failed_insert(match: Match, depth: int) -> str:
    entity = match.group(1)
    inner = (match.group(2) or "").strip()
    if not inner:
        return f"Failed to create {entity} record"
    return f"Failed to create {entity} record: {humanize_error(inner, depth + 1)}"


# First match wins, order matters.
RULES: List[Tuple[Pattern, Rewriter]] = [
    (re.compile(r"^PX\.[\w.]+Exception:\s*(.+)", re.I | re.S), _recurse(1)),
    (
        re.compile(r"Error:\s*'([^']+)'\s*cannot be found", re.I),
        lambda m, d: f'Record "{m.group(1)}" was not found in Acumatica',
    ),
    (
        re.compile(r"Inserting\s+'([^']+)'\s+record\s+raised\s+at\s+least\s+one\s+error[.:]\s*(.*)", re.I | re.S),
        _failed_insert,
    ),
    (
        re.compile(r"An error occurred during processing[^.]*\.\s*(.*)", re.I | re.S),
        _recurse(1, fallback="An error occurred during processing"),
    ),
    (
        re.compile(r"duplicate key|already exists|unique constraint|violates unique", re.I),
        _constant("A record with this key already exists"),
    ),
    (
        re.compile(r"(?:required field|cannot be empty|is required)[^'\"]*['\"]([^'\"]+)['\"]", re.I),
        lambda m, d: f'Required field "{m.group(1)}" is missing or empty',
    ),
    (re.compile(r"^Error\s*#?\d+:\s*(.*)", re.I | re.S), _recurse(1)),
    (
        re.compile(r"record has been deleted|another process", re.I),
        _constant("The record was modified or deleted by another process. Try again."),
    ),
    (
        re.compile(r"timeout|timed out", re.I),
        _constant("The request timed out. The Acumatica server may be busy."),
    ),
    (
        re.compile(r"unauthorized|authentication failed|login failed", re.I),
        _constant("Authentication failed. Check your connection credentials."),
    ),
]

_PREFIX_RE = re.compile(r"^(?:Error|Exception):\s*", re.I)


def humanize_error(raw: Optional[str], depth: int = 0) -> str:
    """Rewrite a raw error message with the first matching rule.

    Rewriters that dig into an inner message call back in with ``depth + 1``;
    past ``MAX_DEPTH`` the message is only cleaned up.

    Args:
        raw: Message as returned by Acumatica (or by the gateway)
        depth: Current recursion depth

    Returns:
        Human readable message, never empty
    """
    message = (raw or "").strip()
    if not message:
        return "Unknown error"

    if depth < MAX_DEPTH:
        for pattern, rewrite in RULES:
            match = pattern.search(message)
            if match:
                return rewrite(match, depth)

    return _clean(message)


def _clean(message: str) -> str:
    cleaned = message
    while True:
        stripped = _PREFIX_RE.sub("", cleaned, count=1).strip()
        if stripped == cleaned:
            break
        cleaned = stripped

    if not cleaned:
        return "Unknown error"
    if len(cleaned) > MAX_MESSAGE_LENGTH:
        return cleaned[: MAX_MESSAGE_LENGTH - 3] + "..."
    return cleaned


def extract_inner_message(error_json: Any) -> Optional[str]:
    """Return the innermost message of a nested ``innerException`` chain."""
    if not isinstance(error_json, dict):
        return None

    message = None
    current = error_json
    seen = 0
    while isinstance(current, dict) and seen < 20:
        text = current.get("exceptionMessage") or current.get("message")
        if text:
            message = str(text)
        current = current.get("innerException")
        seen += 1

    return message
