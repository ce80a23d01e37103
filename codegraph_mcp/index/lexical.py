"""Lexical helpers: identifier-aware tokenisation and explainability."""

import re

from .models import Chunk


FILLER_WORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "be", "been",
    "to", "of", "and", "or", "in", "on", "at", "for", "with", "by",
})

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*|\d+")
# Splits "getUserById" -> get, User, By, Id and "HTTPServer" -> HTTP, Server
_CAMEL_PART = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")


def split_identifier(identifier: str) -> list[str]:
    """Split a camelCase / snake_case identifier into lower-case words.

    e.g., "getUserById" -> ["get", "user", "by", "id"]
    e.g., "get_user_by_id" -> ["get", "user", "by", "id"]
    """
    words = []
    for piece in identifier.split("_"):
        if piece:
            words.extend(p.lower() for p in _CAMEL_PART.findall(piece))
    return words


def tokenize(text: str) -> list[str]:
    """Tokenise source or prose into lower-case terms.

    Whole identifiers are kept alongside their split words so that both
    "getuser" and "get"/"user" can match. Single characters are dropped.
    """
    tokens = []
    for match in _IDENTIFIER.finditer(text):
        ident = match.group(0)
        lowered = ident.lower()
        parts = split_identifier(ident)
        if len(parts) > 1 and len(lowered) > 1:
            tokens.append(lowered)
        tokens.extend(p for p in parts if len(p) > 1)
    return tokens


def extract_query_terms(query: str) -> list[str]:
    """Extract distinct search terms from a query string.

    Args:
        query: Query string

    Returns:
        Terms in first-seen order, without filler words
    """
    seen = set()
    terms = []
    for word in re.split(r"\s+", query.lower()):
        word = word.strip(".,;:!?\"'()[]{}")
        if len(word) > 2 and word not in FILLER_WORDS and word not in seen:
            seen.add(word)
            terms.append(word)
    return terms


def find_matching_terms(query: str, content: str) -> list[str]:
    """Find query terms that literally occur in content (case-insensitive).

    Args:
        query: Search query
        content: Chunk text

    Returns:
        The query terms present in content
    """
    content_lower = content.lower()
    return [t for t in extract_query_terms(query) if t in content_lower]


def describe_similarity(source: Chunk, target: Chunk, shared_terms: list[str] | None = None) -> str:
    """Explain why two chunks were reported as similar."""
    reasons = []

    if source.chunk_type == target.chunk_type:
        reasons.append(f"Both are {source.chunk_type}s")

    if len(source.symbols) == len(target.symbols):
        reasons.append("Similar complexity")

    lines_a, lines_b = source.line_count, target.line_count
    if lines_a and lines_b and min(lines_a, lines_b) / max(lines_a, lines_b) >= 0.75:
        reasons.append("Similar length")

    if shared_terms:
        reasons.append("Shared terms: " + ", ".join(shared_terms[:5]))

    return " • ".join(reasons) if reasons else "Similar embedding"


def shared_identifiers(a: str, b: str, limit: int = 5) -> list[str]:
    """Identifiers (3+ chars, not filler) that appear in both texts, most frequent first."""
    counts_a: dict[str, int] = {}
    for tok in tokenize(a):
        if len(tok) > 2 and tok not in FILLER_WORDS:
            counts_a[tok] = counts_a.get(tok, 0) + 1
    tokens_b = set(tokenize(b))
    shared = [t for t in counts_a if t in tokens_b]
    shared.sort(key=lambda t: (-counts_a[t], t))
    return shared[:limit]
