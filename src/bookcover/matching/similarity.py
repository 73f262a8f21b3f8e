# ABOUTME: Normalized text similarity used by scoring, verification, and planning.
# ABOUTME: Levenshtein ratio with exact and substring shortcuts, CJK-aware normalization.

import re
from collections.abc import Iterable

# Keep word characters plus hiragana, katakana, and CJK ideographs.
_STRIP_RE = re.compile(r"[^\w぀-ゟ゠-ヿ一-龯]")
_AUTHOR_SEPARATOR_RE = re.compile(r"[・\s]")

SUBSTRING_SIMILARITY = 0.85

# Contributor credits that name someone other than the author.
_NON_AUTHOR_MARKERS = (
    "訳",
    "翻訳",
    "編集",
    "監修",
    "編著",
    "翻案",
    "translator",
    "editor",
    "illustrator",
)


def normalize_text(text: str) -> str:
    """Lowercase and drop punctuation, whitespace, and symbols."""
    return _STRIP_RE.sub("", text.lower())


def normalize_author(name: str) -> str:
    """Normalize an author name, also removing the katakana middle dot."""
    return normalize_text(_AUTHOR_SEPARATOR_RE.sub("", name))


def levenshtein(a: str, b: str) -> int:
    """Classic dynamic-programming edit distance."""
    rows = len(a) + 1
    cols = len(b) + 1
    matrix = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,
                matrix[i][j - 1] + 1,
                matrix[i - 1][j - 1] + cost,
            )
    return matrix[-1][-1]


def _similarity_normalized(a: str, b: str) -> float:
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return SUBSTRING_SIMILARITY
    return 1.0 - levenshtein(a, b) / max(len(a), len(b))


def similarity(a: str, b: str) -> float:
    """Similarity of two strings in [0.0, 1.0] after normalization.

    Equal strings score 1.0 and a string contained in the other scores 0.85.
    Everything else falls back to one minus the normalized edit distance.
    """
    return _similarity_normalized(normalize_text(a), normalize_text(b))


def is_credited_contributor(name: str) -> bool:
    """Whether an author entry credits a translator, editor, or similar."""
    lowered = name.lower()
    return any(marker in lowered for marker in _NON_AUTHOR_MARKERS)


def author_similarity(query_author: str, candidate_authors: Iterable[str]) -> float:
    """Best similarity between the queried author and any candidate author.

    Contributors credited as translators, editors, or illustrators are skipped.
    Returns 0.0 when there is no author to compare on either side.
    """
    target = normalize_author(query_author)
    if not target:
        return 0.0

    best = 0.0
    for name in candidate_authors:
        if is_credited_contributor(name):
            continue
        found = normalize_author(name)
        if not found:
            continue
        best = max(best, _similarity_normalized(target, found))
    return best
