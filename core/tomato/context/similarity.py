"""
Normalized edit-distance similarity between names.

similarity() is the unit the resolver composes: 1.0 for identical names
(ignoring case), falling towards 0.0 as the Levenshtein distance
approaches the length of the longer name.
"""

# Minimum score for a fuzzy match to be accepted without asking.
SIMILARITY_THRESHOLD = 0.6


def levenshtein(a: str, b: str) -> int:
    """Number of single-character insertions, deletions or substitutions from a to b."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,              # deletion
                current[j - 1] + 1,           # insertion
                previous[j - 1] + (ca != cb),  # substitution
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Case-insensitive similarity score in [0, 1]."""
    a, b = a.lower(), b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest
