"""Title similarity scoring used to break movie-vs-TV ties.

The score is a positional mismatch count, not a true edit distance: one extra
leading character shifts every later comparison. The type resolver's tie-break
behaviour depends on this exact metric.
"""

CONTAINMENT_SCORE = 0.8  # Returned whenever one title contains the other


def calculate_title_similarity(title1: str, title2: str) -> float:
    """Score how close two titles are, between 0.0 and 1.0.

    Args:
        title1: Title extracted from the filename.
        title2: Candidate name from the metadata provider.

    Returns:
        0.0 if either title is empty, CONTAINMENT_SCORE if one case-folded
        title contains the other, otherwise
        ``1 - (positional mismatches + length difference) / max length``.
    """
    if not title1 or not title2:
        return 0.0

    t1 = title1.casefold()
    t2 = title2.casefold()

    if t1 in t2 or t2 in t1:
        return CONTAINMENT_SCORE

    # Iterate code points so CJK titles compare per character
    chars1 = list(t1)
    chars2 = list(t2)
    max_length = max(len(chars1), len(chars2))
    min_length = min(len(chars1), len(chars2))

    distance = sum(1 for i in range(min_length) if chars1[i] != chars2[i])
    distance += max_length - min_length

    return 1 - distance / max_length if max_length > 0 else 0.0
