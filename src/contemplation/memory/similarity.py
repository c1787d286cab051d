"""
Coarse text similarity used for insight aggregation.

Two texts are similar when more than 60% of the tokens of the shorter one
also occur somewhere in the longer one. Tokens are lower-cased and split on
whitespace; order is ignored and repeated tokens count once per occurrence
on the scanned side.
"""

DEFAULT_SIMILARITY_THRESHOLD = 0.6


def tokenize(text: str) -> list[str]:
    """Lower-case whitespace tokenization."""
    if not text:
        return []
    return text.lower().split()


def overlap_ratio(a: str, b: str) -> float:
    """
    Fraction of the shorter token list found in the other text's token set.

    The denominator is always min(len(tokens_a), len(tokens_b)). On equal
    lengths the tokens of `a` are scanned.
    """
    tokens_a = tokenize(a)
    tokens_b = tokenize(b)
    shortest = min(len(tokens_a), len(tokens_b))
    if shortest == 0:
        return 0.0

    if len(tokens_a) <= len(tokens_b):
        scanned, other = tokens_a, set(tokens_b)
    else:
        scanned, other = tokens_b, set(tokens_a)

    common = sum(1 for token in scanned if token in other)
    return common / shortest


def is_similar(
    a: str,
    b: str,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> bool:
    """Return True when the overlap ratio strictly exceeds the threshold."""
    return overlap_ratio(a, b) > threshold
