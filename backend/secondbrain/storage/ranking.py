"""
Ranking Helpers

Vector similarity, keyword relevance and Reciprocal Rank Fusion
used by thought search.
"""
import re
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

RRF_K = 60

_TOKEN_RE = re.compile(r"\w+")


def cosine_similarity(vec_a: Optional[Sequence[float]], vec_b: Optional[Sequence[float]]) -> float:
    """Cosine similarity, 0.0 for missing, empty or mismatched vectors."""
    if not vec_a or not vec_b or len(vec_a) != len(vec_b):
        return 0.0

    a = np.array(vec_a, dtype=float)
    b = np.array(vec_b, dtype=float)

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall(text.lower())


def text_relevance(query: str, fields: Iterable[Optional[str]]) -> float:
    """Fraction of distinct query terms that appear in the given fields."""
    query_terms = set(tokenize(query))
    if not query_terms:
        return 0.0

    document_terms = set()
    for value in fields:
        if value:
            document_terms.update(tokenize(value))

    return len(query_terms & document_terms) / len(query_terms)


def rrf_merge(rankings: Iterable[Sequence[str]], k: int = RRF_K) -> Dict[str, float]:
    """
    Fuse ranked id lists with Reciprocal Rank Fusion.

    fused_score = sum(1 / (k + rank)) over every list the id appears in,
    rank starting at 1.
    """
    scores: Dict[str, float] = {}
    for ranking in rankings:
        for rank, item_id in enumerate(ranking, start=1):
            scores[item_id] = scores.get(item_id, 0.0) + 1.0 / (k + rank)
    return scores
