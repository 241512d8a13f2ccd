"""Order matches by confidence and keep the best ones."""
import logging
from typing import List, Optional, Sequence

from findthatbook.models import BookMatch

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 5


def rank_and_limit(matches: Sequence[BookMatch], top_n: int = DEFAULT_TOP_N) -> List[BookMatch]:
    """
    Sort matches by tier rank ascending, then score descending.

    The sort is stable, so matches tied on both keys keep their input
    order. A top_n of zero or less yields an empty list.
    """
    if not matches:
        logger.info("No matches to rank")
        return []

    logger.info(f"Ranking {len(matches)} matches, limiting to top {top_n}")

    ranked = sorted(matches, key=lambda m: (m.strength.rank, -m.score))
    ranked = ranked[:max(top_n, 0)]

    logger.info(f"Returning {len(ranked)} top matches")
    return ranked


class BookRanker:
    """Ranker with a configurable default result size."""

    def __init__(self, top_n: int = DEFAULT_TOP_N):
        self.top_n = top_n

    def rank_and_limit(self, matches: Sequence[BookMatch], top_n: Optional[int] = None) -> List[BookMatch]:
        return rank_and_limit(matches, self.top_n if top_n is None else top_n)
