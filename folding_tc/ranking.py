"""Competition ranking of teams and users"""
from typing import Iterable, List

from folding_tc.models.summary import R

def rank(entities: Iterable[R], rank_offset: int = 0) -> List[R]:
    """
    Rank entities by descending rank value using competition ranking.

    Equal values share a rank and the next distinct value skips the tied
    places (1, 1, 3). Every rank is shifted by rank_offset, which lets a
    second group be ranked below a first one. Exact ties are ordered by
    their tie break key, ascending.

    Returns new copies of the entities with their rank set.
    """
    ordered = sorted(entities, key=lambda entity: (-entity.rank_value, entity.tie_break_key))

    ranked = []
    previous_value = None
    previous_rank = 0
    for index, entity in enumerate(ordered):
        value = entity.rank_value
        if index > 0 and value == previous_value:
            new_rank = previous_rank
        else:
            new_rank = index + 1 + rank_offset
        ranked.append(entity.with_rank(new_rank))
        previous_value = value
        previous_rank = new_rank
    return ranked
