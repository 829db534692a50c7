"""
Tests for competition ranking.
"""

from folding_tc.models.summary import TeamInfo, TeamSummary, UNRANKED
from folding_tc.ranking import rank


def team_summary(team_id: int, multiplied_points: int) -> TeamSummary:
    return TeamSummary(
        team=TeamInfo(id=team_id, name=f"Team {team_id}"),
        total_multiplied_points=multiplied_points
    )


def ranks(summaries):
    return [(summary.team.id, summary.rank) for summary in summaries]


class TestRank:
    """Tests for the rank function."""

    def test_empty(self):
        assert rank([]) == []

    def test_single_entity_is_first(self):
        assert ranks(rank([team_summary(1, 0)])) == [(1, 1)]

    def test_sorted_descending(self):
        ranked = rank([team_summary(1, 50), team_summary(2, 300), team_summary(3, 100)])
        assert ranks(ranked) == [(2, 1), (3, 2), (1, 3)]

    def test_ties_share_rank_and_skip_next(self):
        ranked = rank([team_summary(1, 100), team_summary(2, 100), team_summary(3, 80)])
        assert [summary.rank for summary in ranked] == [1, 1, 3]

    def test_tie_at_the_end(self):
        ranked = rank([team_summary(1, 300), team_summary(2, 100), team_summary(3, 100)])
        assert [summary.rank for summary in ranked] == [1, 2, 2]

    def test_ties_ordered_by_id(self):
        ranked = rank([team_summary(7, 100), team_summary(3, 100), team_summary(5, 100)])
        assert ranks(ranked) == [(3, 1), (5, 1), (7, 1)]

    def test_first_entity_not_tied_with_nothing(self):
        # A leading zero value is still ranked first, not treated as a tie
        ranked = rank([team_summary(1, 0), team_summary(2, 0)])
        assert [summary.rank for summary in ranked] == [1, 1]

    def test_rank_offset(self):
        ranked = rank([team_summary(1, 10), team_summary(2, 20)], rank_offset=3)
        assert ranks(ranked) == [(2, 4), (1, 5)]

    def test_second_group_ranked_below_first(self):
        active = rank([team_summary(1, 90), team_summary(2, 80)])
        retired = rank([team_summary(3, 200), team_summary(4, 150)], rank_offset=len(active))
        assert [summary.rank for summary in active] == [1, 2]
        assert [summary.rank for summary in retired] == [3, 4]

    def test_rank_offset_with_ties(self):
        ranked = rank([team_summary(1, 10), team_summary(2, 10), team_summary(3, 5)], rank_offset=2)
        assert [summary.rank for summary in ranked] == [3, 3, 5]


class TestRankProperties:
    """Tests for properties that hold for any input."""

    def test_inputs_not_modified(self):
        summaries = [team_summary(1, 10), team_summary(2, 20)]
        rank(summaries)
        assert [summary.rank for summary in summaries] == [UNRANKED, UNRANKED]

    def test_idempotent(self):
        summaries = [team_summary(i, value) for i, value in enumerate([5, 9, 9, 1, 5, 0], start=1)]
        once = rank(summaries)
        twice = rank(once)
        assert ranks(once) == ranks(twice)

    def test_ranks_non_decreasing_as_values_fall(self):
        summaries = [team_summary(i, value) for i, value in enumerate([40, 10, 40, 30, 10, 20], start=1)]
        ranked = rank(summaries)
        for previous, current in zip(ranked, ranked[1:]):
            assert previous.total_multiplied_points >= current.total_multiplied_points
            assert previous.rank <= current.rank

    def test_rank_is_one_plus_count_of_strictly_greater(self):
        values = [40, 10, 40, 30, 10, 20]
        ranked = rank([team_summary(i, value) for i, value in enumerate(values, start=1)])
        for summary in ranked:
            greater = sum(1 for value in values if value > summary.total_multiplied_points)
            assert summary.rank == greater + 1
