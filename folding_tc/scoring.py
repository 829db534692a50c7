"""Competition points calculation from raw stats, hardware multipliers and offsets"""
from decimal import Decimal, ROUND_HALF_UP

from folding_tc.models.stats import CompetitionStats, RawStats, StatsOffset

def round_half_up(points: int, multiplier: float) -> int:
    """
    Multiply points by a hardware multiplier, rounding halves away from zero.

    The multiplier is taken at its decimal value, so 100 * 2.005 is 200.5 and rounds to 201.
    """
    product = Decimal(points) * Decimal(str(multiplier))
    return int(product.quantize(Decimal(1), rounding=ROUND_HALF_UP))

class StatsAggregator:
    """Calculates competition stats for a user"""

    def compute_competition_stats(self, raw: RawStats, baseline: RawStats, multiplier: float,
                                  offset: StatsOffset, user_id: int = 0) -> CompetitionStats:
        """
        Calculate competition stats for the period since the baseline.

        Raw deltas are clamped at zero before the multiplier is applied. Offsets are added
        afterwards and the result is not clamped again, so a large negative offset can
        produce negative totals.
        """
        points = max(0, raw.points - baseline.points)
        multiplied_points = round_half_up(points, multiplier)
        units = max(0, raw.units - baseline.units)

        return CompetitionStats(
            user_id=user_id,
            points=points + offset.points_offset,
            multiplied_points=multiplied_points + offset.multiplied_points_offset,
            units=units + offset.units_offset,
            timestamp=raw.timestamp
        )

    def offset_from_stats(self, stats: CompetitionStats) -> StatsOffset:
        """Offset preserving all of a user's current competition stats"""
        return StatsOffset(
            points_offset=stats.points,
            multiplied_points_offset=stats.multiplied_points,
            units_offset=stats.units
        )

    def combine_offsets(self, existing: StatsOffset, new: StatsOffset) -> StatsOffset:
        return existing + new

    def fill_offset_with_multiplier(self, offset: StatsOffset, multiplier: float) -> StatsOffset:
        """
        Complete an offset that only sets one of points or multiplied points.

        The missing value is derived from the other using the hardware multiplier.
        Offsets with both or neither value set are returned unchanged.
        """
        has_points = offset.points_offset != 0
        has_multiplied_points = offset.multiplied_points_offset != 0
        if has_points == has_multiplied_points:
            return offset

        if has_points:
            return StatsOffset(
                points_offset=offset.points_offset,
                multiplied_points_offset=round_half_up(offset.points_offset, multiplier),
                units_offset=offset.units_offset
            )

        points = Decimal(offset.multiplied_points_offset) / Decimal(str(multiplier))
        return StatsOffset(
            points_offset=int(points.quantize(Decimal(1), rounding=ROUND_HALF_UP)),
            multiplied_points_offset=offset.multiplied_points_offset,
            units_offset=offset.units_offset
        )

    def difference(self, current: CompetitionStats, previous: CompetitionStats) -> CompetitionStats:
        """Stats gained between two updates, never negative"""
        return CompetitionStats(
            user_id=current.user_id,
            points=max(0, current.points - previous.points),
            multiplied_points=max(0, current.multiplied_points - previous.multiplied_points),
            units=max(0, current.units - previous.units),
            timestamp=current.timestamp
        )
