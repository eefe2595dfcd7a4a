"""
TBSA calculation: Lund-Browder chart, Rule of Nines and palmar method
"""

import logging
from typing import Dict, List, Iterable, Tuple

from .schema import (RegionBurn, LundBrowderEntry, TBSACalculation, TBSAMethod,
                     AgeGroup, BurnDepth)
from .error_codes import ErrorCode, invalid_input

logger = logging.getLogger(__name__)

_AGE_COLUMNS = [AgeGroup.INFANT, AgeGroup.CHILD_1, AgeGroup.CHILD_5,
                AgeGroup.CHILD_10, AgeGroup.CHILD_15, AgeGroup.ADULT]

def _row(*values: float) -> Dict[AgeGroup, float]:
    return dict(zip(_AGE_COLUMNS, values))

# Maximum %TBSA per region by age group; every column sums to 100.
LUND_BROWDER_CHART: Dict[str, Dict[AgeGroup, float]] = {
    "head":             _row(19, 17, 13, 11, 9, 7),
    "neck":             _row(2, 2, 2, 2, 2, 2),
    "anterior_trunk":   _row(13, 13, 13, 13, 13, 13),
    "posterior_trunk":  _row(13, 13, 13, 13, 13, 13),
    "right_buttock":    _row(2.5, 2.5, 2.5, 2.5, 2.5, 2.5),
    "left_buttock":     _row(2.5, 2.5, 2.5, 2.5, 2.5, 2.5),
    "genitalia":        _row(1, 1, 1, 1, 1, 1),
    "right_upper_arm":  _row(4, 4, 4, 4, 4, 4),
    "left_upper_arm":   _row(4, 4, 4, 4, 4, 4),
    "right_lower_arm":  _row(3, 3, 3, 3, 3, 3),
    "left_lower_arm":   _row(3, 3, 3, 3, 3, 3),
    "right_hand":       _row(2.5, 2.5, 2.5, 2.5, 2.5, 2.5),
    "left_hand":        _row(2.5, 2.5, 2.5, 2.5, 2.5, 2.5),
    "right_thigh":      _row(5.5, 6.5, 8, 8.5, 9, 9.5),
    "left_thigh":       _row(5.5, 6.5, 8, 8.5, 9, 9.5),
    "right_lower_leg":  _row(5, 5, 5.5, 6, 6.5, 7),
    "left_lower_leg":   _row(5, 5, 5.5, 6, 6.5, 7),
    "right_foot":       _row(3.5, 3.5, 3.5, 3.5, 3.5, 3.5),
    "left_foot":        _row(3.5, 3.5, 3.5, 3.5, 3.5, 3.5),
}

RULE_OF_NINES_ADULT: Dict[str, float] = {
    "head": 9,
    "anterior_trunk": 18,
    "posterior_trunk": 18,
    "right_arm": 9,
    "left_arm": 9,
    "genitalia": 1,
    "right_leg": 18,
    "left_leg": 18,
}

RULE_OF_NINES_CHILD: Dict[str, float] = {
    **RULE_OF_NINES_ADULT,
    "head": 18,
    "right_leg": 13.5,
    "left_leg": 13.5,
}

def region_display_name(region: str) -> str:
    return region.replace("_", " ").title()

def get_age_group(age_years: float) -> AgeGroup:
    """Map age in years to the Lund-Browder column"""
    if age_years is None or age_years < 0:
        raise invalid_input(ErrorCode.BURN_INVALID_AGE,
                            "Age must be a non-negative number of years", age_years=age_years)
    if age_years < 1:
        return AgeGroup.INFANT
    if age_years < 5:
        return AgeGroup.CHILD_1
    if age_years < 10:
        return AgeGroup.CHILD_5
    if age_years < 15:
        return AgeGroup.CHILD_10
    if age_years < 18:
        return AgeGroup.CHILD_15
    return AgeGroup.ADULT

def _round1(value: float) -> float:
    return round(value * 10) / 10

def _summarize(method: TBSAMethod, entries: List[LundBrowderEntry],
               age_group: AgeGroup = None, warnings: List[str] = None) -> TBSACalculation:
    """Aggregate per-region entries into depth totals"""
    superficial = 0.0
    partial = 0.0
    full = 0.0

    for entry in entries:
        if entry.percent_burned <= 0:
            continue
        if entry.depth == BurnDepth.SUPERFICIAL:
            superficial += entry.percent_burned
        elif entry.depth in (BurnDepth.SUPERFICIAL_PARTIAL, BurnDepth.DEEP_PARTIAL):
            partial += entry.percent_burned
        else:
            full += entry.percent_burned

    # Superficial (first degree) burns are not counted towards TBSA
    total = partial + full
    if total > 100.0001:
        raise invalid_input(ErrorCode.BURN_TBSA_OUT_OF_RANGE,
                            f"Total burned area {total:.1f}% exceeds 100%", total_tbsa=total)

    return TBSACalculation(
        method=method,
        age_group=age_group,
        entries=entries,
        total_tbsa=_round1(total),
        superficial_tbsa=_round1(superficial),
        partial_thickness_tbsa=_round1(partial),
        full_thickness_tbsa=_round1(full),
        warnings=warnings or [],
    )

def _build_entries(regions: Iterable[RegionBurn], chart: Dict[str, float],
                   age_group: AgeGroup) -> Tuple[List[LundBrowderEntry], List[str]]:
    entries: List[LundBrowderEntry] = []
    warnings: List[str] = []
    seen = set()

    for burn in regions:
        if burn.region not in chart:
            raise invalid_input(ErrorCode.BURN_UNKNOWN_REGION,
                                f"Unknown body region '{burn.region}'",
                                region=burn.region, known_regions=sorted(chart))
        if burn.region in seen:
            raise invalid_input(ErrorCode.BURN_DUPLICATE_REGION,
                                f"Region '{burn.region}' reported more than once", region=burn.region)
        if burn.percent < 0:
            raise invalid_input(ErrorCode.BURN_NEGATIVE_PERCENT,
                                f"Negative burn percentage for '{burn.region}'",
                                region=burn.region, percent=burn.percent)
        seen.add(burn.region)

        max_percent = chart[burn.region]
        burned = min(burn.percent, max_percent)
        capped = burn.percent > max_percent
        if capped:
            warnings.append(
                f"{region_display_name(burn.region)}: {burn.percent}% exceeds region maximum "
                f"{max_percent}%, capped"
            )
            logger.warning(f"Capped {burn.region} at {max_percent}% (reported {burn.percent}%)")

        entries.append(LundBrowderEntry(
            region=burn.region,
            region_name=region_display_name(burn.region),
            age_group=age_group,
            percent_burned=burned,
            depth=burn.depth,
            max_percent=max_percent,
            capped=capped,
        ))

    return entries, warnings

def calculate_tbsa_lund_browder(regions: Iterable[RegionBurn], age_years: float) -> TBSACalculation:
    """
    Calculate TBSA with the age-adjusted Lund-Browder chart

    Args:
        regions: burned regions, percent given as absolute %TBSA within the region
        age_years: patient age, selects the chart column

    Returns:
        TBSACalculation with depth breakdown
    """
    age_group = get_age_group(age_years)
    chart = {region: column[age_group] for region, column in LUND_BROWDER_CHART.items()}
    entries, warnings = _build_entries(regions, chart, age_group)
    result = _summarize(TBSAMethod.LUND_BROWDER, entries, age_group, warnings)

    logger.info(f"Lund-Browder TBSA {result.total_tbsa}% ({age_group.value}, "
                f"{len(result.burned_regions)} regions)")
    return result

def calculate_tbsa_rule_of_nines(regions: Iterable[RegionBurn], is_child: bool = False) -> TBSACalculation:
    """Quick Rule of Nines estimate (child table enlarges head, shrinks legs)"""
    chart = RULE_OF_NINES_CHILD if is_child else RULE_OF_NINES_ADULT
    age_group = AgeGroup.CHILD_1 if is_child else AgeGroup.ADULT
    entries, warnings = _build_entries(regions, chart, age_group)
    return _summarize(TBSAMethod.RULE_OF_NINES, entries, None, warnings)

def calculate_tbsa_palmar(palm_count: float,
                          depth: BurnDepth = BurnDepth.SUPERFICIAL_PARTIAL) -> TBSACalculation:
    """Palm method for scattered burns: one patient palm is 1% TBSA"""
    if palm_count < 0:
        raise invalid_input(ErrorCode.BURN_NEGATIVE_PERCENT,
                            "Palm count cannot be negative", palm_count=palm_count)
    entry = LundBrowderEntry(
        region="scattered",
        region_name="Scattered (palmar estimate)",
        age_group=AgeGroup.ADULT,
        percent_burned=float(palm_count),
        depth=depth,
        max_percent=100.0,
    )
    return _summarize(TBSAMethod.PALMAR, [entry])
