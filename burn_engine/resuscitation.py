"""
Fluid resuscitation planning from time of burn

Parkland: 4 mL x kg x %TBSA, half by hour 8 after the burn, half over hours 8-24.
Modified Brooke and Evans use 2 mL. Muir-Barclay gives colloid in six timed periods.
"""

import math
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from .schema import (FluidResuscitationPlan, ResuscitationFormula, ResuscitationPhase,
                     HourlyTarget, FluidAdjustment, InfusionRecord, UrineOutput,
                     ResuscitationProgress, FluidBalance, BurnEngineConfig)
from .error_codes import ErrorCode, invalid_input

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = BurnEngineConfig()

RESUSCITATION_HOURS = 24

# Muir-Barclay period lengths in hours (36 hours total)
MUIR_BARCLAY_PERIODS = [4, 4, 4, 6, 6, 12]

FORMULA_RECOMMENDATIONS: Dict[ResuscitationFormula, List[str]] = {
    ResuscitationFormula.PARKLAND: [
        "Use Lactated Ringer's solution",
        "Monitor and adjust based on clinical response",
        "Watch for compartment syndrome if edema significant",
        "Consider colloids after 24 hours if needed",
    ],
    ResuscitationFormula.MODIFIED_BROOKE: [
        "Use Lactated Ringer's solution",
        "More conservative than Parkland formula",
        "Appropriate for smaller burns or elderly patients",
        "Monitor urine output closely",
    ],
    ResuscitationFormula.EVANS: [
        "Crystalloid component only; traditional Evans adds equal colloid",
        "Monitor urine output closely",
    ],
    ResuscitationFormula.MUIR_BARCLAY: [
        "Use Human Albumin Solution (4.5%)",
        "Give in 6 periods: 4hr, 4hr, 4hr, 6hr, 6hr, 12hr",
        "Add maintenance crystalloid as needed",
    ],
    ResuscitationFormula.CUSTOM: [
        "Custom multiplier in use; document rationale",
        "Monitor urine output closely",
    ],
}

def _round_ml(value: float) -> float:
    """Half-up rounding to whole mL"""
    return float(math.floor(value + 0.5))

def hours_between(start: datetime, end: datetime) -> float:
    if (start.tzinfo is None) != (end.tzinfo is None):
        raise invalid_input(ErrorCode.APP_INVALID_REQUEST,
                            "Cannot compare timezone-aware and naive timestamps",
                            start=start.isoformat(), end=end.isoformat())
    return (end - start).total_seconds() / 3600.0

def _now_for(reference: datetime) -> datetime:
    return datetime.now(reference.tzinfo)

def holliday_segar_rate(weight_kg: float) -> float:
    """Maintenance fluid 4-2-1 rule, mL/hr"""
    rate = 4 * min(weight_kg, 10)
    if weight_kg > 10:
        rate += 2 * (min(weight_kg, 20) - 10)
    if weight_kg > 20:
        rate += 1 * (weight_kg - 20)
    return rate

def resolve_multiplier(formula: ResuscitationFormula, custom_ml_per_kg_per_pct: Optional[float],
                       config: BurnEngineConfig) -> float:
    if formula == ResuscitationFormula.CUSTOM:
        if custom_ml_per_kg_per_pct is None or custom_ml_per_kg_per_pct <= 0:
            raise invalid_input(ErrorCode.FLUID_INVALID_MULTIPLIER,
                                "Custom formula requires a positive mL/kg/%TBSA multiplier",
                                multiplier=custom_ml_per_kg_per_pct)
        return float(custom_ml_per_kg_per_pct)
    if formula == ResuscitationFormula.MUIR_BARCLAY:
        # five half-unit periods fall inside the first 24 hours
        return 2.5
    if formula.value not in config.formula_multipliers:
        raise invalid_input(ErrorCode.FLUID_UNKNOWN_FORMULA,
                            f"No multiplier configured for formula '{formula.value}'",
                            formula=formula.value)
    return float(config.formula_multipliers[formula.value])

def _segments(formula: ResuscitationFormula, weight_kg: float, tbsa: float,
              total_24h: float, config: BurnEngineConfig) -> List[Tuple[float, float, float]]:
    """(start hour, end hour, volume) delivery windows inside the first 24 hours"""
    if formula == ResuscitationFormula.MUIR_BARCLAY:
        period_volume = tbsa * weight_kg / 2
        segments = []
        start = 0.0
        for length in MUIR_BARCLAY_PERIODS:
            end = start + length
            if end > RESUSCITATION_HOURS:
                break
            segments.append((start, end, period_volume))
            start = end
        return segments

    phase_1_end = config.phase_1_hours
    phase_2_end = phase_1_end + config.phase_2_hours
    return [(0.0, phase_1_end, total_24h / 2), (phase_1_end, phase_2_end, total_24h / 2)]

def _schedule(segments: Sequence[Tuple[float, float, float]], hours_since_burn: float,
              phase_1_end: float) -> List[Tuple[float, float, float]]:
    """
    Effective (start, end, rate) windows from the calculation time onwards

    Phase 1 volume not given before presentation is carried into the
    remaining phase 1 windows. Later windows keep their nominal rate, so
    volume falling before presentation in them is not rescheduled.
    """
    effective = []
    carried = 0.0
    for start, end, volume in segments:
        if end <= phase_1_end:
            carried += volume
            if end <= hours_since_burn:
                continue
            eff_start = max(start, hours_since_burn)
            effective.append((eff_start, end, carried / (end - eff_start)))
            carried = 0.0
        elif end > hours_since_burn:
            effective.append((max(start, hours_since_burn), end, volume / (end - start)))
    return effective

def _rate_at(effective: Sequence[Tuple[float, float, float]], hour: float) -> float:
    for start, end, rate in effective:
        if start <= hour < end:
            return rate
    return 0.0

def _phase_for_hour(hour_index: int, config: BurnEngineConfig) -> ResuscitationPhase:
    """Phase of the hour covering [hour_index - 1, hour_index)"""
    if hour_index <= config.phase_1_hours:
        return ResuscitationPhase.PHASE_1
    if hour_index <= RESUSCITATION_HOURS:
        return ResuscitationPhase.PHASE_2
    return ResuscitationPhase.COMPLETE

def _phase_at(hours_since_burn: float, config: BurnEngineConfig) -> ResuscitationPhase:
    if hours_since_burn < config.phase_1_hours:
        return ResuscitationPhase.PHASE_1
    if hours_since_burn < RESUSCITATION_HOURS:
        return ResuscitationPhase.PHASE_2
    return ResuscitationPhase.COMPLETE

def _window_volume(effective, window_start: float, window_end: float) -> float:
    volume = 0.0
    for start, end, rate in effective:
        overlap = min(end, window_end) - max(start, window_start)
        if overlap > 0:
            volume += overlap * rate
    return volume

def build_hourly_targets(plan: FluidResuscitationPlan,
                         config: BurnEngineConfig = _DEFAULT_CONFIG) -> List[HourlyTarget]:
    """24 hourly target rows measured from time of burn"""
    segments = _segments(plan.formula, plan.patient_weight, plan.tbsa, plan.total_fluid_24h, config)
    effective = _schedule(segments, plan.hours_since_burn, config.phase_1_hours)

    targets: List[HourlyTarget] = []
    cumulative = 0.0
    for hour in range(1, RESUSCITATION_HOURS + 1):
        volume = _window_volume(effective, hour - 1, hour)
        cumulative += volume
        targets.append(HourlyTarget(
            hour=hour,
            phase=_phase_for_hour(hour, config),
            elapsed_before_presentation=hour <= plan.hours_since_burn,
            target_rate=_round_ml(_rate_at(effective, hour - 0.5)),
            target_volume=_round_ml(volume),
            cumulative_target=_round_ml(cumulative),
        ))
    return targets

def urine_output_targets(weight_kg: float, age_years: Optional[float],
                         config: BurnEngineConfig = _DEFAULT_CONFIG) -> Tuple[float, float, bool]:
    """(min, max, is_pediatric) urine output target in mL/kg/hr"""
    is_pediatric = (weight_kg <= config.pediatric_weight_cutoff_kg or
                    (age_years is not None and age_years < config.pediatric_age_cutoff_years))
    low, high = config.pediatric_uo_target if is_pediatric else config.adult_uo_target
    return low, high, is_pediatric

def calculate_fluid_resuscitation(
    weight_kg: float,
    tbsa: float,
    time_of_burn: datetime,
    formula: ResuscitationFormula = ResuscitationFormula.PARKLAND,
    now: Optional[datetime] = None,
    age_years: Optional[float] = None,
    custom_ml_per_kg_per_pct: Optional[float] = None,
    config: BurnEngineConfig = _DEFAULT_CONFIG,
) -> FluidResuscitationPlan:
    """
    Calculate a 24 hour resuscitation plan

    Timing runs from the time of burn, not admission. Phase 1 volume falling in
    hours that elapsed before `now` is spread over the remaining phase 1 hours.

    Args:
        weight_kg: patient weight
        tbsa: partial + full thickness %TBSA
        time_of_burn: injury time
        formula: resuscitation formula
        now: calculation time (defaults to current time)
        age_years: used for paediatric urine output targets
        custom_ml_per_kg_per_pct: multiplier for the custom formula

    Returns:
        FluidResuscitationPlan with hourly targets
    """
    if weight_kg is None or weight_kg <= 0:
        raise invalid_input(ErrorCode.FLUID_INVALID_WEIGHT, "Weight must be positive", weight_kg=weight_kg)
    if tbsa is None or tbsa <= 0 or tbsa > 100:
        raise invalid_input(ErrorCode.FLUID_INVALID_TBSA, "TBSA must be within (0, 100]", tbsa=tbsa)
    try:
        formula = ResuscitationFormula(formula)
    except ValueError as e:
        raise invalid_input(ErrorCode.FLUID_UNKNOWN_FORMULA, f"Unknown formula '{formula}'",
                            formula=str(formula)) from e

    now = now or _now_for(time_of_burn)
    hours_since_burn = max(0.0, hours_between(time_of_burn, now))
    multiplier = resolve_multiplier(formula, custom_ml_per_kg_per_pct, config)

    total_24h = multiplier * weight_kg * tbsa
    segments = _segments(formula, weight_kg, tbsa, total_24h, config)
    phase_1_end = config.phase_1_hours
    effective = _schedule(segments, hours_since_burn, phase_1_end)

    first_half = sum(v for s, e, v in segments if e <= phase_1_end)
    second_half = total_24h - first_half

    phase_1_remaining = max(0.0, phase_1_end - hours_since_burn)
    first_half_rate = first_half / phase_1_remaining if phase_1_remaining > 0 else 0.0
    second_half_rate = second_half / config.phase_2_hours

    uo_min, uo_max, is_pediatric = urine_output_targets(weight_kg, age_years, config)
    phase = _phase_at(hours_since_burn, config)

    warnings: List[str] = []
    min_tbsa = (config.resuscitation_min_tbsa_child if is_pediatric
                else config.resuscitation_min_tbsa_adult)
    if tbsa < min_tbsa:
        warnings.append(f"TBSA {tbsa:g}% below {min_tbsa:g}%: formal resuscitation not usually indicated")
    if hours_since_burn >= phase_1_end and phase != ResuscitationPhase.COMPLETE:
        warnings.append(
            f"Late presentation ({hours_since_burn:.1f}h after burn): first "
            f"{phase_1_end:g} hour window has passed, reassess volume status"
        )
    if phase == ResuscitationPhase.COMPLETE:
        warnings.append("More than 24 hours since burn: initial resuscitation window has passed")
        logger.warning(f"Resuscitation requested {hours_since_burn:.1f}h after burn")

    recommendations = list(FORMULA_RECOMMENDATIONS[formula])
    recommendations.insert(1, f"Target urine output: {uo_min:g}-{uo_max:g} mL/kg/hr")

    maintenance_rate = None
    if is_pediatric and weight_kg <= config.pediatric_weight_cutoff_kg:
        maintenance_rate = _round_ml(holliday_segar_rate(weight_kg))
        recommendations.append(
            f"Add dextrose-containing maintenance fluid at {maintenance_rate:g} mL/hr"
        )

    colloid_volume = None
    fluid_type = "Lactated Ringer's"
    if formula == ResuscitationFormula.MUIR_BARCLAY:
        colloid_volume = _round_ml(tbsa * weight_kg / 2 * len(MUIR_BARCLAY_PERIODS))
        fluid_type = "Human Albumin Solution 4.5%"

    plan = FluidResuscitationPlan(
        patient_weight=weight_kg,
        tbsa=tbsa,
        time_of_burn=time_of_burn,
        calculated_at=now,
        formula=formula,
        ml_per_kg_per_pct=multiplier,
        total_fluid_24h=_round_ml(total_24h),
        first_half_volume=_round_ml(first_half),
        second_half_volume=_round_ml(second_half),
        first_half_rate=_round_ml(first_half_rate),
        second_half_rate=_round_ml(second_half_rate),
        colloid_volume=colloid_volume,
        maintenance_rate=maintenance_rate,
        fluid_type=fluid_type,
        hours_since_burn=round(hours_since_burn, 2),
        current_hour=int(math.floor(hours_since_burn)),
        current_phase=phase,
        current_infusion_rate=_round_ml(_rate_at(effective, hours_since_burn)),
        urine_output_target_min=uo_min,
        urine_output_target_max=uo_max,
        is_pediatric=is_pediatric,
        recommendations=recommendations,
        warnings=warnings,
    )
    plan.hourly_targets = build_hourly_targets(plan, config)

    logger.info(f"{formula.value} plan: {plan.total_fluid_24h:.0f} mL/24h for {weight_kg:g} kg, "
                f"{tbsa:g}% TBSA, current rate {plan.current_infusion_rate:.0f} mL/hr")
    return plan

def calculate_fluid_adjustment(
    current_rate: float,
    urine_output_per_kg: float,
    target_min: float = 0.5,
    target_max: float = 1.0,
    config: BurnEngineConfig = _DEFAULT_CONFIG,
    timestamp: Optional[datetime] = None,
) -> FluidAdjustment:
    """Titrate infusion rate to hourly urine output"""
    if current_rate is None or current_rate < 0:
        raise invalid_input(ErrorCode.FLUID_INVALID_RATE, "Infusion rate must be non-negative",
                            current_rate=current_rate)

    if urine_output_per_kg < target_min:
        return FluidAdjustment(
            timestamp=timestamp,
            previous_rate=current_rate,
            new_rate=_round_ml(current_rate * config.uo_low_increase_factor),
            adjustment=f"+{round((config.uo_low_increase_factor - 1) * 100)}%",
            reason=f"UO {urine_output_per_kg:.2f} mL/kg/hr below target ({target_min:g} mL/kg/hr)",
            urine_output_per_kg=urine_output_per_kg,
        )

    if urine_output_per_kg > target_max * config.uo_high_multiplier:
        return FluidAdjustment(
            timestamp=timestamp,
            previous_rate=current_rate,
            new_rate=_round_ml(current_rate * config.uo_high_decrease_factor),
            adjustment=f"-{round((1 - config.uo_high_decrease_factor) * 100)}%",
            reason=f"UO {urine_output_per_kg:.2f} mL/kg/hr above target, consider reducing",
            urine_output_per_kg=urine_output_per_kg,
        )

    return FluidAdjustment(
        timestamp=timestamp,
        previous_rate=current_rate,
        new_rate=current_rate,
        adjustment="No change",
        reason="UO within target range",
        urine_output_per_kg=urine_output_per_kg,
    )

def recent_urine_output_stats(outputs: Sequence[UrineOutput],
                              weight_kg: Optional[float] = None) -> Dict[str, Optional[float]]:
    """Mean of the last two hourly mL/kg/hr readings and their trend"""
    ordered = sorted(outputs, key=lambda uo: uo.timestamp)
    rates = [r for r in (uo.per_kg(weight_kg) for uo in ordered) if r is not None]
    if not rates:
        return {"average": None, "trend": "stable", "last_value": None}

    last_two = rates[-2:]
    trend = "stable"
    if len(last_two) == 2:
        diff = last_two[1] - last_two[0]
        if diff > 0.1:
            trend = "up"
        elif diff < -0.1:
            trend = "down"

    return {
        "average": round(sum(last_two) / len(last_two), 2),
        "trend": trend,
        "last_value": rates[-1],
    }

def cumulative_target_at(plan: FluidResuscitationPlan, hours_since_burn: float) -> float:
    """Cumulative target volume at a fractional hour since burn"""
    if hours_since_burn <= 0 or not plan.hourly_targets:
        return 0.0
    if hours_since_burn >= RESUSCITATION_HOURS:
        return plan.hourly_targets[-1].cumulative_target

    whole = int(math.floor(hours_since_burn))
    completed = plan.hourly_targets[whole - 1].cumulative_target if whole > 0 else 0.0
    partial = plan.hourly_targets[whole].target_volume * (hours_since_burn - whole)
    return completed + partial

def track_resuscitation_progress(
    plan: FluidResuscitationPlan,
    infusions: Sequence[InfusionRecord],
    urine_outputs: Sequence[UrineOutput] = (),
    now: Optional[datetime] = None,
    config: BurnEngineConfig = _DEFAULT_CONFIG,
) -> ResuscitationProgress:
    """Compare administered fluid and urine output against the plan"""
    now = now or _now_for(plan.time_of_burn)
    hours_since_burn = max(0.0, hours_between(plan.time_of_burn, now))

    administered = sum(i.volume_ml for i in infusions if i.timestamp <= now)
    target = cumulative_target_at(plan, hours_since_burn)
    urine = [uo for uo in urine_outputs if uo.timestamp <= now]
    stats = recent_urine_output_stats(urine, plan.patient_weight)

    current_hour = min(int(math.floor(hours_since_burn)), RESUSCITATION_HOURS)
    current_rate = 0.0
    if current_hour < RESUSCITATION_HOURS and plan.hourly_targets:
        current_rate = plan.hourly_targets[current_hour].target_rate

    adjustment = None
    if stats["average"] is not None:
        adjustment = calculate_fluid_adjustment(
            current_rate, stats["average"],
            plan.urine_output_target_min, plan.urine_output_target_max,
            config=config, timestamp=now,
        )

    return ResuscitationProgress(
        current_hour=current_hour,
        current_phase=_phase_at(hours_since_burn, config),
        cumulative_target=_round_ml(target),
        cumulative_administered=_round_ml(administered),
        deficit_ml=_round_ml(target - administered),
        fluid_remaining=max(0.0, _round_ml(plan.total_fluid_24h - administered)),
        cumulative_urine_ml=_round_ml(sum(uo.volume_ml for uo in urine)),
        mean_urine_output_per_kg=stats["average"],
        urine_output_trend=stats["trend"],
        recommended_adjustment=adjustment,
    )

def calculate_fluid_balance(
    period_start: datetime,
    period_end: datetime,
    iv_fluids_ml: float = 0.0,
    oral_fluids_ml: float = 0.0,
    blood_products_ml: float = 0.0,
    enteral_feeding_ml: float = 0.0,
    urine_output_ml: float = 0.0,
    drain_output_ml: float = 0.0,
    nasogastric_output_ml: float = 0.0,
    insensible_loss_ml: float = 0.0,
    previous_cumulative_ml: float = 0.0,
) -> FluidBalance:
    total_in = iv_fluids_ml + oral_fluids_ml + blood_products_ml + enteral_feeding_ml
    total_out = urine_output_ml + drain_output_ml + nasogastric_output_ml + insensible_loss_ml
    net = total_in - total_out

    return FluidBalance(
        period_start=period_start,
        period_end=period_end,
        iv_fluids_ml=iv_fluids_ml,
        oral_fluids_ml=oral_fluids_ml,
        blood_products_ml=blood_products_ml,
        enteral_feeding_ml=enteral_feeding_ml,
        total_input_ml=total_in,
        urine_output_ml=urine_output_ml,
        drain_output_ml=drain_output_ml,
        nasogastric_output_ml=nasogastric_output_ml,
        insensible_loss_ml=insensible_loss_ml,
        total_output_ml=total_out,
        net_balance_ml=net,
        cumulative_balance_ml=previous_cumulative_ml + net,
    )
