"""
Pydantic schemas for burn engine components
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Dict, Optional, Any
from datetime import datetime
from enum import Enum

class BurnDepth(str, Enum):
    SUPERFICIAL = "superficial"
    SUPERFICIAL_PARTIAL = "superficial_partial"
    DEEP_PARTIAL = "deep_partial"
    FULL_THICKNESS = "full_thickness"

class BurnMechanism(str, Enum):
    FLAME = "flame"
    SCALD = "scald"
    CONTACT = "contact"
    CHEMICAL = "chemical"
    ELECTRICAL = "electrical"
    RADIATION = "radiation"
    FRICTION = "friction"

class AgeGroup(str, Enum):
    INFANT = "infant"
    CHILD_1 = "child_1"
    CHILD_5 = "child_5"
    CHILD_10 = "child_10"
    CHILD_15 = "child_15"
    ADULT = "adult"

class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"

class TBSAMethod(str, Enum):
    LUND_BROWDER = "lund_browder"
    RULE_OF_NINES = "rule_of_nines"
    PALMAR = "palmar"

class ResuscitationFormula(str, Enum):
    PARKLAND = "parkland"
    MODIFIED_BROOKE = "modified_brooke"
    EVANS = "evans"
    MUIR_BARCLAY = "muir_barclay"
    CUSTOM = "custom"

class ResuscitationPhase(str, Enum):
    PHASE_1 = "phase_1"
    PHASE_2 = "phase_2"
    COMPLETE = "complete"

class AlertPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return ["low", "medium", "high", "critical"].index(self.value)

class AlertStatus(str, Enum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    ESCALATED = "escalated"

class ComplicationType(str, Enum):
    HYPOVOLEMIC_SHOCK = "hypovolemic_shock"
    AKI = "aki"
    SEPSIS = "sepsis"
    ARDS = "ards"
    COMPARTMENT_SYNDROME = "compartment_syndrome"
    RHABDOMYOLYSIS = "rhabdomyolysis"
    VTE = "vte"
    ANEMIA = "anemia"
    HYPOTHERMIA = "hypothermia"
    HYPERMETABOLIC_STATE = "hypermetabolic_state"
    CUSTOM = "custom"

class SeverityLevel(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"

class Disposition(str, Enum):
    OUTPATIENT = "outpatient"
    WARD = "ward"
    HDU = "hdu"
    ICU = "icu"
    BURN_CENTER = "burn_center"

class VitalStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"

class ThreatLevel(str, Enum):
    VERY_LOW = "very_low"
    MODERATE = "moderate"
    MODERATELY_SEVERE = "moderately_severe"
    SEVERE = "severe"
    VERY_SEVERE = "very_severe"

# ---------------------------------------------------------------------------
# TBSA
# ---------------------------------------------------------------------------

class RegionBurn(BaseModel):
    """Burned area reported for a single body region"""
    region: str
    percent: float  # absolute %TBSA burned within the region
    depth: BurnDepth = BurnDepth.SUPERFICIAL_PARTIAL

class LundBrowderEntry(BaseModel):
    """Region entry after lookup against the age-banded chart"""
    region: str
    region_name: str
    age_group: AgeGroup
    percent_burned: float
    depth: BurnDepth
    max_percent: float
    capped: bool = False

class TBSACalculation(BaseModel):
    """TBSA result with depth breakdown"""
    method: TBSAMethod
    age_group: Optional[AgeGroup] = None
    entries: List[LundBrowderEntry] = Field(default_factory=list)

    # Totals (% body surface, 0.1 precision)
    total_tbsa: float  # partial + full thickness
    superficial_tbsa: float
    partial_thickness_tbsa: float
    full_thickness_tbsa: float

    warnings: List[str] = Field(default_factory=list)

    @property
    def has_full_thickness(self) -> bool:
        return self.full_thickness_tbsa > 0

    @property
    def burned_regions(self) -> List[str]:
        return [e.region for e in self.entries if e.percent_burned > 0]

# ---------------------------------------------------------------------------
# Severity scores
# ---------------------------------------------------------------------------

class BauxScore(BaseModel):
    age: float
    tbsa: float
    score: float  # age + TBSA
    mortality_risk: str

class RevisedBauxScore(BaseModel):
    age: float
    tbsa: float
    inhalation_injury: bool
    score: float  # age + TBSA + 17 with inhalation injury
    mortality_risk: str

class ABSIScore(BaseModel):
    age: float
    sex: Sex
    tbsa: float
    has_inhalation_injury: bool
    has_full_thickness: bool

    # Point breakdown
    age_points: int
    sex_points: int
    tbsa_points: int
    inhalation_points: int
    full_thickness_points: int

    total_score: int
    survival_probability: str
    threat_level: ThreatLevel

class ReferralDecision(BaseModel):
    """Burn centre referral outcome"""
    meets_criteria: bool
    reasons: List[str] = Field(default_factory=list)

class QSOFAScore(BaseModel):
    respiratory_rate: float
    systolic_bp: float
    altered_mentation: bool
    score: int  # 0-3
    sepsis_risk: str  # low | high

class SOFAScore(BaseModel):
    respiration_score: int
    coagulation_score: int
    liver_score: int
    cardiovascular_score: int
    cns_score: int
    renal_score: int
    total_score: int  # 0-24
    mortality_risk: str

    @property
    def components(self) -> Dict[str, int]:
        return {
            "respiration": self.respiration_score,
            "coagulation": self.coagulation_score,
            "liver": self.liver_score,
            "cardiovascular": self.cardiovascular_score,
            "cns": self.cns_score,
            "renal": self.renal_score,
        }

# ---------------------------------------------------------------------------
# Fluid resuscitation
# ---------------------------------------------------------------------------

class HourlyTarget(BaseModel):
    """Target infusion for one hour after the burn (hour 1 = first hour)"""
    hour: int
    phase: ResuscitationPhase
    elapsed_before_presentation: bool = False
    target_rate: float  # mL/hr
    target_volume: float  # mL for this hour
    cumulative_target: float  # mL since burn

class FluidAdjustment(BaseModel):
    timestamp: Optional[datetime] = None
    previous_rate: float
    new_rate: float
    adjustment: str  # "+25%", "-10%", "No change"
    reason: str
    urine_output_per_kg: float

class FluidResuscitationPlan(BaseModel):
    """24 hour resuscitation plan computed from time of burn"""
    patient_weight: float  # kg
    tbsa: float  # %
    time_of_burn: datetime
    calculated_at: datetime
    formula: ResuscitationFormula
    ml_per_kg_per_pct: float

    # Requirements
    total_fluid_24h: float  # mL
    first_half_volume: float  # first 8 hours from burn
    second_half_volume: float  # hours 8-24
    first_half_rate: float  # mL/hr over remaining phase 1 hours
    second_half_rate: float  # mL/hr over 16 hours
    colloid_volume: Optional[float] = None
    maintenance_rate: Optional[float] = None  # mL/hr, paediatric dextrose maintenance
    fluid_type: str = "Lactated Ringer's"

    # Status at calculation time
    hours_since_burn: float
    current_hour: int
    current_phase: ResuscitationPhase
    current_infusion_rate: float

    # Urine output target (mL/kg/hr)
    urine_output_target_min: float
    urine_output_target_max: float
    is_pediatric: bool = False

    hourly_targets: List[HourlyTarget] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

class InfusionRecord(BaseModel):
    timestamp: datetime
    volume_ml: float

class UrineOutput(BaseModel):
    timestamp: datetime
    volume_ml: float
    hours: float = 1.0  # collection period
    weight_kg: Optional[float] = None
    rate_per_kg: Optional[float] = None  # mL/kg/hr
    color: Optional[str] = None

    def per_kg(self, weight_kg: Optional[float] = None) -> Optional[float]:
        if self.rate_per_kg is not None:
            return self.rate_per_kg
        weight = self.weight_kg or weight_kg
        if not weight or self.hours <= 0:
            return None
        return self.volume_ml / self.hours / weight

class ResuscitationProgress(BaseModel):
    current_hour: int
    current_phase: ResuscitationPhase
    cumulative_target: float
    cumulative_administered: float
    deficit_ml: float  # positive = behind target
    fluid_remaining: float
    cumulative_urine_ml: float
    mean_urine_output_per_kg: Optional[float] = None
    urine_output_trend: str = "stable"
    recommended_adjustment: Optional[FluidAdjustment] = None

class FluidBalance(BaseModel):
    period_start: datetime
    period_end: datetime

    iv_fluids_ml: float = 0.0
    oral_fluids_ml: float = 0.0
    blood_products_ml: float = 0.0
    enteral_feeding_ml: float = 0.0
    total_input_ml: float = 0.0

    urine_output_ml: float = 0.0
    drain_output_ml: float = 0.0
    nasogastric_output_ml: float = 0.0
    insensible_loss_ml: float = 0.0
    total_output_ml: float = 0.0

    net_balance_ml: float = 0.0
    cumulative_balance_ml: float = 0.0

# ---------------------------------------------------------------------------
# Monitoring and alerts
# ---------------------------------------------------------------------------

class BurnVitalSigns(BaseModel):
    timestamp: datetime
    heart_rate: Optional[float] = None
    systolic_bp: Optional[float] = None
    diastolic_bp: Optional[float] = None
    mean_arterial_pressure: Optional[float] = None
    respiratory_rate: Optional[float] = None
    oxygen_saturation: Optional[float] = None
    temperature: Optional[float] = None
    pain_score: Optional[float] = None
    gcs_total: Optional[int] = None
    recorded_by: Optional[str] = None

    def resolved_map(self) -> Optional[float]:
        if self.mean_arterial_pressure is not None:
            return self.mean_arterial_pressure
        if self.systolic_bp is not None and self.diastolic_bp is not None:
            return round(self.diastolic_bp + (self.systolic_bp - self.diastolic_bp) / 3)
        return None

class LabValues(BaseModel):
    timestamp: datetime
    creatinine: Optional[float] = None  # mg/dL
    potassium: Optional[float] = None  # mmol/L
    sodium: Optional[float] = None
    lactate: Optional[float] = None  # mmol/L
    glucose: Optional[float] = None
    hemoglobin: Optional[float] = None  # g/dL
    platelets: Optional[float] = None  # x10^9/L
    bilirubin: Optional[float] = None  # mg/dL
    creatine_kinase: Optional[float] = None  # U/L
    albumin: Optional[float] = None
    pao2_fio2_ratio: Optional[float] = None

class AlertThreshold(BaseModel):
    parameter: str
    low_threshold: Optional[float] = None
    high_threshold: Optional[float] = None
    min_consecutive: int = 1
    priority: AlertPriority
    complication: ComplicationType = ComplicationType.CUSTOM
    title: str
    message: str
    unit: str = ""
    actions: List[str] = Field(default_factory=list)

class BurnAlert(BaseModel):
    id: str
    assessment_id: Optional[str] = None
    timestamp: datetime
    parameter: str
    type: ComplicationType
    priority: AlertPriority
    status: AlertStatus = AlertStatus.ACTIVE

    title: str
    description: str
    trigger_value: float
    threshold: str
    suggested_actions: List[str] = Field(default_factory=list)

    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution: Optional[str] = None
    escalated_to: Optional[str] = None
    escalated_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status in (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED, AlertStatus.ESCALATED)

# ---------------------------------------------------------------------------
# Nutrition and wound care
# ---------------------------------------------------------------------------

class BurnNutritionPlan(BaseModel):
    patient_weight: float
    tbsa: float
    formula: str
    caloric_target: int  # kcal/day
    protein_target: int  # g/day
    carb_target: int  # g/day
    fat_target: int  # g/day
    feeding_route: str
    micronutrients: Dict[str, float]
    recommendations: List[str] = Field(default_factory=list)

class MUSTAssessment(BaseModel):
    bmi: Optional[float] = None
    bmi_category: Optional[str] = None
    weight_loss_percent: float = 0.0
    bmi_score: int
    weight_loss_score: int
    acute_disease_score: int
    must_score: int
    risk_level: str  # Low | Medium | High
    referral_needed: bool
    monitoring_frequency: str
    recommendations: List[str] = Field(default_factory=list)
    caloric_target: Optional[float] = None
    protein_target: Optional[float] = None

class WoundCareProtocol(BaseModel):
    depth: BurnDepth
    dressing_type: str
    frequency: str
    cleansing_solution: str = "Sterile saline or chlorhexidine 0.05%"
    topical_agent: str
    debridement_method: Optional[str] = None
    special_instructions: List[str] = Field(default_factory=list)
    pain_management: List[str] = Field(default_factory=list)
    grafting: Optional[Dict[str, Any]] = None

class HealingEstimate(BaseModel):
    depth: BurnDepth
    min_days: int
    max_days: int
    notes: str

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

# mL/kg/%TBSA; overrides are merged onto these
DEFAULT_FORMULA_MULTIPLIERS: Dict[str, float] = {
    "parkland": 4.0,
    "modified_brooke": 2.0,
    "evans": 2.0,
}

class BurnEngineConfig(BaseModel):
    """Configuration for burn scoring and resuscitation engine"""

    # Baux / Revised Baux
    revised_baux_inhalation_points: float = 17.0
    baux_mortality_bands: List[List[Any]] = [
        [50, "Low (<10%)"],
        [75, "Moderate (10-30%)"],
        [100, "High (30-60%)"],
        [125, "Very High (60-90%)"],
    ]
    baux_top_band: str = "Extremely High (>90%)"

    # Resuscitation
    formula_multipliers: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_FORMULA_MULTIPLIERS))
    default_formula: ResuscitationFormula = ResuscitationFormula.PARKLAND
    phase_1_hours: float = 8.0
    phase_2_hours: float = 16.0
    resuscitation_min_tbsa_adult: float = 15.0
    resuscitation_min_tbsa_child: float = 10.0

    # Urine output targets (mL/kg/hr)
    pediatric_weight_cutoff_kg: float = 30.0
    pediatric_age_cutoff_years: float = 18.0
    adult_uo_target: List[float] = [0.5, 1.0]
    pediatric_uo_target: List[float] = [1.0, 1.5]

    # Titration
    uo_low_increase_factor: float = 1.25
    uo_high_decrease_factor: float = 0.9
    uo_high_multiplier: float = 1.5

    # Burn centre referral
    referral_tbsa_threshold: float = 10.0
    referral_age_min: float = 10.0
    referral_age_max: float = 50.0
    special_areas: List[str] = ["face", "hand", "feet", "foot", "genitalia",
                                "perineum", "major_joint"]

    # Alert thresholds (empty = use built-in defaults)
    alert_thresholds: List[AlertThreshold] = Field(default_factory=list)

    @field_validator("formula_multipliers")
    @classmethod
    def merge_formula_multipliers(cls, value: Dict[str, float]) -> Dict[str, float]:
        return {**DEFAULT_FORMULA_MULTIPLIERS, **value}
