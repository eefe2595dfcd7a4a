"""
Wound care protocols and healing time estimates by burn depth
"""

from typing import Dict

from .schema import BurnDepth, WoundCareProtocol, HealingEstimate

_DEPTH_PROTOCOLS: Dict[BurnDepth, dict] = {
    BurnDepth.SUPERFICIAL: {
        "dressing_type": "Paraffin gauze or hydrogel",
        "frequency": "Every 3-5 days",
        "topical_agent": "Aloe vera or moisturizer",
        "pain_management": ["Paracetamol", "Topical anaesthetic spray"],
    },
    BurnDepth.SUPERFICIAL_PARTIAL: {
        "dressing_type": "Silver foam dressing (Mepilex Ag) or Biobrane",
        "frequency": "Every 2-3 days",
        "topical_agent": "Silver sulfadiazine 1% or Acticoat",
        "pain_management": ["Paracetamol", "NSAIDs", "Tramadol PRN"],
        "special_instructions": [
            "Debride loose blisters",
            "Leave intact blisters if <2cm",
            "Monitor for infection daily",
        ],
    },
    BurnDepth.DEEP_PARTIAL: {
        "dressing_type": "Silver-impregnated dressing (Acticoat, Aquacel Ag)",
        "frequency": "Every 1-3 days depending on exudate",
        "topical_agent": "Mafenide acetate for eschar penetration",
        "pain_management": ["Morphine", "Ketamine for dressing changes", "Gabapentin"],
        "debridement_method": "Enzymatic (Collagenase) or surgical",
        "special_instructions": [
            "Serial examination to assess conversion to full thickness",
            "Consider early excision if conversion suspected",
            "Prepare for grafting",
        ],
    },
    BurnDepth.FULL_THICKNESS: {
        "dressing_type": "Antimicrobial dressing with absorptive layer",
        "frequency": "Daily initially, then based on wound status",
        "topical_agent": "Mafenide acetate (penetrates eschar) or nystatin for fungal prevention",
        "pain_management": ["Opioids", "Ketamine", "Regional anesthesia for dressing changes"],
        "debridement_method": "Early surgical excision recommended",
        "special_instructions": [
            "Early surgical excision and grafting improves outcomes",
            "Watch for eschar constriction in circumferential burns",
            "Escharotomy may be needed",
        ],
    },
}

# (location keywords, extra instructions)
_LOCATION_INSTRUCTIONS = [
    (("face",), [
        "Ophthalmology consult for periorbital burns",
        "Use open technique or specialized facial dressings",
        "Frequent lubrication of eyes",
    ]),
    (("hand",), [
        "Early hand therapy referral",
        "Splint in position of safety (intrinsic plus)",
        "Aggressive early mobilization when possible",
    ]),
    (("perineum", "genital"), [
        "Foley catheter for major burns",
        "Careful positioning",
        "Frequent cleansing",
    ]),
]

HEALING_TIMES: Dict[BurnDepth, HealingEstimate] = {
    BurnDepth.SUPERFICIAL: HealingEstimate(
        depth=BurnDepth.SUPERFICIAL, min_days=5, max_days=10,
        notes="Should heal without scarring"),
    BurnDepth.SUPERFICIAL_PARTIAL: HealingEstimate(
        depth=BurnDepth.SUPERFICIAL_PARTIAL, min_days=10, max_days=21,
        notes="Usually heals without grafting; minimal scarring"),
    BurnDepth.DEEP_PARTIAL: HealingEstimate(
        depth=BurnDepth.DEEP_PARTIAL, min_days=21, max_days=35,
        notes="May require grafting; significant scarring likely"),
    BurnDepth.FULL_THICKNESS: HealingEstimate(
        depth=BurnDepth.FULL_THICKNESS, min_days=28, max_days=90,
        notes="Requires surgical excision and grafting; scarring and contracture expected"),
}

def _grafting(depth: BurnDepth, tbsa: float):
    if depth == BurnDepth.DEEP_PARTIAL:
        return {
            "indicated": True,
            "timing": "After demarcation (7-14 days)",
            "type": "Split-thickness skin graft",
        }
    if depth == BurnDepth.FULL_THICKNESS:
        return {
            "indicated": True,
            "timing": "Early excision within 3-5 days",
            "type": ("Consider cultured skin, Integra, or allograft" if tbsa > 40
                     else "Split-thickness autograft"),
        }
    return None

def generate_wound_care_protocol(depth: BurnDepth, tbsa: float, location: str = "",
                                 days_since_injury: int = 0) -> WoundCareProtocol:
    """Dressing, topical agent, analgesia and grafting plan for a wound"""
    depth = BurnDepth(depth)
    base = _DEPTH_PROTOCOLS[depth]

    instructions = list(base.get("special_instructions", []))
    location = (location or "").lower()
    for keywords, extra in _LOCATION_INSTRUCTIONS:
        if any(k in location for k in keywords):
            instructions.extend(extra)

    grafting = _grafting(depth, tbsa)
    if days_since_injury > 14 and grafting:
        instructions.append("Wound bed preparation for delayed grafting")

    return WoundCareProtocol(
        depth=depth,
        dressing_type=base["dressing_type"],
        frequency=base["frequency"],
        topical_agent=base["topical_agent"],
        debridement_method=base.get("debridement_method"),
        special_instructions=instructions,
        pain_management=list(base["pain_management"]),
        grafting=grafting,
    )

def estimate_healing_time(depth: BurnDepth) -> HealingEstimate:
    return HEALING_TIMES[BurnDepth(depth)].model_copy()
