#!/usr/bin/env python3
"""
Burn Engine Error Code System
Provides specific, auditable error codes for clinical calculation failures.
"""

from enum import Enum
from typing import Dict, Any, Optional
import logging
import uuid
from datetime import datetime
import json

class ErrorCode(Enum):
    """Specific error codes for burn engine components"""

    # TBSA / burn input errors (BURN_xxx)
    BURN_UNKNOWN_REGION = "BURN_001"
    BURN_NEGATIVE_PERCENT = "BURN_002"
    BURN_DUPLICATE_REGION = "BURN_003"
    BURN_TBSA_OUT_OF_RANGE = "BURN_004"
    BURN_INVALID_AGE = "BURN_005"

    # Scoring errors (SCORE_xxx)
    SCORE_INVALID_INPUT = "SCORE_001"
    SCORE_GCS_OUT_OF_RANGE = "SCORE_002"

    # Fluid resuscitation errors (FLUID_xxx)
    FLUID_INVALID_WEIGHT = "FLUID_001"
    FLUID_INVALID_TBSA = "FLUID_002"
    FLUID_UNKNOWN_FORMULA = "FLUID_003"
    FLUID_INVALID_MULTIPLIER = "FLUID_004"
    FLUID_INVALID_RATE = "FLUID_005"

    # Alert errors (ALERT_xxx)
    ALERT_NOT_FOUND = "ALERT_001"
    ALERT_INVALID_TRANSITION = "ALERT_002"
    ALERT_INVALID_THRESHOLD = "ALERT_003"

    # Nutrition errors (NUTR_xxx)
    NUTR_INVALID_WEIGHT = "NUTR_001"
    NUTR_INVALID_HEIGHT = "NUTR_002"

    # API/Application errors (APP_xxx)
    APP_INVALID_REQUEST = "APP_001"
    APP_MISSING_PARAMETER = "APP_002"
    APP_INTERNAL_ERROR = "APP_005"

    # Configuration errors (CFG_xxx)
    CFG_INVALID_CONFIG = "CFG_002"

class BurnCareError(Exception):
    """Base exception class for the burn engine with specific error codes"""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow().isoformat()
        self.trace_id = str(uuid.uuid4())[:8]

        super().__init__(f"[{error_code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/API responses"""
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "description": get_error_description(self.error_code),
            "details": self.details,
            "timestamp": self.timestamp,
            "trace_id": self.trace_id,
            "original_error": str(self.original_exception) if self.original_exception else None
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)

class ErrorLogger:
    """Centralized error logging with structured output"""

    def __init__(self, logger_name: str = "burn_engine"):
        self.logger = logging.getLogger(logger_name)

    def log_error(self, error: BurnCareError, level: int = logging.ERROR):
        """Log error with structured format"""
        self.logger.log(
            level,
            f"BURN_ERROR: {error.error_code.value} - {error.message}",
            extra={
                "error_code": error.error_code.value,
                "trace_id": error.trace_id,
                "details": error.details,
                "error_timestamp": error.timestamp
            }
        )

        if error.original_exception:
            self.logger.debug(
                f"Original exception for {error.trace_id}:",
                exc_info=error.original_exception
            )

def invalid_input(error_code: ErrorCode, message: str, **details: Any) -> BurnCareError:
    """Create an input validation error with the offending values attached"""
    return BurnCareError(error_code=error_code, message=message, details=details)

ERROR_CODE_DESCRIPTIONS = {
    ErrorCode.BURN_UNKNOWN_REGION: "Body region not present in the selected chart",
    ErrorCode.BURN_NEGATIVE_PERCENT: "Burned percentage for a region is negative",
    ErrorCode.BURN_DUPLICATE_REGION: "Body region reported more than once",
    ErrorCode.BURN_TBSA_OUT_OF_RANGE: "Burned surface area outside 0-100%",
    ErrorCode.BURN_INVALID_AGE: "Age must be a non-negative number of years",
    ErrorCode.SCORE_INVALID_INPUT: "Score input missing or out of range",
    ErrorCode.SCORE_GCS_OUT_OF_RANGE: "GCS component outside its valid range",
    ErrorCode.FLUID_INVALID_WEIGHT: "Patient weight must be positive",
    ErrorCode.FLUID_INVALID_TBSA: "Resuscitation TBSA must be within (0, 100]",
    ErrorCode.FLUID_UNKNOWN_FORMULA: "Unsupported resuscitation formula",
    ErrorCode.FLUID_INVALID_MULTIPLIER: "Custom formula multiplier must be positive",
    ErrorCode.FLUID_INVALID_RATE: "Infusion rate must be non-negative",
    ErrorCode.ALERT_NOT_FOUND: "Alert id not present in register",
    ErrorCode.ALERT_INVALID_TRANSITION: "Alert status does not allow this action",
    ErrorCode.ALERT_INVALID_THRESHOLD: "No threshold or status band for parameter",
    ErrorCode.NUTR_INVALID_WEIGHT: "Weight must be positive for nutrition targets",
    ErrorCode.NUTR_INVALID_HEIGHT: "Height must be positive for BMI",
    ErrorCode.APP_INVALID_REQUEST: "Request body or parameter is invalid",
    ErrorCode.APP_MISSING_PARAMETER: "Required request parameter missing",
    ErrorCode.APP_INTERNAL_ERROR: "Unexpected internal error",
    ErrorCode.CFG_INVALID_CONFIG: "Configuration values rejected",
}

def get_error_description(error_code: ErrorCode) -> str:
    """Get human-readable description for error code"""
    return ERROR_CODE_DESCRIPTIONS.get(error_code, "Unknown error")
