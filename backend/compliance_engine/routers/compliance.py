"""
Compliance Engine - API Endpoints

Thin HTTP surface over the in-process engine. Every decision is made by the
engine; handlers only translate requests and serialize results.

Endpoints:
A) POST /compliance/check - Pre-send decision (read-only)
B) POST /compliance/log - Record a communication attempt
C) /compliance/flags - List, create, resolve compliance flags
D) /compliance/cease-desist - Register, acknowledge, lift, status
E) GET /compliance/frequency, /compliance/time - Current limits
F) POST /compliance/letters/validate - Letter rule evaluation
G) GET /compliance/summary, /compliance/export - Audit reporting
H) GET /compliance/cases/{case_id}/status - Live case status

Handlers are plain functions, so the blocking store calls run in FastAPI's
threadpool rather than on the event loop.
"""
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ..models.compliance import (
    CeaseDesistMethod,
    CommunicationChannel,
    CommunicationDetails,
    CommunicationDirection,
    CommunicationType,
    ComplianceFlagType,
    FlagSeverity,
    ValidationContext,
)
from ..services.compliance import ComplianceEngine

router = APIRouter(prefix="/compliance", tags=["Compliance"])


def get_engine(request: Request) -> ComplianceEngine:
    """Dependency - the engine built at application startup."""
    return request.app.state.compliance_engine


# =============================================================================
# REQUEST MODELS
# =============================================================================

class PreSendCheckRequest(BaseModel):
    case_id: str = Field(..., min_length=1)
    debtor_id: str = Field(..., min_length=1)
    creditor_id: Optional[str] = None
    communication_type: Optional[CommunicationType] = None


class LogCommunicationRequest(BaseModel):
    case_id: str = Field(..., min_length=1)
    debtor_id: str = Field(..., min_length=1)
    direction: CommunicationDirection
    channel: CommunicationChannel
    communication_type: CommunicationType = CommunicationType.MESSAGE
    creditor_id: Optional[str] = None
    message_id: Optional[str] = None
    content: Optional[str] = None
    original_content: Optional[str] = Field(None, description="Pre-rewrite text, if modified")
    tone_score: Optional[float] = None
    supersedes_id: Optional[str] = Field(None, description="Record this entry corrects")


class CreateFlagRequest(BaseModel):
    case_id: str = Field(..., min_length=1)
    flag_type: ComplianceFlagType
    severity: FlagSeverity
    details: dict = Field(default_factory=dict)
    message_id: Optional[str] = None


class ResolveFlagRequest(BaseModel):
    notes: str = Field(..., description="Human-supplied justification")
    resolved_by: str


class RegisterCeaseDesistRequest(BaseModel):
    case_id: str = Field(..., min_length=1)
    debtor_id: str = Field(..., min_length=1)
    method: CeaseDesistMethod
    notes: Optional[str] = None


class AcknowledgeCeaseDesistRequest(BaseModel):
    acknowledged_by: str


class LiftCeaseDesistRequest(BaseModel):
    reason: str = Field(..., description="Legal basis for lifting; required")
    lifted_by: str


class SetTimezoneRequest(BaseModel):
    timezone: str = Field(..., description="IANA zone name, e.g. America/Chicago")


class ValidateLetterRequest(BaseModel):
    content: str
    context: ValidationContext


# =============================================================================
# PRE-SEND / LOG
# =============================================================================

@router.post("/check")
def pre_send_check(request: PreSendCheckRequest, engine: ComplianceEngine = Depends(get_engine)):
    """Allow/block decision for a prospective send. Records nothing."""
    result = engine.gate.evaluate(
        request.case_id,
        request.debtor_id,
        request.creditor_id,
        request.communication_type,
    )
    return result.to_dict()


@router.post("/log")
def log_communication(request: LogCommunicationRequest, engine: ComplianceEngine = Depends(get_engine)):
    record = engine.audit_log.log(CommunicationDetails(**request.model_dump()))
    return record.to_dict()


@router.get("/logs/{case_id}")
def get_logs(
    case_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    direction: Optional[CommunicationDirection] = None,
    compliant: Optional[bool] = None,
    engine: ComplianceEngine = Depends(get_engine),
):
    logs = engine.audit_log.get_logs(
        case_id,
        start_date=start_date,
        end_date=end_date,
        direction=direction,
        compliant=compliant,
    )
    return {"logs": [r.to_dict() for r in logs], "count": len(logs)}


# =============================================================================
# FLAGS
# =============================================================================

@router.get("/flags")
def get_flags(
    case_id: Optional[str] = None,
    resolved: Optional[bool] = None,
    severity: Optional[FlagSeverity] = None,
    flag_type: Optional[ComplianceFlagType] = None,
    engine: ComplianceEngine = Depends(get_engine),
):
    flags = engine.audit_log.get_flags(case_id, resolved=resolved, severity=severity, flag_type=flag_type)
    return {"flags": [f.to_dict() for f in flags], "count": len(flags)}


@router.post("/flags")
def create_flag(request: CreateFlagRequest, engine: ComplianceEngine = Depends(get_engine)):
    """Manual flag, e.g. for a reviewer-detected issue."""
    flag = engine.audit_log.create_flag(
        case_id=request.case_id,
        flag_type=request.flag_type,
        severity=request.severity,
        details=request.details,
        message_id=request.message_id,
    )
    return flag.to_dict()


@router.post("/flags/{flag_id}/resolve")
def resolve_flag(flag_id: str, request: ResolveFlagRequest, engine: ComplianceEngine = Depends(get_engine)):
    flag = engine.audit_log.resolve_flag(flag_id, request.notes, request.resolved_by)
    if flag is None:
        raise HTTPException(status_code=404, detail=f"Flag {flag_id} not found")
    return flag.to_dict()


# =============================================================================
# CEASE AND DESIST
# =============================================================================

@router.post("/cease-desist")
def register_cease_desist(request: RegisterCeaseDesistRequest, engine: ComplianceEngine = Depends(get_engine)):
    record = engine.cease_desist.register(request.case_id, request.debtor_id, request.method, request.notes)
    return record.to_dict()


@router.get("/cease-desist")
def list_active_cease_desist(engine: ComplianceEngine = Depends(get_engine)):
    records = engine.cease_desist.active_cases()
    return {"records": [r.to_dict() for r in records], "count": len(records)}


@router.get("/cease-desist/{case_id}")
def get_cease_desist(case_id: str, engine: ComplianceEngine = Depends(get_engine)):
    return engine.cease_desist.check(case_id).to_dict()


@router.post("/cease-desist/{case_id}/acknowledge")
def acknowledge_cease_desist(
    case_id: str,
    request: AcknowledgeCeaseDesistRequest,
    engine: ComplianceEngine = Depends(get_engine),
):
    record = engine.cease_desist.acknowledge(case_id, request.acknowledged_by)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No cease and desist for case {case_id}")
    return record.to_dict()


@router.post("/cease-desist/{case_id}/lift")
def lift_cease_desist(
    case_id: str,
    request: LiftCeaseDesistRequest,
    engine: ComplianceEngine = Depends(get_engine),
):
    lifted = engine.cease_desist.lift(case_id, request.reason, request.lifted_by)
    if not lifted:
        raise HTTPException(status_code=404, detail=f"No active cease and desist for case {case_id}")
    return {"case_id": case_id, "lifted": True}


# =============================================================================
# FREQUENCY / TIME
# =============================================================================

@router.get("/frequency/{debtor_id}/{case_id}")
def get_frequency(debtor_id: str, case_id: str, engine: ComplianceEngine = Depends(get_engine)):
    result = engine.frequency.check(debtor_id, case_id)
    return {
        **result.to_dict(),
        "status": engine.frequency.status(debtor_id, case_id),
    }


@router.get("/time/{debtor_id}")
def get_time_check(debtor_id: str, engine: ComplianceEngine = Depends(get_engine)):
    result = engine.time_restriction.is_allowed(debtor_id)
    return {
        **result.to_dict(),
        "message": engine.time_restriction.restriction_message(debtor_id),
        "hours_until_allowed": engine.time_restriction.hours_until_allowed(debtor_id),
    }


@router.put("/timezone/{debtor_id}")
def set_timezone(debtor_id: str, request: SetTimezoneRequest, engine: ComplianceEngine = Depends(get_engine)):
    engine.time_restriction.set_debtor_timezone(debtor_id, request.timezone)
    return {"debtor_id": debtor_id, "timezone": request.timezone}


# =============================================================================
# LETTERS
# =============================================================================

@router.post("/letters/validate")
def validate_letter(request: ValidateLetterRequest, engine: ComplianceEngine = Depends(get_engine)):
    return engine.letter_validator.validate(request.content, request.context).to_dict()


@router.post("/letters/disclosures")
def generate_disclosures(context: ValidationContext, engine: ComplianceEngine = Depends(get_engine)):
    blocks = engine.disclosures(context)
    return {
        "blocks": [b.to_dict() for b in blocks],
        "content": engine.complete_disclosure(context),
    }


@router.get("/rules")
def list_rules(engine: ComplianceEngine = Depends(get_engine)):
    return {
        "rule_set_version": engine.letter_validator.rule_set.version,
        "rules": engine.letter_validator.available_rules(),
    }


# =============================================================================
# SUMMARY / EXPORT
# =============================================================================

@router.get("/summary")
def get_overview(recent: int = Query(5, ge=0), engine: ComplianceEngine = Depends(get_engine)):
    """Flag totals across all cases."""
    return engine.audit_log.overview(recent_limit=recent).to_dict()


@router.get("/summary/{case_id}")
def get_summary(case_id: str, debtor_id: Optional[str] = None, engine: ComplianceEngine = Depends(get_engine)):
    return engine.audit_log.summary(case_id, debtor_id=debtor_id).to_dict()


@router.get("/export")
def export_compliance_data(
    case_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    include_flags: bool = True,
    format: Literal["json", "csv"] = Query("json"),
    engine: ComplianceEngine = Depends(get_engine),
):
    if format == "csv":
        content = engine.audit_log.export_csv(case_id, start_date=start_date, end_date=end_date)
        filename = f"compliance_export_{case_id or 'all'}.csv"
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    return engine.audit_log.export(case_id, start_date=start_date, end_date=end_date, include_flags=include_flags)


# =============================================================================
# CASE STATUS
# =============================================================================

@router.get("/cases/{case_id}/status")
def get_case_status(
    case_id: str,
    debtor_id: str = Query(..., min_length=1),
    engine: ComplianceEngine = Depends(get_engine),
):
    """Live status for a case, including whether a message could be sent now. Records nothing."""
    return engine.audit_log.status(case_id, debtor_id).to_dict()
