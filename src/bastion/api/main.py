"""FastAPI application for bastion."""

from typing import Optional

from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from bastion import __version__
from bastion.collectors.headers import parse_device_context
from bastion.db.session import get_session
from bastion.exceptions import InvalidInputError, NotFoundError
from bastion.scoring.factors import RiskAssessment
from bastion.scoring.signals import TransactionContext
from bastion.services.assessor import accept_access, assess_access, assess_user_device
from bastion.services.store import ProfileStore

app = FastAPI(
    title="Bastion",
    description="Device posture and access context risk scoring API",
    version=__version__,
)


# Request / response models
class AssessmentRequest(BaseModel):
    """Request body for assessment endpoints."""

    user_id: str
    transaction_amount: Optional[float] = Field(None, ge=0)


class FactorResponse(BaseModel):
    name: str
    description: str
    severity: str
    weight: int


class AssessmentResponse(BaseModel):
    """Response model for assessment endpoints."""

    user_id: Optional[str]
    device_id: Optional[str]
    mode: str
    score: int
    level: str
    factors: list[FactorResponse]
    requires_mfa: bool
    block_access: bool
    decision: str
    timestamp: str

    @classmethod
    def from_assessment(cls, assessment: RiskAssessment) -> "AssessmentResponse":
        data = assessment.to_dict()
        data.pop("raw_score")
        return cls(**data)


class DevicePostureResponse(BaseModel):
    """A registered device's compliance posture."""

    device_id: str
    os_type: Optional[str]
    os_version: Optional[str]
    firewall_enabled: Optional[bool]
    antivirus_enabled: Optional[bool]
    disk_encryption_enabled: Optional[bool]
    last_update: Optional[str]
    compliance_score: Optional[int]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


def _transaction(body: AssessmentRequest) -> Optional[TransactionContext]:
    if body.transaction_amount is None:
        return None
    return TransactionContext(amount=body.transaction_amount)


def _device_response(device) -> DevicePostureResponse:
    return DevicePostureResponse(
        device_id=device.id,
        os_type=device.os_type,
        os_version=device.os_version,
        firewall_enabled=device.firewall_enabled,
        antivirus_enabled=device.antivirus_enabled,
        disk_encryption_enabled=device.disk_encryption_enabled,
        last_update=device.last_update.isoformat() if device.last_update else None,
        compliance_score=device.compliance_score,
    )


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@app.get("/device-posture", response_model=list[DevicePostureResponse])
def list_device_postures(session: Session = Depends(get_session)):
    """List all registered device postures."""
    return [_device_response(d) for d in ProfileStore(session).list_devices()]


@app.get("/device-posture/{device_id}", response_model=DevicePostureResponse)
def get_device_posture(device_id: str, session: Session = Depends(get_session)):
    """Get one device posture."""
    return _device_response(ProfileStore(session).get_device(device_id))


@app.post("/risk-assessment", response_model=AssessmentResponse)
def risk_assessment(body: AssessmentRequest, session: Session = Depends(get_session)):
    """
    Assess the device registered to a user.

    Returns 404 when the user or their device cannot be resolved.
    """
    assessment = assess_user_device(session, body.user_id, _transaction(body))
    session.commit()
    return AssessmentResponse.from_assessment(assessment)


@app.post("/assess", response_model=AssessmentResponse)
def assess(
    body: AssessmentRequest,
    session: Session = Depends(get_session),
    x_device_posture: Optional[str] = Header(None),
    x_access_context: Optional[str] = Header(None),
):
    """Assess an access attempt from the device context headers."""
    device_context = parse_device_context(x_device_posture, x_access_context)
    assessment = assess_access(session, body.user_id, device_context, _transaction(body))
    session.commit()
    return AssessmentResponse.from_assessment(assessment)


@app.post("/authorize")
def authorize(
    body: AssessmentRequest,
    session: Session = Depends(get_session),
    x_device_posture: Optional[str] = Header(None),
    x_access_context: Optional[str] = Header(None),
    x_mfa_verified: Optional[str] = Header(None),
):
    """
    Gate a sensitive operation on the risk verdict.

    403 when access is blocked, 401 when step-up verification is required
    and the client has not completed it, 200 otherwise.
    """
    device_context = parse_device_context(x_device_posture, x_access_context)
    assessment = assess_access(session, body.user_id, device_context, _transaction(body))

    if assessment.block_access:
        session.commit()
        return JSONResponse(
            status_code=403,
            content={
                "error": "Access denied",
                "reason": assessment.reason,
                "risk_level": assessment.level.value,
            },
        )

    mfa_verified = (x_mfa_verified or "").lower() == "true"
    if assessment.requires_mfa and not mfa_verified:
        session.commit()
        return JSONResponse(
            status_code=401,
            content={
                "error": "Additional verification required",
                "mfa_required": True,
                "reason": assessment.reason,
                "risk_level": assessment.level.value,
            },
        )

    accept_access(session, body.user_id, device_context)
    session.commit()
    return {"success": True, "risk_level": assessment.level.value, "score": assessment.score}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Bastion",
        "description": "Device posture and access context risk scoring API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "health": "/health",
            "device_posture": "/device-posture",
            "risk_assessment": "/risk-assessment",
            "assess": "/assess",
            "authorize": "/authorize",
        },
    }
