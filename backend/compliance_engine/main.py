"""
Compliance Engine - FastAPI Application

Main entry point for the communication-compliance service.

Architecture:
- Send attempt → PreSendGate (cease-and-desist, quiet hours, frequency)
- PreSendGate → ComplianceAuditLog (immutable record + flags)
- Allowed outbound send → FrequencyTracker
- Letter text → LetterComplianceValidator (versioned rule set)
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .database import SessionLocal, init_db
from .errors import ComplianceValidationError, FlagStateError
from .routers import compliance_router
from .services.compliance import ComplianceEngine, SqlAlchemyComplianceStore, build_compliance_engine

VERSION = "1.0.0"


def create_app(engine: Optional[ComplianceEngine] = None) -> FastAPI:
    """
    Build the application.

    With no engine given, startup creates the tables and wires an engine over
    the relational store. Tests pass their own engine instead.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is None:
            init_db()
            app.state.compliance_engine = build_compliance_engine(
                store=SqlAlchemyComplianceStore(SessionLocal)
            )
        else:
            app.state.compliance_engine = engine
        yield

    app = FastAPI(
        lifespan=lifespan,
        title="Compliance Engine",
        description="""
    Communication Compliance Engine - FDCPA / Regulation F enforcement

    Decides whether each outbound debtor communication may be sent and keeps
    an immutable, auditable record of every decision.

    ## Checks
    1. **Cease and desist**: 15 U.S.C. § 1692c(c)
    2. **Quiet hours**: 15 U.S.C. § 1692c(a)(1), debtor local time
    3. **Frequency**: 12 CFR § 1006.14(b)(2), 7 contacts in 7 days
    4. **Letter content**: versioned FDCPA rule sets
    """,
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ComplianceValidationError)
    async def validation_error_handler(request: Request, exc: ComplianceValidationError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(FlagStateError)
    async def flag_state_error_handler(request: Request, exc: FlagStateError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    app.include_router(compliance_router)

    @app.get("/")
    async def root():
        """Root endpoint - API information."""
        return {
            "name": "Compliance Engine",
            "version": VERSION,
            "description": "Communication compliance enforcement (FDCPA / Regulation F)",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": VERSION}

    return app


app = create_app()


# For running with: python -m compliance_engine.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
