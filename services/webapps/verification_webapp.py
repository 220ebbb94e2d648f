# services/webapps/verification_webapp.py

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from common.config import OTP_CONFIG
from common.utils.logging_config import log_context, log_operation
from common.verification import CodeStore, Purpose, VerificationService
from common.verification.email_service import EmailCodeDeliverer
from system.maintenance import CodeSweeper

from . import logger


# Define Pydantic models for request validation
class RequestCodeBody(BaseModel):
    identity: str = Field(..., min_length=3, max_length=320, description="Email address to verify")
    purpose: Purpose = Field(Purpose.REGISTRATION, description="Verification context")

    @field_validator("identity")
    @classmethod
    def identity_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("identity must not be blank")
        return value

    @field_validator("purpose", mode="before")
    @classmethod
    def parse_purpose(cls, value):
        return Purpose.parse(value)


class VerifyCodeBody(BaseModel):
    identity: str = Field(..., min_length=3, max_length=320)
    code: str = Field(..., min_length=1, max_length=32)


def create_app(
        service: Optional[VerificationService] = None,
        sweeper: Optional[CodeSweeper] = None
) -> FastAPI:
    """
    Build the verification web app.

    Args:
        service: Verification service; a default one with an in-memory store
            and email delivery is created when omitted
        sweeper: Background sweeper started and stopped with the app;
            created for the default service when omitted

    Returns:
        Configured FastAPI app
    """
    if service is None:
        store = CodeStore()
        service = VerificationService(store, EmailCodeDeliverer())
        sweeper = sweeper or CodeSweeper(store, OTP_CONFIG["sweep_interval_seconds"])

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Verification service starting up", extra={
            'app_title': app.title,
            'sweeper_enabled': sweeper is not None
        })
        if sweeper is not None:
            sweeper.start()
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.stop(timeout=5)
            logger.info("Verification service shutting down")

    app = FastAPI(
        title="Verification Code Service",
        description="One-time verification codes for registration and privileged bookings",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.verification_service = service
    app.state.code_sweeper = sweeper

    @app.get("/health")
    @log_operation("health_check")
    async def health_check():
        """Simple health check endpoint for monitoring"""
        logger.debug("Health check requested")
        return {"status": "ok"}

    @app.post("/otp/request")
    @log_operation("request_code_route")
    def request_code_route(body: RequestCodeBody):
        """Issue a code and send it to the identity"""
        with log_context(logger, endpoint="otp_request"):
            outcome = service.request_code(body.identity, body.purpose)
            status_code = 200 if outcome.requested else 502
            return JSONResponse(status_code=status_code, content=outcome.to_dict())

    @app.post("/otp/verify")
    @log_operation("verify_code_route", log_args=False)
    def verify_code_route(body: VerifyCodeBody):
        """Check a submitted code"""
        with log_context(logger, endpoint="otp_verify"):
            outcome = service.verify_code(body.identity, body.code)
            status_code = 200 if outcome.valid else 400
            return JSONResponse(status_code=status_code, content=outcome.to_dict())

    logger.info("FastAPI app initialized for verification service")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting verification service with FastAPI...", extra={
        'host': "0.0.0.0",
        'port': 8080
    })
    uvicorn.run("services.webapps.verification_webapp:app", host="0.0.0.0", port=8080, reload=False)
