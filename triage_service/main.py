"""
Triage Assist Service - FastAPI Backend
Symptom and image analysis for rural health workers

Architecture:
  - AIGateway = rate-limited access to the text, image and translation APIs,
    with mock and fallback substitution
  - MedicalAnalyzer = validation, prompt building, risk scoring, history
"""
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .analyzer import MAX_IMAGES, MedicalAnalyzer
from .config import CredentialStore, env_bool
from .errors import InvalidInput
from .gateway import AIGateway, ResponseSource
from .input_sanitization import MAX_IMAGE_BYTES
from .models import ImageUpload, PatientData, TranslateRequest, TranslateResponse
from .structured_logging import log_request, set_request_id, setup_logging

logger = logging.getLogger(__name__)


def create_app(analyzer: Optional[MedicalAnalyzer] = None) -> FastAPI:
    """Build the app. Without an analyzer, one is built from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_gateway = None
        if analyzer is None:
            setup_logging(use_json=env_bool("LOG_JSON", True))
            logger.info("Starting Triage Assist Service...")
            credentials = CredentialStore.from_env()
            report = credentials.validate()
            for issue in report.issues:
                logger.warning(f"Configuration issue: {issue}")
            owned_gateway = AIGateway(
                credentials,
                timeout=float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30")),
            )
            app.state.analyzer = MedicalAnalyzer(
                owned_gateway,
                history_limit=int(os.getenv("ANALYSIS_HISTORY_LIMIT", "100")),
            )
        else:
            app.state.analyzer = analyzer

        mode = "mock" if app.state.analyzer.gateway.credentials.is_development_mode() else "live"
        logger.info(f"Ready to serve requests ({mode} mode).")
        yield
        logger.info("Shutting down...")
        if owned_gateway is not None:
            await owned_gateway.aclose()

    app = FastAPI(
        title="Triage Assist Service",
        description="Symptom and image analysis gateway with offline fallback",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Request ID tracking and access logging."""
        start_time = time.time()
        request_id = set_request_id(request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8])

        try:
            response = await call_next(request)
        except Exception as e:
            log_request(
                method=request.method,
                path=request.url.path,
                status_code=500,
                duration_ms=(time.time() - start_time) * 1000,
                error=f"{type(e).__name__}: {e}",
            )
            raise

        if request.url.path not in ("/health", "/docs", "/openapi.json"):
            log_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=(time.time() - start_time) * 1000,
            )
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/health")
    async def health(request: Request, deep: bool = False):
        analyzer_: MedicalAnalyzer = request.app.state.analyzer
        gateway = analyzer_.gateway
        credentials = gateway.credentials
        report = credentials.validate()
        body = {
            "status": "healthy",
            "mode": "mock" if credentials.is_development_mode() else "live",
            "config_valid": report.valid,
            "config_issues": report.issues,
            "rate_limits": {
                name: {
                    "max_requests": config.max_requests,
                    "window_seconds": config.window_seconds,
                    "used": gateway.rate_limiter.count(name),
                }
                for name, config in gateway.rate_limiter.limits.items()
            },
            "history_size": len(analyzer_.history),
            "upstream_requests": gateway.requests_sent,
        }
        if deep:
            body["services"] = await gateway.check_service_health()
        return body

    @app.post("/analyze")
    async def analyze(
        request: Request,
        symptoms: str = Form(...),
        age: Optional[str] = Form(None),
        gender: Optional[str] = Form(None),
        language: str = Form("en"),
        images: Optional[list[UploadFile]] = File(None),
    ):
        """Analyze patient symptoms and optional images."""
        images = images or []
        # Reject before buffering anything into memory
        if len(images) > MAX_IMAGES:
            raise HTTPException(
                status_code=422,
                detail=[f"At most {MAX_IMAGES} images can be analyzed at once"],
            )

        uploads = []
        for image in images:
            if image.size is not None and image.size > MAX_IMAGE_BYTES:
                logger.warning(f"Skipping image {image.filename!r}: {image.size} bytes exceeds limit")
                continue
            uploads.append(ImageUpload(
                filename=image.filename or "image",
                content_type=image.content_type or "",
                data=await image.read(),
            ))

        patient = PatientData(
            symptoms=symptoms,
            age=age,
            gender=gender,
            images=tuple(uploads),
            language=language,
        )
        logger.info(f"Analyzing patient ({len(symptoms)} chars, {len(uploads)} images)")

        try:
            result = await request.app.state.analyzer.analyze_patient(patient)
        except InvalidInput as e:
            raise HTTPException(status_code=422, detail=e.reasons)
        return result.model_dump(mode="json")

    @app.get("/history")
    async def history(request: Request, limit: int = Query(10, ge=1, le=100)):
        results = request.app.state.analyzer.history[-limit:]
        return [r.model_dump(mode="json") for r in reversed(results)]

    @app.post("/translate", response_model=TranslateResponse)
    async def translate(body: TranslateRequest, request: Request):
        gateway: AIGateway = request.app.state.analyzer.gateway
        response = await gateway.translate(body.text, body.source, body.target)
        return TranslateResponse(
            translated_text=response.value,
            source=body.source,
            target=body.target,
            translated=response.source is ResponseSource.LIVE,
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
