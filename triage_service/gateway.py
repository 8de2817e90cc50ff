"""
AI Gateway - the single path from the service to third-party AI endpoints.

Every operation resolves through one of three paths, tried in order:

1. Mock: development mode (explicit, or credentials missing). No network I/O.
2. Live: rate limit, auth headers, HTTP call, response interpretation.
3. Fallback: any live failure is replaced by a local answer chosen by
   recovery_for(). Unreachable upstreams give the keyword mock; a 2xx reply
   that cannot be read gives the emergency payload.

Callers never see an exception for an anticipated upstream failure.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

import httpx

from .config import CredentialStore, IMAGE_SERVICE, TEXT_SERVICE, TRANSLATION_SERVICE
from .errors import (
    CallResult,
    ErrorKind,
    MalformedResponse,
    MissingCredential,
    NetworkFailure,
    RateLimitExceeded,
    Recovery,
    TriageError,
    UpstreamTimeout,
    recovery_for,
)
from .image_utils import compress_image
from .input_sanitization import sanitize_filename
from .json_utils import parse_symptom_analysis
from .mock_responses import (
    IMAGE_ANALYSIS_UNAVAILABLE,
    as_fallback,
    emergency_analysis,
    mock_image_analysis,
    select_mock_analysis,
)
from .models import ImageUpload, SymptomAnalysis
from .prompts import SYSTEM_PROMPT
from .rate_limiter import RateLimiter
from .structured_logging import StructuredLogger

logger = StructuredLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0
MOCK_DELAY_SECONDS = 1.0
IMAGE_MOCK_DELAY_SECONDS = 1.5
MODEL_LOADING_STATUS = 503  # Hosted inference returns this while a model warms up

TEXT_TEMPERATURE = 0.1
TEXT_MAX_TOKENS = 1500


class ResponseSource(str, Enum):
    MOCK = "mock"
    LIVE = "live"
    FALLBACK = "fallback"
    EMERGENCY = "emergency"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class GatewayResponse(Generic[T]):
    value: T
    source: ResponseSource
    error_kind: Optional[ErrorKind] = None

    @property
    def degraded(self) -> bool:
        return self.source in (ResponseSource.FALLBACK, ResponseSource.EMERGENCY)


class AIGateway:
    """Rate-limited client for the text, image and translation services."""

    def __init__(
        self,
        credentials: CredentialStore,
        rate_limiter: Optional[RateLimiter] = None,
        client: Optional[httpx.AsyncClient] = None,
        mock_delay: float = MOCK_DELAY_SECONDS,
        image_mock_delay: float = IMAGE_MOCK_DELAY_SECONDS,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.credentials = credentials
        self.rate_limiter = rate_limiter or RateLimiter(
            {name: profile.rate_limit for name, profile in credentials.profiles.items()}
        )
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.mock_delay = mock_delay
        self.image_mock_delay = image_mock_delay
        self.timeout = timeout
        self.requests_sent = 0

    async def aclose(self):
        """Close the HTTP client if this gateway created it."""
        if self._owns_client:
            await self.client.aclose()

    # --- Symptom text analysis ---

    async def analyze_text(self, prompt: str) -> GatewayResponse[SymptomAnalysis]:
        """Analyze a symptom prompt. Always returns an analysis."""
        if self.credentials.is_development_mode():
            logger.info("Using mock response - configure API keys for real analysis")
            await asyncio.sleep(self.mock_delay)
            return GatewayResponse(select_mock_analysis(prompt), ResponseSource.MOCK)

        result = await self._call_text_service(prompt)
        if result.ok:
            logger.info("Live text analysis received", service=TEXT_SERVICE)
            return GatewayResponse(result.value, ResponseSource.LIVE)

        return await self._substitute_text(prompt, result.error)

    async def _substitute_text(self, prompt: str, error: TriageError) -> GatewayResponse[SymptomAnalysis]:
        recovery = recovery_for(error.kind)
        logger.warning(
            "Text analysis failed, substituting local result",
            service=TEXT_SERVICE,
            error_kind=error.kind.value,
            recovery=recovery.value,
            error=str(error),
        )
        if recovery is Recovery.PROPAGATE:
            raise error
        if recovery is Recovery.EMERGENCY:
            return GatewayResponse(emergency_analysis(), ResponseSource.EMERGENCY, error.kind)

        await asyncio.sleep(self.mock_delay)
        return GatewayResponse(
            as_fallback(select_mock_analysis(prompt)),
            ResponseSource.FALLBACK,
            error.kind,
        )

    async def _call_text_service(self, prompt: str) -> CallResult[SymptomAnalysis]:
        try:
            self.rate_limiter.try_acquire(TEXT_SERVICE)
            headers = self.credentials.build_auth_headers(TEXT_SERVICE)
        except (RateLimitExceeded, MissingCredential) as e:
            return CallResult.failure(e)

        payload = {
            "model": self.credentials.get_model(TEXT_SERVICE),
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": TEXT_TEMPERATURE,
            "max_tokens": TEXT_MAX_TOKENS,
        }

        try:
            response = await self._send(
                TEXT_SERVICE,
                "POST",
                self.credentials.get_endpoint(TEXT_SERVICE),
                json=payload,
                headers=headers,
            )
        except TriageError as e:
            return CallResult.failure(e)

        if not response.is_success:
            return CallResult.failure(NetworkFailure(
                TEXT_SERVICE, f"HTTP {response.status_code}", status_code=response.status_code
            ))

        # An unexpected envelope means the upstream itself misbehaved
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            return CallResult.failure(NetworkFailure(
                TEXT_SERVICE, f"unexpected response envelope: {e!r}", status_code=response.status_code
            ))

        try:
            return CallResult.success(parse_symptom_analysis(content))
        except MalformedResponse as e:
            return CallResult.failure(e)

    # --- Image analysis ---

    async def analyze_image(self, upload: ImageUpload) -> GatewayResponse[dict]:
        """Analyze one image. Failures yield an "unavailable" finding.

        Raises:
            InvalidInput: if the image bytes cannot be decoded
        """
        if self.credentials.is_development_mode():
            await asyncio.sleep(self.image_mock_delay)
            return GatewayResponse(mock_image_analysis(), ResponseSource.MOCK)

        result = await self._call_image_service(upload)
        if result.ok:
            return GatewayResponse(result.value, ResponseSource.LIVE)

        recovery = recovery_for(result.kind)
        if recovery is Recovery.PROPAGATE:
            raise result.error
        logger.warning(
            "Image analysis failed",
            service=IMAGE_SERVICE,
            error_kind=result.kind.value,
            error=str(result.error),
        )
        return GatewayResponse(dict(IMAGE_ANALYSIS_UNAVAILABLE), ResponseSource.FALLBACK, result.kind)

    async def _call_image_service(self, upload: ImageUpload) -> CallResult[dict]:
        try:
            compressed = await asyncio.to_thread(compress_image, upload.data)
        except TriageError as e:
            return CallResult.failure(e)

        try:
            self.rate_limiter.try_acquire(IMAGE_SERVICE)
            headers = self.credentials.build_auth_headers(IMAGE_SERVICE)
        except (RateLimitExceeded, MissingCredential) as e:
            return CallResult.failure(e)
        # httpx sets the multipart boundary itself
        headers.pop("Content-Type", None)

        url = f"{self.credentials.get_endpoint(IMAGE_SERVICE)}{self.credentials.get_model(IMAGE_SERVICE)}"
        filename = sanitize_filename(upload.filename)
        try:
            response = await self._send(
                IMAGE_SERVICE,
                "POST",
                url,
                files={"file": (filename, compressed, "image/jpeg")},
                headers=headers,
            )
        except TriageError as e:
            return CallResult.failure(e)

        if not response.is_success and response.status_code != MODEL_LOADING_STATUS:
            return CallResult.failure(NetworkFailure(
                IMAGE_SERVICE, f"HTTP {response.status_code}", status_code=response.status_code
            ))

        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text}
        if not isinstance(body, dict):
            body = {"results": body}
        if response.status_code == MODEL_LOADING_STATUS:
            body.setdefault("status", "loading")
        return CallResult.success(body)

    # --- Translation ---

    async def translate(self, text: str, source: str, target: str) -> GatewayResponse[str]:
        """Translate text. Any failure returns the text unchanged."""
        if not text.strip() or source.lower() == target.lower():
            return GatewayResponse(text, ResponseSource.PASSTHROUGH)
        if self.credentials.is_development_mode():
            return GatewayResponse(text, ResponseSource.MOCK)

        result = await self._call_translation_service(text, source, target)
        if result.ok:
            return GatewayResponse(result.value, ResponseSource.LIVE)

        logger.warning(
            "Translation failed, returning original text",
            service=TRANSLATION_SERVICE,
            error_kind=result.kind.value,
        )
        return GatewayResponse(text, ResponseSource.FALLBACK, result.kind)

    async def _call_translation_service(self, text: str, source: str, target: str) -> CallResult[str]:
        try:
            self.rate_limiter.try_acquire(TRANSLATION_SERVICE)
            headers = self.credentials.build_auth_headers(TRANSLATION_SERVICE)
        except (RateLimitExceeded, MissingCredential) as e:
            return CallResult.failure(e)

        try:
            response = await self._send(
                TRANSLATION_SERVICE,
                "GET",
                self.credentials.get_endpoint(TRANSLATION_SERVICE),
                params={"q": text, "langpair": f"{source}|{target}"},
                headers=headers,
            )
        except TriageError as e:
            return CallResult.failure(e)

        if not response.is_success:
            return CallResult.failure(NetworkFailure(
                TRANSLATION_SERVICE, f"HTTP {response.status_code}", status_code=response.status_code
            ))

        try:
            translated = response.json()["responseData"]["translatedText"]
        except (ValueError, KeyError, TypeError) as e:
            return CallResult.failure(MalformedResponse(f"Unexpected translation response: {e!r}"))
        if not isinstance(translated, str) or not translated.strip():
            return CallResult.failure(MalformedResponse("Empty translation"))
        return CallResult.success(translated)

    # --- Health ---

    async def check_service_health(self) -> dict[str, str]:
        """Probe the authenticated services with minimal requests.

        Probes spend rate budget like any other call. Development mode
        reports without probing.
        """
        status = {}
        probes = {
            TEXT_SERVICE: self._probe_text_service,
            IMAGE_SERVICE: self._probe_image_service,
        }
        development_mode = self.credentials.is_development_mode()
        for service, probe in probes.items():
            if not self.credentials.has_key(service):
                status[service] = "not configured"
                continue
            if development_mode:
                status[service] = "mock mode"
                continue
            try:
                self.rate_limiter.try_acquire(service)
                await probe()
                status[service] = "healthy"
            except TriageError as e:
                status[service] = f"error: {e}"
        return status

    async def _probe_text_service(self):
        response = await self._send(
            TEXT_SERVICE,
            "POST",
            self.credentials.get_endpoint(TEXT_SERVICE),
            json={
                "model": self.credentials.get_model(TEXT_SERVICE),
                "messages": [{"role": "user", "content": "test"}],
                "max_tokens": 5,
            },
            headers=self.credentials.build_auth_headers(TEXT_SERVICE),
        )
        if not response.is_success:
            raise NetworkFailure(TEXT_SERVICE, f"HTTP {response.status_code}", response.status_code)

    async def _probe_image_service(self):
        response = await self._send(
            IMAGE_SERVICE,
            "POST",
            f"{self.credentials.get_endpoint(IMAGE_SERVICE)}{self.credentials.get_model(IMAGE_SERVICE)}",
            json={"inputs": "test"},
            headers=self.credentials.build_auth_headers(IMAGE_SERVICE),
        )
        if not response.is_success and response.status_code != MODEL_LOADING_STATUS:
            raise NetworkFailure(IMAGE_SERVICE, f"HTTP {response.status_code}", response.status_code)

    # --- Transport ---

    async def _send(self, service: str, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue one request, bounded by the gateway timeout.

        Raises:
            UpstreamTimeout: if no response arrives in time
            NetworkFailure: on connection or protocol errors
        """
        self.requests_sent += 1
        try:
            return await asyncio.wait_for(
                self.client.request(method, url, **kwargs),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamTimeout(service, self.timeout) from e
        except httpx.HTTPError as e:
            raise NetworkFailure(service, f"connection error: {e}") from e
