"""
Service configuration and credential handling for Triage Assist.

A CredentialStore is built once at startup (usually from the environment) and
passed to the gateway. Nothing here is a module-level singleton.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import MissingCredential
from .rate_limiter import RateLimitConfig, SERVICE_LIMITS

logger = logging.getLogger(__name__)

TEXT_SERVICE = "deepseek"
IMAGE_SERVICE = "huggingface"
TRANSLATION_SERVICE = "translation"

DEFAULT_ENDPOINTS = {
    TEXT_SERVICE: "https://api.deepseek.com/chat/completions",
    IMAGE_SERVICE: "https://api-inference.huggingface.co/models/",
    TRANSLATION_SERVICE: "https://api.mymemory.translated.net/get",
}

DEFAULT_MODELS = {
    TEXT_SERVICE: "deepseek-chat",
    IMAGE_SERVICE: "microsoft/DialoGPT-medium",
    TRANSLATION_SERVICE: "",
}

PLACEHOLDER_MARKERS = ("YOUR_", "_HERE")


def env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def is_placeholder(secret: Optional[str]) -> bool:
    """True if a secret is empty or still an unfilled template value."""
    if not secret or not secret.strip():
        return True
    return any(marker in secret for marker in PLACEHOLDER_MARKERS)


@dataclass(frozen=True)
class ServiceProfile:
    """Static description of one upstream service."""
    name: str
    endpoint_url: str
    model_id: str
    rate_limit: RateLimitConfig
    requires_auth: bool = True


@dataclass(frozen=True)
class ConfigReport:
    valid: bool
    issues: list[str] = field(default_factory=list)


def default_profiles() -> dict[str, ServiceProfile]:
    return {
        TEXT_SERVICE: ServiceProfile(
            name=TEXT_SERVICE,
            endpoint_url=DEFAULT_ENDPOINTS[TEXT_SERVICE],
            model_id=DEFAULT_MODELS[TEXT_SERVICE],
            rate_limit=SERVICE_LIMITS[TEXT_SERVICE],
        ),
        IMAGE_SERVICE: ServiceProfile(
            name=IMAGE_SERVICE,
            endpoint_url=DEFAULT_ENDPOINTS[IMAGE_SERVICE],
            model_id=DEFAULT_MODELS[IMAGE_SERVICE],
            rate_limit=SERVICE_LIMITS[IMAGE_SERVICE],
        ),
        TRANSLATION_SERVICE: ServiceProfile(
            name=TRANSLATION_SERVICE,
            endpoint_url=DEFAULT_ENDPOINTS[TRANSLATION_SERVICE],
            model_id=DEFAULT_MODELS[TRANSLATION_SERVICE],
            rate_limit=SERVICE_LIMITS[TRANSLATION_SERVICE],
            requires_auth=False,
        ),
    }


class CredentialStore:
    """Holds service profiles and API keys, and builds auth headers."""

    def __init__(
        self,
        keys: Optional[dict[str, str]] = None,
        profiles: Optional[dict[str, ServiceProfile]] = None,
        development_mode: bool = False,
    ):
        self._keys = dict(keys or {})
        self.profiles = dict(profiles or default_profiles())
        self._development_mode = development_mode

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "CredentialStore":
        """Build a store from environment variables (and a .env file if present)."""
        load_dotenv(dotenv_path)

        profiles = default_profiles()
        overrides = {
            TEXT_SERVICE: ("DEEPSEEK_ENDPOINT", "DEEPSEEK_MODEL"),
            IMAGE_SERVICE: ("HUGGINGFACE_ENDPOINT", "HUGGINGFACE_IMAGE_MODEL"),
            TRANSLATION_SERVICE: ("TRANSLATION_ENDPOINT", None),
        }
        for service, (endpoint_var, model_var) in overrides.items():
            profile = profiles[service]
            endpoint = os.getenv(endpoint_var) or profile.endpoint_url
            model = (os.getenv(model_var) if model_var else None) or profile.model_id
            profiles[service] = ServiceProfile(
                name=service,
                endpoint_url=endpoint,
                model_id=model,
                rate_limit=profile.rate_limit,
                requires_auth=profile.requires_auth,
            )

        keys = {
            TEXT_SERVICE: os.getenv("DEEPSEEK_API_KEY", ""),
            IMAGE_SERVICE: os.getenv("HUGGINGFACE_API_KEY", ""),
        }
        store = cls(
            keys=keys,
            profiles=profiles,
            development_mode=env_bool("TRIAGE_DEVELOPMENT_MODE", False),
        )
        if store.is_development_mode():
            logger.info("Development mode active - mock responses will be used")
        return store

    def __repr__(self) -> str:
        configured = sorted(s for s, k in self._keys.items() if not is_placeholder(k))
        return f"CredentialStore(configured={configured}, development_mode={self._development_mode})"

    def get_profile(self, service: str) -> ServiceProfile:
        try:
            return self.profiles[service]
        except KeyError:
            raise KeyError(f"Unknown service: {service}") from None

    def get_endpoint(self, service: str) -> str:
        return self.get_profile(service).endpoint_url

    def get_model(self, service: str) -> str:
        return self.get_profile(service).model_id

    def get_key(self, service: str) -> str:
        """Return the usable API key for service.

        Raises:
            MissingCredential: if the key is absent or a placeholder
        """
        key = self._keys.get(service)
        if is_placeholder(key):
            raise MissingCredential(service)
        return key

    def has_key(self, service: str) -> bool:
        return not is_placeholder(self._keys.get(service))

    def build_auth_headers(self, service: str, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        """Default JSON content type, caller extras, then bearer auth if required."""
        headers = {"Content-Type": "application/json"}
        headers.update(extra or {})

        if self.get_profile(service).requires_auth:
            headers["Authorization"] = f"Bearer {self.get_key(service)}"

        return headers

    def set_development_mode(self, enabled: bool) -> None:
        self._development_mode = enabled
        if enabled:
            logger.info("Development mode enabled - using mock responses")

    def is_development_mode(self) -> bool:
        """Explicit toggle, or any required credential missing."""
        if self._development_mode:
            return True
        return any(
            profile.requires_auth and not self.has_key(name)
            for name, profile in self.profiles.items()
        )

    def validate(self) -> ConfigReport:
        """List unset credentials and malformed endpoints."""
        issues = []
        for name, profile in self.profiles.items():
            if profile.requires_auth and not self.has_key(name):
                issues.append(f"{name} API key not set")
            parsed = urlparse(profile.endpoint_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                issues.append(f"Invalid {name} endpoint URL")
        return ConfigReport(valid=not issues, issues=issues)
