"""Tests for the credential store."""
import pytest

from triage_service.config import (
    CredentialStore,
    ServiceProfile,
    default_profiles,
    env_bool,
    is_placeholder,
)
from triage_service.errors import MissingCredential
from triage_service.rate_limiter import RateLimitConfig

ENV_VARS = (
    "DEEPSEEK_API_KEY",
    "HUGGINGFACE_API_KEY",
    "DEEPSEEK_ENDPOINT",
    "DEEPSEEK_MODEL",
    "HUGGINGFACE_ENDPOINT",
    "HUGGINGFACE_IMAGE_MODEL",
    "TRANSLATION_ENDPOINT",
    "TRIAGE_DEVELOPMENT_MODE",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Point load_dotenv at an empty file so a developer's .env is not read
    dotenv = tmp_path / ".env"
    dotenv.write_text("")
    return str(dotenv)


def _store(**kwargs):
    keys = kwargs.pop("keys", {"deepseek": "sk-live", "huggingface": "hf-live"})
    return CredentialStore(keys=keys, **kwargs)


class TestPlaceholders:

    @pytest.mark.parametrize("secret", [None, "", "   ", "YOUR_DEEPSEEK_API_KEY", "KEY_HERE"])
    def test_placeholder(self, secret):
        assert is_placeholder(secret) is True

    def test_real_key(self):
        assert is_placeholder("sk-abc123") is False


class TestEnvBool:

    @pytest.mark.parametrize("value", ["1", "true", "TRUE", "yes", " on "])
    def test_truthy(self, monkeypatch, value):
        monkeypatch.setenv("FLAG", value)
        assert env_bool("FLAG", False) is True

    def test_falsy(self, monkeypatch):
        monkeypatch.setenv("FLAG", "0")
        assert env_bool("FLAG", True) is False

    def test_default(self, monkeypatch):
        monkeypatch.delenv("FLAG", raising=False)
        assert env_bool("FLAG", True) is True


class TestCredentialStore:

    def test_get_key(self):
        assert _store().get_key("deepseek") == "sk-live"

    def test_missing_key_raises(self):
        store = _store(keys={"deepseek": "YOUR_DEEPSEEK_API_KEY"})
        with pytest.raises(MissingCredential) as exc:
            store.get_key("deepseek")
        assert exc.value.service == "deepseek"

    def test_auth_headers(self):
        headers = _store().build_auth_headers("deepseek")
        assert headers == {
            "Content-Type": "application/json",
            "Authorization": "Bearer sk-live",
        }

    def test_extra_headers_merged(self):
        headers = _store().build_auth_headers("huggingface", {"X-Wait-For-Model": "true"})
        assert headers["X-Wait-For-Model"] == "true"
        assert headers["Authorization"] == "Bearer hf-live"

    def test_extras_cannot_override_auth(self):
        headers = _store().build_auth_headers("deepseek", {"Authorization": "Bearer forged"})
        assert headers["Authorization"] == "Bearer sk-live"

    def test_translation_needs_no_auth(self):
        headers = _store(keys={}).build_auth_headers("translation")
        assert "Authorization" not in headers

    def test_headers_for_missing_key_raise(self):
        with pytest.raises(MissingCredential):
            _store(keys={}).build_auth_headers("huggingface")

    def test_unknown_service(self):
        with pytest.raises(KeyError):
            _store().get_profile("unknown")

    def test_endpoint_and_model(self):
        store = _store()
        assert store.get_endpoint("deepseek") == "https://api.deepseek.com/chat/completions"
        assert store.get_model("deepseek") == "deepseek-chat"

    def test_repr_hides_secrets(self):
        text = repr(_store())
        assert "sk-live" not in text
        assert "hf-live" not in text


class TestDevelopmentMode:

    def test_all_keys_present(self):
        assert _store().is_development_mode() is False

    def test_missing_key_forces_mock(self):
        assert _store(keys={"deepseek": "sk-live"}).is_development_mode() is True

    def test_placeholder_forces_mock(self):
        store = _store(keys={"deepseek": "sk-live", "huggingface": "YOUR_HF_KEY_HERE"})
        assert store.is_development_mode() is True

    def test_toggle(self):
        store = _store()
        store.set_development_mode(True)
        assert store.is_development_mode() is True
        store.set_development_mode(False)
        assert store.is_development_mode() is False


class TestValidate:

    def test_valid(self):
        report = _store().validate()
        assert report.valid is True
        assert report.issues == []

    def test_missing_keys_reported(self):
        report = _store(keys={}).validate()
        assert report.valid is False
        assert "deepseek API key not set" in report.issues
        assert "huggingface API key not set" in report.issues
        assert not any("translation" in issue for issue in report.issues)

    def test_bad_endpoint_reported(self):
        profiles = default_profiles()
        profiles["deepseek"] = ServiceProfile(
            name="deepseek",
            endpoint_url="not-a-url",
            model_id="deepseek-chat",
            rate_limit=RateLimitConfig(60, 60),
        )
        report = _store(profiles=profiles).validate()
        assert report.issues == ["Invalid deepseek endpoint URL"]


class TestFromEnv:

    def test_reads_keys(self, monkeypatch, clean_env):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-env")
        monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-env")
        store = CredentialStore.from_env(clean_env)
        assert store.get_key("deepseek") == "sk-env"
        assert store.is_development_mode() is False

    def test_no_keys_is_development_mode(self, clean_env):
        store = CredentialStore.from_env(clean_env)
        assert store.is_development_mode() is True

    def test_overrides(self, monkeypatch, clean_env):
        monkeypatch.setenv("DEEPSEEK_ENDPOINT", "http://localhost:9000/v1/chat")
        monkeypatch.setenv("HUGGINGFACE_IMAGE_MODEL", "google/vit-base-patch16-224")
        store = CredentialStore.from_env(clean_env)
        assert store.get_endpoint("deepseek") == "http://localhost:9000/v1/chat"
        assert store.get_model("huggingface") == "google/vit-base-patch16-224"
        assert store.get_profile("translation").requires_auth is False

    def test_development_toggle(self, monkeypatch, clean_env):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-env")
        monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-env")
        monkeypatch.setenv("TRIAGE_DEVELOPMENT_MODE", "true")
        assert CredentialStore.from_env(clean_env).is_development_mode() is True
