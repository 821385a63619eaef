import os
from typing import Dict, Any, List
from loguru import logger

ERROR_POLICIES = ("passthrough", "gateway")

DEFAULT_TIMEOUT = 20.0


def _timeout(raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid upstream timeout {raw!r}, using {DEFAULT_TIMEOUT}s")
        return DEFAULT_TIMEOUT
    if value <= 0:
        logger.warning(f"Upstream timeout must be positive, got {value}, using {DEFAULT_TIMEOUT}s")
        return DEFAULT_TIMEOUT
    return value


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class RelaySettings:
    """Relay configuration resolved from the process environment."""

    def __init__(self, **overrides: Any):
        self.base_url = (overrides.get("base_url", os.getenv("CRM_BASE_URL")) or "").strip()
        self.api_key = (overrides.get("api_key", os.getenv("CRM_API_KEY")) or "").strip()
        self.debug = overrides.get("debug", _flag("CRM_RELAY_DEBUG", False))
        self.strict_validation = overrides.get("strict_validation", _flag("CRM_RELAY_STRICT", True))
        self.timeout = _timeout(overrides.get("timeout", os.getenv("CRM_RELAY_TIMEOUT", DEFAULT_TIMEOUT)))

        policy = (overrides.get("error_policy", os.getenv("CRM_RELAY_ERROR_POLICY")) or "passthrough").strip().lower()
        if policy not in ERROR_POLICIES:
            logger.warning(f"Unknown upstream error policy {policy!r}, using passthrough")
            policy = "passthrough"
        self.error_policy = policy

        if self.missing():
            logger.warning(f"Relay is missing configuration: {self.missing()}")

    def missing(self) -> List[str]:
        """Names of required settings that are absent."""
        names = []
        if not self.base_url:
            names.append("CRM_BASE_URL")
        if not self.api_key:
            names.append("CRM_API_KEY")
        return names

    @property
    def target_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/api/applications"

    def credential_facts(self) -> Dict[str, Any]:
        """Non-secret facts about the credential, safe to show operators."""
        if not self.api_key:
            return {"credentialPresent": False, "credentialPreview": None}
        # Short keys get no prefix at all.
        prefix = self.api_key[:3] if len(self.api_key) >= 12 else ""
        return {
            "credentialPresent": True,
            "credentialPreview": f"{prefix}*** ({len(self.api_key)} chars)",
        }
