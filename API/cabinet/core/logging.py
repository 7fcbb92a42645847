import logging
import re
import sys

# Domain names for structured logging (auth, sessions, profiles, onboarding, storage).
DOMAIN_AUTH = "auth"
DOMAIN_SESSIONS = "sessions"
DOMAIN_PROFILES = "profiles"
DOMAIN_ONBOARDING = "onboarding"
DOMAIN_STORAGE = "storage"


def get_domain_logger(name: str, domain: str) -> logging.LoggerAdapter[logging.Logger]:
    """Return a logger that adds the given domain to every log record (for filtering by domain)."""
    base = logging.getLogger(name)
    return logging.LoggerAdapter(base, {"domain": domain})


class DomainDefaultFilter(logging.Filter):
    """Ensure record has a 'domain' attribute so format string %(domain)s never fails."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "domain"):
            record.domain = "app"  # type: ignore[attr-defined]
        return True


_SECRET_PATTERNS = [
    re.compile(r"(?i)(authorization\s*[=:]\s*bearer\s+)([^\s,;]+)"),
    re.compile(r"(?i)(bearer\s+)([A-Za-z0-9_\-\.]{16,})"),
    # Stored records and request bodies dumped as JSON: "hashedPassword": "...".
    re.compile(r"(?i)(\"(?:hashed_?password|password|token)\"\s*:\s*\")([^\"]+)"),
    re.compile(r"(?i)((?<![\w\"])token\s*[=:]\s*)([^\s,;]+)"),
    re.compile(r"(?i)((?<![\w\"])(?:hashed_?)?password\s*[=:]\s*)([^\s,;]+)"),
]

_RAW_PHONE = re.compile(r"\+7\d{10}\b")


def mask_phone(phone: str) -> str:
    """Keep the country code and the last two digits: +7********67."""
    raw = str(phone or "")
    if len(raw) <= 4:
        return "***"
    return raw[:2] + "*" * (len(raw) - 4) + raw[-2:]


def redact_secrets(message: str) -> str:
    """Mask credentials and any tutor phone number that slipped into a log line unmasked."""
    text = str(message or "")
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1[REDACTED]", text)
    return _RAW_PHONE.sub(lambda match: mask_phone(match.group(0)), text)


class SecretRedactionFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_secrets(record.getMessage())
        record.args = ()
        return True


class SuppressHealthCheckFilter(logging.Filter):
    """Drop uvicorn access log lines for GET /health (load balancer probes)."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage() if hasattr(record, "getMessage") else str(record.msg)
        if "/health" in msg and "200" in msg:
            return False
        return True


def configure_logging(level: str = "INFO") -> None:
    redaction_filter = SecretRedactionFilter()
    domain_filter = DomainDefaultFilter()
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | [%(domain)s] | %(name)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    root = logging.getLogger()
    for handler in root.handlers:
        handler.addFilter(domain_filter)
        handler.addFilter(redaction_filter)
    # redis-py logs connection chatter at DEBUG/INFO.
    logging.getLogger("redis").setLevel(logging.WARNING)
    uv_access = logging.getLogger("uvicorn.access")
    uv_access.addFilter(SuppressHealthCheckFilter())
