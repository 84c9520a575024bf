from __future__ import annotations

from prometheus_client import Counter, Histogram

# Metric objects (singletons)
# Business counters
consents_created_total = Counter(
    "consents_created_total",
    "Total number of consents successfully created"
)
consents_revoked_total = Counter(
    "consents_revoked_total",
    "Total number of consents successfully revoked"
)
consents_status_poll_total = Counter(
    "consents_status_poll_total",
    "Total number of consent status polls"
)
consents_expired_total = Counter(
    "consents_expired_total",
    "Total number of consents moved to EXPIRED by the sweeper"
)

# Authorization decisions, labeled by check (strict/loose) and outcome
# (allowed, error, or the denial reason)
consent_authorizations_total = Counter(
    "consent_authorizations_total",
    "Consent authorization decisions",
    labelnames=("check", "outcome"),
)
consent_authorization_seconds = Histogram(
    "consent_authorization_seconds",
    "Consent authorization latency in seconds",
    labelnames=("check",),
)

access_log_entries_total = Counter(
    "access_log_entries_total",
    "Access log entries appended to the ledger",
    labelnames=("status",),
)

# Public helpers to increment business metrics
def inc_consents_created() -> None:
    consents_created_total.inc()

def inc_consents_revoked() -> None:
    consents_revoked_total.inc()

def inc_consents_status_poll() -> None:
    consents_status_poll_total.inc()

def inc_consents_expired(count: int) -> None:
    consents_expired_total.inc(count)

def observe_authorization(check: str, outcome: str, duration: float) -> None:
    consent_authorizations_total.labels(check=check, outcome=outcome).inc()
    consent_authorization_seconds.labels(check=check).observe(duration)

def inc_access_log_entries(status: str) -> None:
    access_log_entries_total.labels(status=status).inc()
