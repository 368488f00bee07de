"""Crew activation bookkeeping kept inside the crew's JSON config.

A crew is ready to activate once it has at least one indexed document and
its support contact is configured.
"""

import hashlib


def origin_hash(crew_code: str, allowed_domain: str) -> str:
    """SHA-256 of ``crew_code:allowed_domain``, checked by the chat trigger."""
    return hashlib.sha256(f"{crew_code}:{allowed_domain}".encode()).hexdigest()


def with_activation(config: dict | None, **changes: bool) -> dict:
    """
    Return a copy of `config` with its activation state updated.

    Usage:
        crew.config = with_activation(crew.config, documents_uploaded=True)
    """
    config = dict(config or {})
    state = {
        "documents_uploaded": False,
        "support_configured": False,
        **(config.get("activation_state") or {}),
        **changes,
    }
    state["activation_ready"] = bool(state["documents_uploaded"] and state["support_configured"])
    config["activation_state"] = state
    return config
