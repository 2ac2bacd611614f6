"""Request metadata captured once per request and passed explicitly to services."""

from dataclasses import dataclass

MAX_USER_AGENT_LENGTH = 500


@dataclass(frozen=True)
class RequestMetadata:
    """Immutable client metadata for session creation and audit entries."""

    ip_address: str | None = None
    user_agent: str | None = None
    location: str | None = None
    request_id: str | None = None

    @classmethod
    def build(
        cls,
        ip_address: str | None = None,
        user_agent: str | None = None,
        location: str | None = None,
        request_id: str | None = None,
    ) -> "RequestMetadata":
        """Normalize raw header values into metadata."""
        if user_agent and len(user_agent) > MAX_USER_AGENT_LENGTH:
            user_agent = user_agent[:MAX_USER_AGENT_LENGTH]
        return cls(
            ip_address=ip_address,
            user_agent=user_agent,
            location=location or None,
            request_id=request_id,
        )


def get_client_ip(
    forwarded_for: str | None,
    client_host: str | None,
    trusted_proxies: list[str] | None = None,
) -> str | None:
    """Extract the client IP from X-Forwarded-For or the connection peer.

    X-Forwarded-For is honoured only when the direct peer is a trusted proxy.
    The first entry in the header is the original client.
    """
    if forwarded_for and client_host and client_host in (trusted_proxies or []):
        return forwarded_for.split(",")[0].strip()
    return client_host
