import hmac


def secret_matches(provided: str | None, expected: str | None) -> bool:
    """Timing-safe comparison; never reveals where the strings differ."""
    p = (provided or "").encode("utf-8")
    e = (expected or "").encode("utf-8")
    if not e:
        return False
    return hmac.compare_digest(p, e)
