from flask import request


def client_ip() -> str:
    # first hop of X-Forwarded-For is the original client
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or "unknown"


def client_user_agent() -> str:
    return (request.headers.get("User-Agent") or "")[:255]
