#!/usr/bin/env python3

"""Helpers for turning credentials and options into HTTP client state."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from requests.cookies import RequestsCookieJar, create_cookie

from ytmusicresolver.models import Credential


# Option spellings accepted from callers, mapped to yt-dlp parameter names.
_OPTION_ALIASES = {
    "local_address": "source_address",
    "localAddress": "source_address",
    "timeout": "socket_timeout",
}

_CLIENT_DEFAULTS: Dict[str, Any] = {
    "quiet": True,
    "no_warnings": True,
    "skip_download": True,
}


def to_cookie(credential: Credential):
    """Return an :class:`http.cookiejar.Cookie` for ``credential``."""
    rest = {"HttpOnly": None} if credential.http_only else {}
    return create_cookie(
        credential.name,
        credential.value,
        domain=credential.domain,
        path=credential.path or "/",
        secure=credential.secure,
        expires=int(credential.expires_at) if credential.expires_at is not None else None,
        discard=credential.is_session,
        rest=rest,
    )


def build_cookie_jar(credentials: Iterable[Credential]) -> RequestsCookieJar:
    """Build a cookie jar holding every credential.

    Later entries with the same ``(name, domain, path)`` replace earlier ones,
    matching how a browser stores them.
    """
    jar = RequestsCookieJar()
    for credential in credentials:
        jar.set_cookie(to_cookie(credential))
    return jar


def normalize_client_options(options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge caller options over the client defaults.

    Known aliases are renamed to their yt-dlp names and ``None`` values are
    dropped so they cannot override a default.
    """
    params = dict(_CLIENT_DEFAULTS)
    if not options:
        return params

    for key, value in options.items():
        if value is None:
            continue
        params[_OPTION_ALIASES.get(str(key), str(key))] = value
    return params
