"""
Request context utilities for resolving the caller's language.
"""
from fastapi import Request

from hellofixo.lib.i18n import normalize_language


def get_language(request: Request) -> str:
    """
    Resolve the response language.

    An explicit ``lang`` query parameter wins over the Accept-Language header.
    """
    lang = request.query_params.get("lang") or request.headers.get("accept-language", "")
    return normalize_language(lang.split(",")[0].strip())
