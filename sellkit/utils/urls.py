from __future__ import annotations

from urllib.parse import parse_qsl, quote_plus, unquote_plus, urlencode, urlsplit, urlunsplit


def _query_pairs(url: str) -> list[tuple[str, str]]:
    return parse_qsl(urlsplit(url).query, keep_blank_values=True)


def get_query_param(url: str, name: str) -> str | None:
    for key, value in _query_pairs(url):
        if key == name:
            return value
    return None


def has_query_flag(url: str, name: str) -> bool:
    value = get_query_param(url, name)
    return value is not None and value.strip().lower() == "true"


def _without(query: str, names: tuple[str, ...]) -> list[str]:
    """Raw ``&`` segments of ``query`` whose name is not in ``names``, as written."""
    return [
        segment
        for segment in query.split("&")
        if segment and unquote_plus(segment.split("=", 1)[0]) not in names
    ]


def add_query_param(url: str, name: str, value: str = "true") -> str:
    parts = urlsplit(url)
    segments = _without(parts.query, (name,))
    segments.append(f"{quote_plus(name)}={quote_plus(value)}")
    return urlunsplit(parts._replace(query="&".join(segments)))


def strip_query_params(url: str, *names: str) -> str:
    parts = urlsplit(url)
    return urlunsplit(parts._replace(query="&".join(_without(parts.query, names))))


def build_url(base: str, path: str, **params: str) -> str:
    joined = f"{base.rstrip('/')}/{path.lstrip('/')}"
    if not params:
        return joined
    return f"{joined}?{urlencode(params)}"


__all__ = [
    "get_query_param",
    "has_query_flag",
    "add_query_param",
    "strip_query_params",
    "build_url",
]
