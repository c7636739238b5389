from .urls import (
    add_query_param,
    build_url,
    get_query_param,
    has_query_flag,
    strip_query_params,
)

__all__ = [
    "add_query_param",
    "build_url",
    "get_query_param",
    "has_query_flag",
    "strip_query_params",
]
