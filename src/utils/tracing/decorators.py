"""
Tracing decorator for collaborator calls.
"""

import functools

from .context import trace_operation


def trace_function(operation_name: str | None = None, **default_attributes):
    """
    Wrap every call of the decorated function in a span

    Args:
        operation_name: Span name (default: module-qualified function name)
        **default_attributes: Attributes set on every span

    Example:
        >>> class FileRenderer(Renderer):
        ...     @trace_function("render_artifact", component="renderer")
        ...     def render(self, data, fmt, name):
        ...         ...
    """
    def decorator(func):
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"
        attributes = {"code.function": func.__qualname__, **default_attributes}

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with trace_operation(span_name, **attributes):
                return func(*args, **kwargs)

        return wrapper
    return decorator
