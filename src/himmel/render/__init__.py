from himmel.render.renderer import (
    ResultsRenderer,
    format_address,
    format_file_size,
    render_demo_catalog,
    render_text,
)

__all__ = [
    "ResultsRenderer",
    "format_address",
    "format_file_size",
    "render_demo_catalog",
    "render_text",
]
