import re

_TOKEN_REFERENCE = "mapboxgl.accessToken"
_TOKEN_ASSIGNMENT = re.compile(r"mapboxgl\.accessToken\s*=\s*[^;\n]+;?")
_BODY_OPEN = re.compile(r"<body\b[^>]*>", re.IGNORECASE)


def build_animation_page(html_content: str, mapbox_api_key: str | None) -> str:
    """
    Return the document to render with the server-side Mapbox token in place.

    An existing ``mapboxgl.accessToken = ...`` assignment is rewritten; when
    there is none and a key is configured, one is injected right after
    ``<body>``. Nothing else in the document changes.
    """
    assignment = f"mapboxgl.accessToken = '{mapbox_api_key or ''}';"

    if _TOKEN_REFERENCE in html_content:
        html_content = _TOKEN_ASSIGNMENT.sub(lambda _: assignment, html_content)
    elif mapbox_api_key:
        html_content = _BODY_OPEN.sub(
            lambda m: f"{m.group(0)}<script>{assignment}</script>", html_content, count=1
        )

    return html_content.strip()
