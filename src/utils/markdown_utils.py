"""
Markdown utilities for notification bodies.

Messages are composed once as Markdown and rendered to HTML for e-mail
clients that display it.
"""

import logging

import markdown

logger = logging.getLogger(__name__)

_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
    h1 {{ color: {accent}; }}
    table {{ border-collapse: collapse; }}
    td, th {{ border: 1px solid #ddd; padding: 4px 8px; }}
  </style>
</head>
<body>
{body}
</body>
</html>
"""


def render_markdown(content: str, accent: str = "#333333") -> str:
    """
    Convert Markdown to a standalone HTML document.

    Args:
        content: Markdown source
        accent: CSS colour for the top-level heading

    Returns:
        HTML string

    Examples:
        >>> html = render_markdown("# Alert\\n\\n- CVE-2024-1234")
        >>> "<li>CVE-2024-1234</li>" in html
        True
    """
    body = markdown.markdown(content, extensions=["tables"])
    return _HTML_TEMPLATE.format(accent=accent, body=body)
