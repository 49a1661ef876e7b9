import markdown

from inkpages.utils import is_html

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]


def render_content(content: str) -> str:
    """Editor output is already HTML; everything else is treated as Markdown."""
    if not content:
        return ""
    if is_html(content):
        return content
    return markdown.markdown(content, extensions=MARKDOWN_EXTENSIONS)
