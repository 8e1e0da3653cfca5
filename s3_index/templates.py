from __future__ import annotations
"""HTML rendering of directory listings."""
import html
from string import Template

from .models import Listing, ListingItem
from .paths import encode_for_url, to_request_path
from .ui_utils import format_last_modified, format_size

MISSING = "?"

PAGE_TEMPLATE = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Index of $title</title>
  <style>
    body { font-family: sans-serif; margin: 2em; }
    table { border-collapse: collapse; }
    th, td { padding: 0.2em 1.2em 0.2em 0; text-align: left; }
    td.size { text-align: right; }
  </style>
</head>
<body>
  <h1>Index of $path</h1>
  <table>
    <thead><tr><th>Name</th><th>Size</th><th>Last modified</th></tr></thead>
    <tbody>
$parent_row$rows
    </tbody>
  </table>
</body>
</html>
"""
)

PARENT_ROW = Template('      <tr><td><a href="$parent">../</a></td><td></td><td></td></tr>\n')

ITEM_ROW = Template(
    '      <tr><td><a href="$url">$name</a></td>'
    '<td class="size">$size</td><td>$mtime</td></tr>'
)


class TemplateError(RuntimeError):
    """Raised when listing data cannot be rendered."""


def listing_context(listing: Listing) -> dict[str, object]:
    """Build the data handed to the page template."""

    base = to_request_path(listing.prefix)
    parent = "" if listing.parent is None else encode_for_url(to_request_path(listing.parent))
    return {
        "title": base,
        "path": base,
        "parent": parent,
        "items": [_item_context(item) for item in listing.items],
    }


def _item_context(item: ListingItem) -> dict[str, str]:
    if item.is_dir:
        return {"name": item.name, "url": item.url, "size": "", "mtime": ""}
    return {
        "name": item.name,
        "url": item.url,
        "size": format_size(item.size, missing=MISSING),
        "mtime": format_last_modified(item.last_modified, missing=MISSING),
    }


class ListingRenderer:
    """Turns a :class:`Listing` into an HTML page."""

    def render(self, listing: Listing) -> str:
        return self.render_context(listing_context(listing))

    def render_context(self, context: dict[str, object]) -> str:
        try:
            rows = "\n".join(
                ITEM_ROW.substitute({key: html.escape(str(value)) for key, value in item.items()})
                for item in context["items"]
            )
            parent = context["parent"]
            parent_row = PARENT_ROW.substitute(parent=html.escape(parent)) if parent else ""
            return PAGE_TEMPLATE.substitute(
                title=html.escape(context["title"]),
                path=html.escape(context["path"]),
                parent_row=parent_row,
                rows=rows,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise TemplateError(f"cannot render listing: {exc!r}") from exc
