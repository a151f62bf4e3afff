"""Static HTML documentation for an inferred type catalog."""

import json
import logging
import os
import re
from html import escape

from .catalog import ParserOutput, RecordType, TypeKind

logger = logging.getLogger("typeatlas.docs")

DEFAULT_TITLE = "API Type Documentation"

_KEYWORDS = ("string", "number", "boolean", "Date", "any", "unknown", "void", "never", "object")
_KEYWORD_RE = re.compile(r"\b(" + "|".join(_KEYWORDS) + r")\b")

_STYLE = """
body { font-family: system-ui, sans-serif; margin: 0; display: flex; }
.sb-hierarchy { width: 260px; padding: 1rem; border-right: 1px solid #ddd; }
.sb-main { flex: 1; padding: 1rem 2rem; }
.sb-type-card { border: 1px solid #ddd; border-radius: 6px; padding: 1rem; margin-bottom: 1.5rem; }
.sb-type-badge { font-size: 0.75rem; padding: 2px 6px; border-radius: 4px; background: #eef; }
.sb-properties-table { border-collapse: collapse; width: 100%; }
.sb-properties-table td, .sb-properties-table th { border-bottom: 1px solid #eee; padding: 4px 8px; text-align: left; }
.sb-required { color: #22863a; }
.sb-optional { color: #999; }
.sb-kw { color: #e83e8c; }
.sb-arr { color: #22863a; }
.sb-union { color: #d73a49; }
"""


def highlight_type(type_ref: str) -> str:
    html = escape(type_ref)
    html = _KEYWORD_RE.sub(r'<span class="sb-kw">\1</span>', html)
    html = html.replace("[]", '<span class="sb-arr">[]</span>')
    return html.replace("|", '<span class="sb-union">|</span>')


def example_value(type_ref: str):
    """Placeholder JSON value for a type expression."""
    type_ref = type_ref.strip()
    if type_ref.endswith("[]"):
        return [example_value(type_ref[:-2])]
    if "|" in type_ref:
        return example_value(type_ref.split("|")[0])
    if type_ref == "string":
        return "example string"
    if type_ref == "number":
        return 0
    if type_ref == "boolean":
        return True
    if type_ref == "Date":
        return "2024-01-01T00:00:00.000Z"
    return None


def render_hierarchy(types: list) -> str:
    """Nested list of types grouped under the types they extend."""
    children: dict[str, list] = {}
    roots = []
    known = {t.name for t in types}
    for t in types:
        parents = [p for p in sorted(t.parents) if p in known]
        if not parents:
            roots.append(t)
        for parent in parents:
            children.setdefault(parent, []).append(t)

    def node(t, trail):
        label = f"{t.kind.wire_name} {escape(t.name)}"
        out = f'<li><a href="#{escape(t.name)}" class="sb-type-link">{label}</a>'
        kids = [] if t.name in trail else sorted(children.get(t.name, []), key=lambda c: c.name)
        if kids:
            out += "<ul>" + "".join(node(k, trail | {t.name}) for k in kids) + "</ul>"
        return out + "</li>"

    items = "".join(node(t, frozenset()) for t in roots)
    return f'<nav class="sb-hierarchy"><h2>Type Hierarchy</h2><ul>{items}</ul></nav>'


def render_card(t: RecordType) -> str:
    parts = [
        f'<article class="sb-type-card" id="{escape(t.name)}">',
        '<div class="sb-type-header">',
        f'<span class="sb-type-badge {t.kind.wire_name}">{t.kind.wire_name}</span>',
        f'<h2 class="sb-type-name">{escape(t.name)}</h2>',
        "</div>",
    ]
    if t.parents:
        parents = ", ".join(f"<code>{escape(p)}</code>" for p in sorted(t.parents))
        parts.append(f'<div class="sb-type-extends">Extends: {parents}</div>')
    if t.description:
        parts.append(f'<p class="sb-type-description">{escape(t.description)}</p>')

    if t.fields:
        parts.append(
            '<table class="sb-properties-table"><thead><tr>'
            "<th>Property</th><th>Type</th><th>Required</th><th>Description</th>"
            "</tr></thead><tbody>"
        )
        for f in t.fields:
            req_class = "sb-required" if f.required else "sb-optional"
            req_mark = "&#10003;" if f.required else "&#9675;"
            parts.append(
                f"<tr><td><code>{escape(f.name)}</code></td>"
                f"<td><code>{highlight_type(f.type_ref)}</code></td>"
                f'<td class="{req_class}">{req_mark}</td>'
                f"<td>{escape(f.description or '')}</td></tr>"
            )
        parts.append("</tbody></table>")

    if t.alternatives:
        values = "".join(f"<li><code>{escape(v)}</code></li>" for v in t.alternatives)
        parts.append(f'<h4>Values</h4><ul class="sb-values-list">{values}</ul>')

    if t.kind is TypeKind.RECORD:
        example = {f.name: example_value(f.type_ref) for f in t.fields if f.required}
        if example:
            parts.append(
                '<div class="sb-example"><p><strong>Example:</strong></p>'
                f"<pre><code>{escape(json.dumps(example, indent=2))}</code></pre></div>"
            )

    parts.append("</article>")
    return "\n".join(parts)


def render_docs(output: ParserOutput, title: str = DEFAULT_TITLE) -> str:
    """Render the full documentation page for a parser output."""
    cards = "\n".join(render_card(t) for t in output.types)
    root = escape(output.root_type or "-")
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en"><head><meta charset="utf-8">'
        f"<title>{escape(title)}</title><style>{_STYLE}</style></head>\n"
        f"<body>\n{render_hierarchy(output.types)}\n"
        f'<main class="sb-main"><h1>{escape(title)}</h1>'
        f"<p>Root type: <code>{root}</code> &middot; {len(output.types)} types"
        f" &middot; generated {escape(output.timestamp or '')}</p>\n"
        f"{cards}\n</main>\n</body></html>\n"
    )


def write_docs(output: ParserOutput, out_dir: str, title: str = DEFAULT_TITLE) -> str:
    """Write ``index.html`` into ``out_dir``. Returns the path written."""
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, "index.html")
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_docs(output, title))
    logger.info("Wrote documentation for %d types to %s", len(output.types), path)
    return path
