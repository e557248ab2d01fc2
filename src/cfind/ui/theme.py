"""Theme colors, search bar QSS and the transcript document stylesheet."""

from __future__ import annotations

# ── Color palette: light theme with orange accents ──

COLORS = {
    "primary": "#E67E22",
    "primary_light": "#FFF3E0",
    "bg": "#FFFFFF",
    "panel_bg": "#FAFAFA",
    "border": "#E0E0E0",
    "text": "#1A1A1A",
    "text_muted": "#999999",
    "user_bg": "#FFF8F0",
    "user_border": "#E67E22",
    "assistant_border": "#27AE60",
    "thinking": "#9B59B6",
    "tool": "#8E44AD",
    "error": "#E74C3C",
    "match": "#FFE58F",
    "match_current": "#FA8C16",
}

# ── Fonts ──

FONT_FAMILY = "-apple-system, 'SF Pro Text', 'Helvetica Neue', 'Segoe UI', Roboto, sans-serif"
MONO_FAMILY = "'SF Mono', Menlo, Consolas, 'Liberation Mono', monospace"


def build_search_bar_stylesheet() -> str:
    """QSS for the floating search bar."""
    c = COLORS
    return f"""
QFrame#searchBar {{
    background-color: {c["panel_bg"]};
    border: 1px solid {c["border"]};
    border-radius: 8px;
}}
QLineEdit {{
    border: 1px solid {c["border"]};
    border-radius: 6px;
    padding: 4px 8px;
    background-color: {c["bg"]};
    font-size: 13px;
}}
QLineEdit:focus {{
    border-color: {c["primary"]};
}}
QLabel#searchCounter {{
    color: {c["text_muted"]};
    font-size: 12px;
    min-width: 56px;
}}
QLabel#searchError {{
    color: {c["error"]};
    font-size: 11px;
}}
QToolButton {{
    border: none;
    border-radius: 4px;
    padding: 2px 6px;
}}
QToolButton:hover {{
    background-color: {c["border"]};
}}
"""


def build_document_stylesheet() -> str:
    """CSS for the rendered transcript document and its search markers."""
    c = COLORS
    return f"""
body {{
    font-family: {FONT_FAMILY};
    font-size: 13px;
    color: {c["text"]};
    line-height: 1.5;
    margin: 0;
    padding: 16px;
}}
.message {{
    margin: 0 0 12px 0;
    padding: 8px 12px;
    border-left: 3px solid {c["border"]};
}}
.message.user {{
    background-color: {c["user_bg"]};
    border-left-color: {c["user_border"]};
}}
.message.assistant {{
    border-left-color: {c["assistant_border"]};
}}
.role-badge {{
    font-size: 11px;
    font-weight: 600;
    color: {c["text_muted"]};
}}
.plain-text {{
    white-space: pre-wrap;
}}
pre, code {{
    font-family: {MONO_FAMILY};
    font-size: 12px;
}}
.collapsible {{
    border: 1px solid {c["border"]};
    border-radius: 6px;
    margin: 6px 0;
}}
.collapsible-header {{
    padding: 4px 8px;
    cursor: pointer;
}}
.collapsible[aria-expanded="false"] > .collapsible-body {{
    display: none;
}}
.message-reasoning-card .collapsible-header {{
    color: {c["thinking"]};
}}
.tool-call .collapsible-header {{
    color: {c["tool"]};
}}
mark.search-match {{
    background-color: {c["match"]};
    color: inherit;
    border-radius: 2px;
}}
mark.search-match--current {{
    background-color: {c["match_current"]};
    color: #FFFFFF;
}}
"""
