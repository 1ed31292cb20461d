"""Export style presets.

Maps semantic style names (heading_1, body, code_block, ...) to concrete font
and paragraph specifications.  The DOCX renderer applies them to runs and
paragraphs; the HTML renderer turns them into its inline stylesheet.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class FontSpec:
    """Font specification for a text run."""

    family: str = "Calibri"
    size_pt: float = 11.0
    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: str = "#333333"
    background: str = ""

    def derive(self, **overrides) -> FontSpec:
        """Return a copy with selected fields overridden."""
        clone = deepcopy(self)
        for k, v in overrides.items():
            if hasattr(clone, k):
                setattr(clone, k, v)
        return clone

    def css(self) -> str:
        rules = [
            f"font-family: {_css_family(self.family)}, system-ui, sans-serif",
            f"font-size: {self.size_pt:g}pt",
            f"color: {self.color}",
        ]
        if self.bold:
            rules.append("font-weight: bold")
        if self.italic:
            rules.append("font-style: italic")
        if self.background:
            rules.append(f"background: {self.background}")
        return "; ".join(rules)


@dataclass
class ParaSpec:
    """Paragraph layout specification."""

    align: str = "left"  # left, center, right, both (justify)
    left_margin_pt: float = 0.0
    line_spacing: float = 1.6
    space_before_pt: float = 0.0
    space_after_pt: float = 10.0
    border: bool = False

    def derive(self, **overrides) -> ParaSpec:
        clone = deepcopy(self)
        for k, v in overrides.items():
            if hasattr(clone, k):
                setattr(clone, k, v)
        return clone

    def css(self) -> str:
        align = "justify" if self.align == "both" else self.align
        rules = [
            f"text-align: {align}",
            f"line-height: {self.line_spacing:g}",
            f"margin: {self.space_before_pt:g}pt 0 {self.space_after_pt:g}pt {self.left_margin_pt:g}pt",
        ]
        return "; ".join(rules)


@dataclass
class StyleDef:
    """Complete style definition combining font and paragraph specs."""

    name: str
    font: FontSpec
    para: ParaSpec


def _css_family(family: str) -> str:
    return f'"{family}"' if " " in family else family


# ---------------------------------------------------------------------------
# Preset definitions
# ---------------------------------------------------------------------------

def _build_styles(
    body_font: FontSpec,
    body_para: ParaSpec,
    *,
    mono: str,
    heading_sizes: dict[int, float],
    quote_color: str = "#666666",
) -> dict[str, StyleDef]:
    styles: dict[str, StyleDef] = {}

    for level in range(1, 4):
        styles[f"heading_{level}"] = StyleDef(
            name=f"heading_{level}",
            font=body_font.derive(size_pt=heading_sizes[level], bold=True),
            para=body_para.derive(
                align="left",
                space_before_pt=10.0,
                space_after_pt=5.0,
            ),
        )

    styles["body"] = StyleDef(name="body", font=body_font, para=body_para)

    styles["code_block"] = StyleDef(
        name="code_block",
        font=FontSpec(family=mono, size_pt=body_font.size_pt - 1, color="#000000", background="#f4f4f4"),
        para=ParaSpec(
            align="left",
            line_spacing=1.2,
            space_before_pt=10.0,
            space_after_pt=10.0,
            border=True,
        ),
    )

    styles["inline_code"] = StyleDef(
        name="inline_code",
        font=FontSpec(family=mono, size_pt=body_font.size_pt - 1, color="#333333", background="#f4f4f4"),
        para=body_para,  # inherits paragraph style from surrounding context
    )

    styles["blockquote"] = StyleDef(
        name="blockquote",
        font=body_font.derive(italic=True, color=quote_color),
        para=body_para.derive(left_margin_pt=18.0),
    )

    styles["list_item"] = StyleDef(
        name="list_item",
        font=body_font,
        para=body_para.derive(space_after_pt=2.0),
    )

    styles["link"] = StyleDef(
        name="link",
        font=body_font.derive(underline=True, color="#0066cc"),
        para=body_para,
    )

    styles["table_header"] = StyleDef(
        name="table_header",
        font=body_font.derive(bold=True),
        para=body_para.derive(space_after_pt=2.0),
    )

    styles["table_body"] = StyleDef(
        name="table_body",
        font=body_font,
        para=body_para.derive(space_after_pt=2.0),
    )

    return styles


def _build_default_styles() -> dict[str, StyleDef]:
    """Build the **default** preset styles."""
    return _build_styles(
        FontSpec(family="Calibri", size_pt=11.0),
        ParaSpec(align="left", line_spacing=1.6, space_after_pt=10.0),
        mono="Courier New",
        heading_sizes={1: 24.0, 2: 18.0, 3: 14.0},
    )


def _build_academic_styles() -> dict[str, StyleDef]:
    """Build the **academic** preset -- serif-focused, wider spacing."""
    return _build_styles(
        FontSpec(family="Times New Roman", size_pt=12.0, color="#000000"),
        ParaSpec(align="both", line_spacing=2.0, space_after_pt=12.0),
        mono="Courier New",
        heading_sizes={1: 22.0, 2: 17.0, 3: 14.0},
        quote_color="#333333",
    )


def _build_business_styles() -> dict[str, StyleDef]:
    """Build the **business** preset -- sans-serif, compact."""
    return _build_styles(
        FontSpec(family="Arial", size_pt=10.0, color="#222222"),
        ParaSpec(align="left", line_spacing=1.4, space_after_pt=6.0),
        mono="Consolas",
        heading_sizes={1: 20.0, 2: 16.0, 3: 13.0},
        quote_color="#555555",
    )


def _build_minimal_styles() -> dict[str, StyleDef]:
    """Build the **minimal** preset -- clean, tight spacing."""
    return _build_styles(
        FontSpec(family="Helvetica Neue", size_pt=10.0),
        ParaSpec(align="left", line_spacing=1.45, space_after_pt=4.0),
        mono="Menlo",
        heading_sizes={1: 18.0, 2: 15.0, 3: 12.5},
    )


# ---------------------------------------------------------------------------
# Preset registry
# ---------------------------------------------------------------------------

_PRESET_BUILDERS = {
    "default": _build_default_styles,
    "academic": _build_academic_styles,
    "business": _build_business_styles,
    "minimal": _build_minimal_styles,
}


# ---------------------------------------------------------------------------
# StyleManager
# ---------------------------------------------------------------------------

class StyleManager:
    """Manages export style presets and provides style definitions.

    Usage::

        sm = StyleManager("academic")
        heading_style = sm.get_style("heading_1")
        body_font = sm.get_body_font()
    """

    PRESETS = list(_PRESET_BUILDERS.keys())

    def __init__(self, preset: str = "default") -> None:
        if preset not in _PRESET_BUILDERS:
            raise ValueError(
                f"Unknown preset {preset!r}. Choose from: {', '.join(_PRESET_BUILDERS)}"
            )
        self.preset = preset
        self._styles: dict[str, StyleDef] = _PRESET_BUILDERS[preset]()

    def get_style(self, name: str) -> StyleDef:
        """Get style by semantic name, falling back to ``body``."""
        return self._styles.get(name, self._styles["body"])

    def get_heading_style(self, depth: int) -> StyleDef:
        """Return the style for heading depth *1--3*."""
        return self.get_style(f"heading_{max(1, min(3, depth))}")

    def get_body_font(self) -> FontSpec:
        return self.get_style("body").font

    def get_inline_code_font(self) -> FontSpec:
        return self.get_style("inline_code").font

    def stylesheet(self) -> str:
        """Inline CSS for the HTML export."""
        body = self.get_style("body")
        code = self.get_style("code_block")
        inline = self.get_inline_code_font()
        quote = self.get_style("blockquote")
        link = self.get_style("link").font
        rules = [
            f"body {{ {body.font.css()}; line-height: {body.para.line_spacing:g};"
            " max-width: 800px; margin: 0 auto; padding: 2rem; }",
            f"p {{ {body.para.css()}; }}",
        ]
        for level in range(1, 4):
            h = self.get_heading_style(level)
            rules.append(f"h{level} {{ font-size: {h.font.size_pt:g}pt; margin-top: 1.5em; }}")
        rules.extend([
            "img { max-width: 100%; height: auto; display: block; margin: 1em 0; }",
            f"pre {{ background: {code.font.background}; padding: 1rem; overflow-x: auto;"
            " border-radius: 4px; }",
            f"code {{ font-family: {_css_family(inline.family)}, monospace;"
            f" background: {inline.background}; padding: 0.2rem 0.4rem; border-radius: 2px; }}",
            "pre code { background: none; padding: 0; }",
            "table { border-collapse: collapse; width: 100%; margin: 1em 0; }",
            "th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }",
            "th { background-color: #f2f2f2; }",
            f"blockquote {{ border-left: 4px solid #ddd; padding-left: 1em;"
            f" color: {quote.font.color}; margin: 1em 0; }}",
            "ul, ol { padding-left: 2em; }",
            f"a {{ color: {link.color}; }}",
        ])
        return "\n".join(rules)
