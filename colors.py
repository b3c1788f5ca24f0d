from collections import namedtuple

ColorStyle = namedtuple("ColorStyle", ["id", "bg", "header", "text"])

# Order matters: the first entry is the fallback style.
COLORS = [
    ColorStyle("yellow", "#fef3c7", "#fcd34d", "#92400e"),
    ColorStyle("green", "#d1fae5", "#6ee7b7", "#065f46"),
    ColorStyle("blue", "#dbeafe", "#93c5fd", "#1e40af"),
    ColorStyle("purple", "#ede9fe", "#c4b5fd", "#5b21b6"),
    ColorStyle("pink", "#fce7f3", "#f9a8d4", "#9d174d"),
    ColorStyle("gray", "#f3f4f6", "#d1d5db", "#374151"),
    ColorStyle("dark", "#1f2937", "#374151", "#f3f4f6"),
]

COLOR_MAP = {c.id: c for c in COLORS}

DEFAULT_COLOR = COLORS[0].id


def get_color_style(color_id):
    """Returns the style for a color id, or the first style if unknown."""
    return COLOR_MAP.get(color_id, COLORS[0])
