"""
Context Themes

Each context type has a colour palette used by the UI. Themes are
purely cosmetic: unknown context types get the Home theme.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


SHADES = ("50", "100", "200", "300", "400", "500", "600", "700", "800", "900")
DEFAULT_THEME = "Home"


class Theme(BaseModel):
    """Palette and copy for one context type."""
    model_config = ConfigDict(frozen=True)

    name: str
    primary: dict[str, str]
    secondary: dict[str, str]
    accent: str
    background: str
    card_background: str
    gradient: str
    icon: str
    welcome_message: str
    description: str


def _palette(*colours: str) -> dict[str, str]:
    return dict(zip(SHADES, colours))


THEMES: dict[str, Theme] = {
    "Home": Theme(
        name="Home",
        primary=_palette(
            "#f0f9ff", "#e0f2fe", "#bae6fd", "#7dd3fc", "#38bdf8",
            "#0ea5e9", "#0284c7", "#0369a1", "#075985", "#0c4a6e",
        ),
        secondary=_palette(
            "#f0fdf4", "#dcfce7", "#bbf7d0", "#86efac", "#4ade80",
            "#22c55e", "#16a34a", "#15803d", "#166534", "#14532d",
        ),
        accent="#f59e0b",
        background="from-blue-50 via-cyan-50 to-teal-100",
        card_background="bg-white/90",
        gradient="from-blue-500 to-cyan-600",
        icon="🏠",
        welcome_message="Welcome to Your Home Finance Hub",
        description="Manage your personal finances and family budget",
    ),
    "Work": Theme(
        name="Work",
        primary=_palette(
            "#f8fafc", "#f1f5f9", "#e2e8f0", "#cbd5e1", "#94a3b8",
            "#64748b", "#475569", "#334155", "#1e293b", "#0f172a",
        ),
        secondary=_palette(
            "#fef2f2", "#fee2e2", "#fecaca", "#fca5a5", "#f87171",
            "#ef4444", "#dc2626", "#b91c1c", "#991b1b", "#7f1d1d",
        ),
        accent="#3b82f6",
        background="from-slate-50 via-gray-50 to-zinc-100",
        card_background="bg-white/95",
        gradient="from-slate-600 to-gray-700",
        icon="💼",
        welcome_message="Professional Finance Management",
        description="Track your work expenses and professional finances",
    ),
    "Business": Theme(
        name="Business",
        primary=_palette(
            "#faf5ff", "#f3e8ff", "#e9d5ff", "#d8b4fe", "#c084fc",
            "#a855f7", "#9333ea", "#7c3aed", "#6b21a8", "#581c87",
        ),
        secondary=_palette(
            "#fefce8", "#fef9c3", "#fef08a", "#fde047", "#facc15",
            "#eab308", "#ca8a04", "#a16207", "#854d0e", "#713f12",
        ),
        accent="#10b981",
        background="from-purple-50 via-violet-50 to-indigo-100",
        card_background="bg-white/90",
        gradient="from-purple-600 to-indigo-700",
        icon="🏢",
        welcome_message="Business Finance Command Center",
        description="Manage your business finances and growth metrics",
    ),
}


def get_theme(context_type: Optional[str]) -> Theme:
    """Theme for a context type, Home when the type has none."""
    return THEMES.get(context_type or DEFAULT_THEME, THEMES[DEFAULT_THEME])


def generate_theme_css(theme: Theme) -> str:
    """CSS custom properties for a theme, scoped to :root."""
    lines = [":root {"]
    for group in ("primary", "secondary"):
        palette = getattr(theme, group)
        for shade in SHADES:
            lines.append(f"  --theme-{group}-{shade}: {palette[shade]};")
    lines.append(f"  --theme-accent: {theme.accent};")
    lines.append("}")
    return "\n".join(lines)
