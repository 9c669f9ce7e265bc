"""
Theme values for rendering and interaction.

A Theme is a frozen value threaded explicitly through the renderer and the
interaction binder; nothing in the package reads colours or flags from
module-level state. ``DEFAULT_THEME`` is the only source of defaults.
"""

import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping

from .models import ContractError

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class Palette:
    """Brand colours, as ``#RGB`` or ``#RRGGBB`` strings."""

    primary: str
    secondary: str
    accent: str
    background: str
    text: str
    alert: str


@dataclass(frozen=True)
class Fonts:
    """Font family and sizes in pixels."""

    family: str
    title_size: int
    label_size: int
    small_size: int


@dataclass(frozen=True)
class InteractionFlags:
    """Behaviours the interaction binder may attach."""

    clickable: bool = False
    zoomable: bool = False
    draggable: bool = False
    real_time_updates: bool = False
    edit_mode: bool = False

    @property
    def any_enabled(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))


@dataclass(frozen=True)
class RoleStyle:
    """Resolved presentation attributes for one visual role."""

    fill: str
    stroke: str
    text: str
    stroke_width: float = 1.0
    font_size: int = 12
    font_weight: str = "normal"


@dataclass(frozen=True)
class Theme:
    """
    Palette, fonts and interaction flags for one rendering.

    Example:
        >>> theme = replace(DEFAULT_THEME, interaction=InteractionFlags(clickable=True))
        >>> theme.resolve("milestone").fill
        '#F18F01'
    """

    palette: Palette
    fonts: Fonts
    interaction: InteractionFlags = field(default_factory=InteractionFlags)

    def resolve(self, role: str) -> RoleStyle:
        """
        Map a visual role to its fill, stroke and font attributes.

        Args:
            role: Element role such as "event", "milestone" or "task-critical".

        Raises:
            ContractError: If the role is unknown.
        """
        p = self.palette
        f = self.fonts
        roles = {
            "background": RoleStyle(p.background, p.background, p.text, 0),
            "title": RoleStyle(
                p.text, "none", p.text, 0, f.title_size, font_weight="bold"
            ),
            "label": RoleStyle(p.text, "none", p.text, 0, f.label_size),
            "caption": RoleStyle(p.text, "none", p.text, 0, f.small_size),
            "placeholder": RoleStyle(p.background, p.secondary, p.text, 2, f.label_size),
            "axis": RoleStyle("none", p.primary, p.text, 3, f.small_size),
            "grid": RoleStyle("none", p.text, p.text, 0.5, f.small_size),
            "event": RoleStyle(p.secondary, p.accent, p.text, 2, f.label_size),
            "milestone": RoleStyle(p.accent, p.primary, p.text, 2, f.label_size),
            "deadline": RoleStyle(p.alert, p.primary, p.text, 2, f.label_size),
            "task": RoleStyle(p.background, p.primary, p.text, 1, f.small_size),
            "task-low": RoleStyle(p.background, p.secondary, p.text, 1, f.small_size),
            "task-high": RoleStyle(p.background, p.accent, p.text, 1.5, f.small_size),
            "task-critical": RoleStyle(p.background, p.alert, p.text, 2, f.small_size),
            "task-progress": RoleStyle(p.primary, "none", p.background, 0, f.small_size),
            "task-milestone": RoleStyle(p.accent, p.primary, p.text, 2, f.small_size),
            "dependency": RoleStyle("none", p.secondary, p.text, 2, f.small_size),
            "node": RoleStyle(p.primary, p.secondary, p.background, 2, f.label_size),
            "node-start": RoleStyle(p.accent, p.primary, p.background, 2, f.label_size),
            "node-decision": RoleStyle(p.secondary, p.primary, p.background, 2, f.label_size),
            "node-data": RoleStyle(p.background, p.primary, p.text, 2, f.label_size),
            "edge": RoleStyle("none", p.accent, p.text, 2, f.small_size),
            "participant": RoleStyle(p.primary, p.secondary, p.background, 2, f.label_size),
            "lifeline": RoleStyle("none", p.secondary, p.text, 1, f.small_size),
            "message": RoleStyle("none", p.accent, p.text, 2, f.small_size),
            "reply": RoleStyle("none", p.secondary, p.text, 1.5, f.small_size),
        }
        try:
            return roles[role]
        except KeyError:
            raise ContractError(f"Unknown visual role: {role!r}") from None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Theme":
        """
        Build a theme from a mapping, filling gaps from DEFAULT_THEME.

        Accepts ``{"palette": {...}, "fonts": {...}, "interaction": {...}}``.

        Raises:
            ContractError: If a section is not a mapping, names an unknown
                field, or holds a value of the wrong type.
        """
        if not isinstance(data, Mapping):
            raise ContractError("Theme must be a mapping")
        unknown = set(data) - {"palette", "fonts", "interaction"}
        if unknown:
            raise ContractError(f"Unknown theme sections: {sorted(unknown)}")

        palette = _merge(DEFAULT_THEME.palette, data.get("palette"), "palette")
        fonts = _merge(DEFAULT_THEME.fonts, data.get("fonts"), "fonts")
        interaction = _merge(
            DEFAULT_THEME.interaction, data.get("interaction"), "interaction"
        )
        theme = cls(palette=palette, fonts=fonts, interaction=interaction)
        validate_theme(theme)
        return theme

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            "palette": {f.name: getattr(self.palette, f.name) for f in fields(Palette)},
            "fonts": {f.name: getattr(self.fonts, f.name) for f in fields(Fonts)},
            "interaction": {
                f.name: getattr(self.interaction, f.name)
                for f in fields(InteractionFlags)
            },
        }


def _merge(base, overrides, section: str):
    if overrides is None:
        return base
    if not isinstance(overrides, Mapping):
        raise ContractError(f"Theme section '{section}' must be a mapping")
    known = {f.name for f in fields(base)}
    unknown = set(overrides) - known
    if unknown:
        raise ContractError(f"Unknown {section} fields: {sorted(unknown)}")
    return replace(base, **overrides)


def validate_theme(theme: Any) -> Theme:
    """
    Check that ``theme`` is a well-formed Theme and return it.

    Raises:
        ContractError: If any colour, font size or flag is malformed.
    """
    if not isinstance(theme, Theme):
        raise ContractError(f"Expected a Theme, got {type(theme).__name__}")

    for f in fields(Palette):
        value = getattr(theme.palette, f.name)
        if not isinstance(value, str) or not HEX_COLOR.match(value):
            raise ContractError(f"Invalid palette colour for '{f.name}': {value!r}")

    if not isinstance(theme.fonts.family, str) or not theme.fonts.family.strip():
        raise ContractError("Font family must be a non-empty string")
    for name in ("title_size", "label_size", "small_size"):
        size = getattr(theme.fonts, name)
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise ContractError(f"Font size '{name}' must be a positive integer")

    for f in fields(InteractionFlags):
        if not isinstance(getattr(theme.interaction, f.name), bool):
            raise ContractError(f"Interaction flag '{f.name}' must be a bool")

    return theme


DEFAULT_THEME = Theme(
    palette=Palette(
        primary="#2E86AB",
        secondary="#A23B72",
        accent="#F18F01",
        background="#FFFFFF",
        text="#333333",
        alert="#FF6B6B",
    ),
    fonts=Fonts(
        family="Arial, sans-serif",
        title_size=16,
        label_size=12,
        small_size=10,
    ),
    interaction=InteractionFlags(),
)
