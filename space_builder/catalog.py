"""
Fidget Catalog Module

Static lookup data shared by every validation call:
- FIDGET_SIZES: the closed set of recognized fidget types and their size limits
- DEFAULT_THEME: the theme block written into every built configuration
- THEME_VARIABLE_DEFAULTS: theme-variable placeholders for unset color settings

All tables are read-only; concurrent readers need no locking.
"""

from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional

from .models import Theme


class FidgetSize(NamedTuple):
    """Size limits for one fidget type, in grid cells."""
    min_width: int
    min_height: int
    max_height: Optional[int] = None


FIDGET_SIZES: Mapping[str, FidgetSize] = MappingProxyType({
    "text": FidgetSize(3, 2),
    "gallery": FidgetSize(2, 2),
    "Video": FidgetSize(2, 2),
    "feed": FidgetSize(4, 2),
    "cast": FidgetSize(3, 1, max_height=4),
    "Chat": FidgetSize(3, 2),
    "iframe": FidgetSize(2, 2),
    "links": FidgetSize(2, 2),
    "Rss": FidgetSize(3, 2),
    "Swap": FidgetSize(3, 3),
    "Portfolio": FidgetSize(3, 3),
    "Market": FidgetSize(3, 2),
    "governance": FidgetSize(4, 3),
    "SnapShot": FidgetSize(4, 3),
    "frame": FidgetSize(2, 2),
    "FramesV2": FidgetSize(2, 2),
})

VALID_FIDGET_TYPES: tuple[str, ...] = tuple(FIDGET_SIZES)

# Short purpose blurbs used when describing the catalog to the designer
FIDGET_PURPOSES: Mapping[str, str] = MappingProxyType({
    "text": "Welcome messages, announcements, instructions",
    "gallery": "Images, NFTs, visual content",
    "Video": "YouTube/Vimeo embeds",
    "feed": "Social media feeds (Farcaster/X)",
    "cast": "Individual Farcaster posts",
    "Chat": "Real-time messaging",
    "iframe": "External website embeds",
    "links": "Link collections",
    "Rss": "RSS feed readers",
    "Swap": "Token trading widgets",
    "Portfolio": "Crypto portfolio tracking",
    "Market": "Market data displays",
    "governance": "DAO proposals/voting",
    "SnapShot": "Snapshot governance",
    "frame": "Farcaster frames",
    "FramesV2": "Farcaster mini apps",
})

THEME_VARIABLE_DEFAULTS: Mapping[str, str] = MappingProxyType({
    "fontColor": "var(--user-theme-font-color)",
    "headingsFontColor": "var(--user-theme-headings-font-color)",
    "background": "var(--user-theme-fidget-background)",
})

DEFAULT_THEME = Theme(
    id="default-theme",
    name="Default Theme",
    properties={
        "font": "Inter",
        "fontColor": "#ffffff",
        "headingsFont": "Roboto",
        "headingsFontColor": "#00ffff",
        "background": "linear-gradient(45deg, #1a1a2e 0%, #16213e 50%, #0f3460 100%)",
        "backgroundHTML": "",
        "musicURL": "",
        "fidgetBackground": "rgba(30, 100, 150, 0.95)",
        "fidgetBorderWidth": "1px",
        "fidgetBorderColor": "#00ffff",
        "fidgetShadow": "0 0 20px rgba(0, 255, 255, 0.5)",
        "fidgetBorderRadius": "12px",
        "gridSpacing": "16",
    },
)


def is_known_type(fidget_type: str, catalog: Mapping[str, FidgetSize] = FIDGET_SIZES) -> bool:
    return fidget_type in catalog


def get_fidget_size(
    fidget_type: str, catalog: Mapping[str, FidgetSize] = FIDGET_SIZES
) -> FidgetSize | None:
    """Return the size limits for a type, or None if the type is not recognized."""
    return catalog.get(fidget_type)


def describe_catalog(catalog: Mapping[str, FidgetSize] = FIDGET_SIZES) -> list[str]:
    """One line per fidget type, e.g. '- **feed** (4w×2h): Social media feeds'."""
    lines = []
    for name, size in catalog.items():
        limits = f"{size.min_width}w×{size.min_height}h"
        if size.max_height is not None:
            limits += f", max {size.max_height}h"
        purpose = FIDGET_PURPOSES.get(name, "")
        lines.append(f"- **{name}** ({limits}): {purpose}".rstrip(": "))
    return lines
