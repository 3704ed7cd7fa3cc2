"""
Keycap shape parameters.

``KeycapParams`` is the value type handed to the generator. Values read from
a scene document are parsed with ``KeycapParams.from_dict`` which accepts the
camelCase keys of the document format. Out-of-range values are never
rejected: ``clamped()`` pulls every numeric field back into its valid range
before geometry is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from . import constants as C


class Mode(str, Enum):
    """Evaluation pipeline: cheap shell-only preview or full export."""

    PREVIEW = 'preview'
    EXPORT = 'export'


def clamp(value, low, high):
    return max(low, min(high, value))


def _number(value, default):
    """Coerce a loosely typed document value to float, or return the default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class EmbossParams:
    enabled: bool = False
    text: str = ''
    font_size: float = C.DEFAULT_EMBOSS_FONT_SIZE
    depth: float = C.DEFAULT_EMBOSS_DEPTH
    color: Optional[str] = None

    @property
    def active(self):
        return self.enabled and bool(self.text.strip())

    def clamped(self):
        return replace(
            self,
            font_size=clamp(self.font_size, *C.EMBOSS_FONT_SIZE_RANGE),
            depth=clamp(self.depth, *C.EMBOSS_DEPTH_RANGE),
        )


@dataclass(frozen=True)
class KeycapParams:
    profile: str = C.DEFAULT_PROFILE
    size: str = C.DEFAULT_SIZE
    color: str = C.DEFAULT_KEYCAP_COLOR
    has_stem: bool = True
    top_radius: float = C.DEFAULT_TOP_RADIUS
    wall_thickness: float = C.DEFAULT_WALL_THICKNESS
    height: Optional[float] = None      # None -> profile base height
    dish_depth: Optional[float] = None  # None -> CHERRY_DISH_DEPTH
    emboss: EmbossParams = field(default_factory=EmbossParams)

    @classmethod
    def from_dict(cls, data):
        """
        Build parameters from a scene-document dict.

        Both the nested ``emboss`` form and the flat ``embossEnabled`` /
        ``embossText`` / ``embossFontSize`` / ``embossDepth`` keys are read.
        """
        data = data or {}
        emboss = data.get('emboss') or {}
        emboss_params = EmbossParams(
            enabled=bool(emboss.get('enabled', data.get('embossEnabled', False))),
            text=str(emboss.get('text', data.get('embossText')) or ''),
            font_size=_number(emboss.get('fontSize', data.get('embossFontSize')), C.DEFAULT_EMBOSS_FONT_SIZE),
            depth=_number(emboss.get('depth', data.get('embossDepth')), C.DEFAULT_EMBOSS_DEPTH),
            color=emboss.get('color', data.get('embossColor')),
        )
        height = _number(data.get('height'), None)
        return cls(
            profile=data.get('profile') or C.DEFAULT_PROFILE,
            size=data.get('size') or C.DEFAULT_SIZE,
            color=data.get('color') or C.DEFAULT_KEYCAP_COLOR,
            has_stem=bool(data.get('hasStem', True)),
            top_radius=_number(data.get('topRadius'), C.DEFAULT_TOP_RADIUS),
            wall_thickness=_number(data.get('wallThickness'), C.DEFAULT_WALL_THICKNESS),
            # A zero height means "not set" in documents written by the editor.
            height=height if height else None,
            dish_depth=_number(data.get('dishDepth'), None),
            emboss=emboss_params,
        )

    def to_dict(self):
        return {
            'profile': self.profile,
            'size': self.size,
            'color': self.color,
            'hasStem': self.has_stem,
            'topRadius': self.top_radius,
            'wallThickness': self.wall_thickness,
            'height': self.height,
            'dishDepth': self.dish_depth,
            'emboss': {
                'enabled': self.emboss.enabled,
                'text': self.emboss.text,
                'fontSize': self.emboss.font_size,
                'depth': self.emboss.depth,
                'color': self.emboss.color,
            },
        }

    def clamped(self):
        """Return a copy with every numeric field inside its valid range."""
        profile = self.profile if self.profile in C.PROFILES else C.DEFAULT_PROFILE
        size = self.size if self.size in C.KEYCAP_SIZES else C.DEFAULT_SIZE
        dish_depth = self.dish_depth
        if dish_depth is not None:
            dish_depth = clamp(dish_depth, *C.DISH_DEPTH_RANGE)
        return replace(
            self,
            profile=profile,
            size=size,
            top_radius=clamp(self.top_radius, *C.TOP_RADIUS_RANGE),
            wall_thickness=clamp(self.wall_thickness, *C.WALL_THICKNESS_RANGE),
            height=self.height if self.height and self.height > 0 else None,
            dish_depth=dish_depth,
            emboss=self.emboss.clamped(),
        )

    # Resolved dimensions. These assume clamped() has been applied.

    @property
    def effective_height(self):
        if self.height:
            return self.height
        return C.PROFILES.get(self.profile, C.PROFILES[C.DEFAULT_PROFILE])['base_height']

    @property
    def effective_dish_depth(self):
        return C.CHERRY_DISH_DEPTH if self.dish_depth is None else self.dish_depth

    @property
    def bottom_dimensions(self):
        size = C.KEYCAP_SIZES.get(self.size, C.KEYCAP_SIZES[C.DEFAULT_SIZE])
        return size['width'], size['depth']
