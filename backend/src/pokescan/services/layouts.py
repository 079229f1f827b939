"""Screen regions and color isolation settings for the creature detail screen.

Every field the scanner reads is described once per layout. The standard layout
matches screenshots whose height is the full device height; the extended layout
covers tall devices whose navigation bar is missing from the capture, and measures
vertical positions against an inferred height instead.
"""

from __future__ import annotations

from dataclasses import dataclass

from .image_ops import BLACK, EXTENDED_HEIGHT_RATIO, WHITE, RegionSpec

TEXT_COLOR = (68, 105, 108)
HP_TEXT_COLOR = (55, 66, 61)
UNAFFORDABLE_TEXT_COLOR = (255, 115, 115)


@dataclass(frozen=True)
class Isolation:
    keep: tuple[int, int, int]
    replace: tuple[int, int, int]
    distance: int
    simple_background: bool


@dataclass(frozen=True)
class FieldRegion:
    tag: str
    region: RegionSpec
    isolation: Isolation


@dataclass(frozen=True)
class LayoutProfile:
    name: str
    pokemon_name: FieldRegion
    pokemon_type: FieldRegion
    candy_name: FieldRegion
    hp: FieldRegion
    cp: FieldRegion
    candy_amount: FieldRegion
    evolution_cost: FieldRegion
    height_ratio: float | None = None

    def fields(self) -> tuple[FieldRegion, ...]:
        return (
            self.pokemon_name,
            self.pokemon_type,
            self.candy_name,
            self.hp,
            self.cp,
            self.candy_amount,
            self.evolution_cost,
        )


_LABEL = Isolation(TEXT_COLOR, WHITE, 200, True)
_HP = Isolation(HP_TEXT_COLOR, WHITE, 200, True)
_CP = Isolation(WHITE, BLACK, 30, False)
_CANDY_AMOUNT = Isolation(TEXT_COLOR, WHITE, 90, True)

# Evolution cost text is dark when affordable and red when not.
EVOLUTION_AFFORDABLE = Isolation(TEXT_COLOR, WHITE, 30, False)
EVOLUTION_UNAFFORDABLE = Isolation(UNAFFORDABLE_TEXT_COLOR, WHITE, 40, False)

APPRAISAL = FieldRegion(
    "appraisal",
    RegionSpec(0.05, 0.89, 0.90, 0.07),
    Isolation(TEXT_COLOR, WHITE, 100, True),
)
GENDER_SPRITE = RegionSpec(0.33, 0.25, 0.33, 0.2)

STANDARD_LAYOUT = LayoutProfile(
    name="standard",
    pokemon_name=FieldRegion("name", RegionSpec(0.1, 0.45, 0.85, 0.055), _LABEL),
    pokemon_type=FieldRegion(
        "type", RegionSpec(0.365278, 0.621094, 0.308333, 0.035156), _LABEL
    ),
    candy_name=FieldRegion("candy", RegionSpec(0.5, 0.73, 0.47, 0.026), _LABEL),
    hp=FieldRegion("hp", RegionSpec(0.357, 0.52, 0.285, 0.0293), _HP),
    cp=FieldRegion("cp", RegionSpec(0.25, 0.064, 0.5, 0.046), _CP),
    candy_amount=FieldRegion(
        "candyAmount", RegionSpec(0.60, 0.695, 0.20, 0.038), _CANDY_AMOUNT
    ),
    evolution_cost=FieldRegion(
        "candyCost", RegionSpec(0.625, 0.88, 0.2, 0.03), EVOLUTION_AFFORDABLE
    ),
)

EXTENDED_LAYOUT = LayoutProfile(
    name="extended",
    pokemon_name=FieldRegion("name", RegionSpec(0.1, 0.38, 0.85, 0.055), _LABEL),
    pokemon_type=FieldRegion("type", RegionSpec(0.365278, 0.53, 0.308333, 0.03), _LABEL),
    candy_name=FieldRegion("candy", RegionSpec(0.5, 0.62, 0.47, 0.036), _LABEL),
    hp=FieldRegion("hp", RegionSpec(0.357, 0.45, 0.285, 0.025), _HP),
    cp=FieldRegion("cp", RegionSpec(0.25, 0.05, 0.5, 0.046), _CP),
    candy_amount=FieldRegion(
        "candyAmount", RegionSpec(0.59, 0.60, 0.20, 0.038), _CANDY_AMOUNT
    ),
    evolution_cost=FieldRegion(
        "candyCost", RegionSpec(0.625, 0.74, 0.2, 0.07), EVOLUTION_AFFORDABLE
    ),
    height_ratio=EXTENDED_HEIGHT_RATIO,
)


def select_layout(use_extended_layout: bool) -> LayoutProfile:
    return EXTENDED_LAYOUT if use_extended_layout else STANDARD_LAYOUT
