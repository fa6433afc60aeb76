from __future__ import annotations

from .dot_core import (
    SPAWN_MAX_PCT,
    ColorMode,
    Drift,
    Entity,
    SeededRng,
    Shape,
    ShapeMode,
)

_FIXED_COLORS: dict[ColorMode, str] = {
    ColorMode.RED: "red",
    ColorMode.BLUE: "blue",
    ColorMode.BLACK: "black",
}


class RandomDotGenerator:
    """Builds the entities for one round.

    The count is uniform over [min_dots, max_dots] inclusive. Positions are
    uniform in [0, 90) percent on both axes so an entity never starts clipped
    by the play area edge.
    """

    def __init__(self, *, rng: SeededRng) -> None:
        self._rng = rng

    def next_entities(
        self,
        *,
        min_dots: int,
        max_dots: int,
        shape_mode: ShapeMode,
        color_mode: ColorMode,
        drift: bool = True,
    ) -> list[Entity]:
        if min_dots > max_dots:
            raise ValueError("min_dots must be <= max_dots")
        count = int(self._rng.random() * (max_dots - min_dots + 1)) + min_dots
        return [
            self._entity(shape_mode=shape_mode, color_mode=color_mode, drift=drift)
            for _ in range(count)
        ]

    def shape_for(self, mode: ShapeMode) -> Shape:
        if mode is ShapeMode.CIRCLES:
            return Shape.CIRCLE
        if mode is ShapeMode.SQUARES:
            return Shape.SQUARE
        return Shape.CIRCLE if self._rng.random() < 0.5 else Shape.SQUARE

    def color_for(self, mode: ColorMode) -> str:
        fixed = _FIXED_COLORS.get(mode)
        if fixed is not None:
            return fixed
        return f"#{self._rng.getrandbits(24):06X}"

    def restyle(
        self,
        entities: list[Entity],
        *,
        shape_mode: ShapeMode | None = None,
        color_mode: ColorMode | None = None,
    ) -> None:
        """Re-derive shape and/or color of live entities in place after a mode change."""

        for entity in entities:
            if shape_mode is not None:
                entity.shape = self.shape_for(shape_mode)
            if color_mode is not None:
                entity.color = self.color_for(color_mode)

    def _entity(self, *, shape_mode: ShapeMode, color_mode: ColorMode, drift: bool) -> Entity:
        top = self._rng.random() * SPAWN_MAX_PCT
        left = self._rng.random() * SPAWN_MAX_PCT
        shape = self.shape_for(shape_mode)
        color = self.color_for(color_mode)

        descriptor: Drift | None = None
        if drift:
            sign_x = 1 if self._rng.random() > 0.5 else -1
            sign_y = 1 if self._rng.random() > 0.5 else -1
            # |U - 0.5| * 2: lands in [0, 1) but is not uniform.
            r = abs(self._rng.random() - 0.5) * 2.0
            descriptor = Drift(sign_x=sign_x, sign_y=sign_y, r=r)

        return Entity(top=top, left=left, shape=shape, color=color, drift=descriptor)
