"""Stateful wrapper for animation and interactive drivers."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

import numpy as np

from shadowcast.contracts import ConfigurationError, Plane, ShadowConfig, Surface, as_light
from shadowcast.projection import project_shadow

logger = logging.getLogger(__name__)

ShadowResult = Tuple[Surface, Optional[np.ndarray]]


class ShadowSession:
    """Current light and surface, plus the shadows they cast on one or more planes.

    Drivers call :meth:`update` with a new light position and/or a moved
    surface; every call recomputes all shadows from the session's values
    alone. The session holds no rendering handles.
    """

    def __init__(
        self,
        surface: Surface,
        light: Sequence[float],
        planes: Sequence[Plane] = (Plane(),),
        config: Optional[ShadowConfig] = None,
    ):
        if not planes:
            raise ConfigurationError("ShadowSession needs at least one plane")
        self.config = config if config is not None else ShadowConfig()
        self.config.validate()
        self.planes: Tuple[Plane, ...] = tuple(planes)
        self._surface = surface
        self._light = as_light(light)
        self._shadows: List[ShadowResult] = self._recompute()

    @property
    def surface(self) -> Surface:
        return self._surface

    @property
    def light(self) -> np.ndarray:
        return self._light.copy()

    @property
    def shadows(self) -> List[ShadowResult]:
        return list(self._shadows)

    def update(
        self,
        light: Optional[Sequence[float]] = None,
        surface: Optional[Surface] = None,
    ) -> List[ShadowResult]:
        """Replace the light and/or surface and return fresh shadows, one per plane."""
        if light is not None:
            self._light = as_light(light)
        if surface is not None:
            self._surface = surface
        self._shadows = self._recompute()
        return self.shadows

    def _recompute(self) -> List[ShadowResult]:
        results = []
        for plane in self.planes:
            config = replace(self.config, plane=plane)
            results.append(project_shadow(self._surface, self._light, config))
        logger.debug(
            "Session recomputed %d shadow(s) for light %s", len(results), self._light.tolist()
        )
        return results
