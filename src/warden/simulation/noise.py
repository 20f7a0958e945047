"""Noise alerts -- route a knock to every guard within earshot.

The radius filter lives here, on the caller side: guards only ever see
report_disturbance(point).  There is no attenuation or occlusion model;
a guard is either inside the radius or it is not.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from loguru import logger

from .geometry import distance_between, vec3

if TYPE_CHECKING:
    from .guard import GuardBehavior


def alert_guards(
    guards: Iterable[GuardBehavior],
    point,
    radius: float,
) -> list[GuardBehavior]:
    """Report a disturbance at *point* to each guard within *radius*.

    Returns the guards that were alerted, in iteration order.
    """
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")
    point = vec3(point)
    alerted: list[GuardBehavior] = []
    for guard in guards:
        if distance_between(guard.pose.position, point) <= radius:
            guard.report_disturbance(point)
            alerted.append(guard)
    logger.info(f"Noise at ({point[0]:.1f}, {point[1]:.1f}, {point[2]:.1f}) r={radius:.1f}: {len(alerted)} guard(s) alerted")
    return alerted
