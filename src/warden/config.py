"""Guard configuration using Pydantic settings.

Every tunable is a flat named number so a host can override it from the
environment (``WARDEN_VIEW_DISTANCE=30``) or a ``.env`` file.  Defaults
match the stock guard tuning.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from warden.simulation.perception import PerceptionConfig


class GuardSettings(BaseSettings):
    """Per-guard tunables loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Vision
    view_distance: float = Field(default=20.0, gt=0)
    view_half_angle: float = Field(default=45.0, gt=0, le=180)  # degrees
    target_tag: str = Field(default="Player", min_length=1)

    # Chase
    chasing_speed: float = Field(default=2.0, ge=0)
    chasing_rot_speed: float = Field(default=2.0, ge=0)
    chasing_accuracy: float = Field(default=5.0, ge=0)  # stop advancing inside this range

    # Patrol
    patrol_distance: float = Field(default=10.0, ge=0)  # max offset per horizontal axis
    patrol_wait: float = Field(default=5.0, ge=0)       # seconds between patrol points
    start_patrol_primed: bool = False                   # pick a point on the first Patrol tick

    # Investigate
    arrival_slack: float = Field(default=0.5, ge=0)     # added to navigator stopping distance

    # Knock / noise alert
    knock_radius: float = Field(default=20.0, ge=0)

    def perception_config(self) -> PerceptionConfig:
        """Build the immutable vision config for a PerceptionSensor.

        Imported here: warden.simulation imports this module at package load.
        """
        from warden.simulation.perception import PerceptionConfig

        return PerceptionConfig(
            view_distance=self.view_distance,
            view_half_angle=self.view_half_angle,
            target_tag=self.target_tag,
        )


settings = GuardSettings()
