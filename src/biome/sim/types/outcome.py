from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..core.creature import Creature


@dataclass(slots=True)
class Outcome:
    """Deferred effects of one creature update, applied by the simulation."""

    consumed_food_id: Optional[int] = None
    hunted_creature_id: Optional[int] = None
    offspring: Optional["Creature"] = None
