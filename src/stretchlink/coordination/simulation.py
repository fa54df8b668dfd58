"""Per-frame orchestrator for tethered segments."""

import logging
from typing import Optional

from stretchlink.core.clock import DeltaClock
from stretchlink.core.events import EventBus, EventType
from stretchlink.core.scene_graph import Scene
from stretchlink.segment.stretch_segment import StretchSegment
from stretchlink.tether.config import TetherConfig
from stretchlink.tether.table import TetherTable

logger = logging.getLogger(__name__)


class Simulation:
    """Drives every tethered segment in a scene, one pass per tick.

    Call order per step:
      1. Scene matrix update (anchor frames are current for this tick)
      2. Each table resolves both ends and updates its segment
      3. Scene matrix update (segment nodes pick up their new transforms)
      4. FRAME_UPDATE event

    Binding changes (tether, untether, swap, refresh) go between steps,
    never inside one.
    """

    def __init__(
        self,
        scene: Optional[Scene] = None,
        config: Optional[TetherConfig] = None,
        events: Optional[EventBus] = None,
        clock: Optional[DeltaClock] = None,
    ):
        self.scene = scene if scene is not None else Scene()
        self.config = config or TetherConfig()
        self.events = events if events is not None else EventBus()
        self.clock = clock if clock is not None else DeltaClock()
        self.tables: list[TetherTable] = []
        self._started = False

    def add_segment(self, segment: StretchSegment) -> TetherTable:
        """Register a segment and return the table that tethers it.

        The segment's node joins the scene if it is not already in it.
        """
        if segment.node.parent is None:
            self.scene.add(segment.node)
        table = TetherTable(segment, config=self.config, events=self.events)
        self.tables.append(table)
        if self._started:
            self.scene.update()
            table.on_start()
        return table

    def start(self) -> None:
        """Capture every table's initial offsets from the placed scene."""
        self.scene.update()
        for table in self.tables:
            table.on_start()
        self.clock.reset()
        self._started = True
        logger.debug("Simulation started with %d segment(s)", len(self.tables))

    def step(self, dt: Optional[float] = None) -> float:
        """Advance one tick. Returns the frame delta used."""
        if not self._started:
            self.start()
        if dt is None:
            dt = self.clock.get_delta()

        self.scene.update()
        for table in self.tables:
            table.on_tick()
        self.scene.update()

        self.events.publish(EventType.FRAME_UPDATE, dt=dt)
        return dt
