"""Time allotment for a search: optimum and maximum thinking time per move."""

from __future__ import annotations

import math
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

WHITE = 0
BLACK = 1

MOVE_HORIZON = 50


def _now_ms() -> int:
    """A monotonic clock in milliseconds."""
    return int(time.monotonic() * 1000)


@dataclass
class SearchLimits:
    """The limits given with a ``go`` command; times are in milliseconds."""

    time: list[int] = field(default_factory=lambda: [0, 0])
    inc: list[int] = field(default_factory=lambda: [0, 0])
    npmsec: int = 0
    movetime: int = 0
    movestogo: int = 0
    depth: int = 0
    mate: int = 0
    perft: int = 0
    infinite: bool = False
    nodes: int = 0
    searchmoves: list[Any] = field(default_factory=list)
    start_time: int = field(default_factory=_now_ms)


class TimeManagement:
    """Computes how long to think about the current move."""

    def __init__(self) -> None:
        self._start_time = 0
        self._optimum_time = 0
        self._maximum_time = 0
        self._available_nodes = 0
        self._use_nodes_time = False

    def init(self, limits: SearchLimits, us: int, ply: int, options: Mapping[str, Any]) -> None:
        """Set the time bounds for the move about to be searched.

        Supports a base time with optional increment, and a number of moves
        in a given time. In 'nodes as time' mode the limits are converted
        from milliseconds to nodes in place.
        """
        self._start_time = limits.start_time
        if limits.time[us] == 0:
            return

        move_overhead = int(options["Move Overhead"])
        npmsec = int(options["nodestime"])

        if npmsec:
            self._use_nodes_time = True
            if not self._available_nodes:  # only once at game start
                self._available_nodes = npmsec * limits.time[us]
            limits.time[us] = self._available_nodes
            limits.inc[us] *= npmsec
            limits.npmsec = npmsec

        my_time = limits.time[us]
        my_inc = limits.inc[us]
        mtg = min(limits.movestogo, MOVE_HORIZON) if limits.movestogo else MOVE_HORIZON

        # Kept positive since it is used as a divisor.
        time_left = max(1, my_time + my_inc * (mtg - 1) - move_overhead * (2 + mtg))

        if limits.movestogo == 0:
            opt_extra = min(max(1.0 + 12.5 * my_inc / my_time, 1.0), 1.11)
            opt_constant = min(0.00334 + 0.0003 * math.log10(my_time / 1000.0), 0.0049)
            max_constant = max(3.4 + 3.0 * math.log10(my_time / 1000.0), 2.76)
            opt_scale = (
                min(
                    0.0120 + math.pow(ply + 3.1, 0.44) * opt_constant,
                    0.21 * my_time / time_left,
                )
                * opt_extra
            )
            max_scale = min(6.9, max_constant + ply / 12.2)
        else:
            opt_scale = min((0.88 + ply / 116.4) / mtg, 0.88 * my_time / time_left)
            max_scale = min(6.3, 1.5 + 0.11 * mtg)

        self._optimum_time = int(opt_scale * time_left)
        self._maximum_time = (
            int(min(0.84 * my_time - move_overhead, max_scale * self._optimum_time)) - 10
        )

        if int(options["Ponder"]):
            self._optimum_time += self._optimum_time // 4

    def optimum(self) -> int:
        """The time the search should aim to use."""
        return self._optimum_time

    def maximum(self) -> int:
        """The time the search must not exceed."""
        return self._maximum_time

    def elapsed(self, nodes: int) -> int:
        """Time spent so far, counted in nodes when in 'nodes as time' mode."""
        if self._use_nodes_time:
            return int(nodes)
        return _now_ms() - self._start_time

    def clear(self) -> None:
        """Forget the node budget of 'nodes as time' mode."""
        self._available_nodes = 0

    def advance_nodes_time(self, nodes: int) -> None:
        """Adjust the node budget of 'nodes as time' mode."""
        if not self._use_nodes_time:
            raise RuntimeError("not in 'nodes as time' mode")
        self._available_nodes += nodes