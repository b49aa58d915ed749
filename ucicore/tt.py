"""The transposition table: a hash of search results keyed by position."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

DEPTH_OFFSET = -7
CLUSTER_SIZE = 3
CLUSTER_BYTES = 32

GENERATION_BITS = 3
GENERATION_DELTA = 1 << GENERATION_BITS
GENERATION_CYCLE = 255 + (1 << GENERATION_BITS)
GENERATION_MASK = (0xFF << GENERATION_BITS) & 0xFF

_MASK64 = (1 << 64) - 1


def mul_hi64(a: int, b: int) -> int:
    """The high 64 bits of the 128-bit product of two unsigned 64-bit numbers."""
    return ((a & _MASK64) * (b & _MASK64)) >> 64


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


class Bound(IntEnum):
    """How a stored value bounds the true score."""

    NONE = 0
    UPPER = 1
    LOWER = 2
    EXACT = UPPER | LOWER


@dataclass
class TTEntry:
    """One slot of the table, with fields packed as the storage format fixes."""

    key16: int = 0
    depth8: int = 0
    gen_bound8: int = 0
    move16: int = 0
    value16: int = 0
    eval16: int = 0

    @property
    def move(self) -> int:
        return self.move16

    @property
    def value(self) -> int:
        return self.value16

    @property
    def eval(self) -> int:
        return self.eval16

    @property
    def depth(self) -> int:
        return self.depth8 + DEPTH_OFFSET

    @property
    def is_pv(self) -> bool:
        return bool(self.gen_bound8 & 0x4)

    @property
    def bound(self) -> Bound:
        return Bound(self.gen_bound8 & 0x3)

    def save(
        self,
        key: int,
        value: int,
        pv: bool,
        bound: Bound,
        depth: int,
        move: int,
        eval_value: int,
        generation: int,
    ) -> None:
        """Store a search result, keeping more valuable existing data."""
        key16 = key & 0xFFFF

        # Preserve any existing move for the same position.
        if move or key16 != self.key16:
            self.move16 = move

        if (
            bound == Bound.EXACT
            or key16 != self.key16
            or depth - DEPTH_OFFSET + 2 * int(pv) > self.depth8 - 4
        ):
            if not DEPTH_OFFSET < depth < 256 + DEPTH_OFFSET:
                raise ValueError(f"depth {depth} cannot be stored")
            self.key16 = key16
            self.depth8 = (depth - DEPTH_OFFSET) & 0xFF
            self.gen_bound8 = (generation | (int(pv) << 2) | int(bound)) & 0xFF
            self.value16 = _int16(value)
            self.eval16 = _int16(eval_value)


def _relative_age_value(entry: TTEntry, generation: int) -> int:
    age = (GENERATION_CYCLE + generation - entry.gen_bound8) & GENERATION_MASK
    return entry.depth8 - age


class TranspositionTable:
    """Clusters of three entries, indexed by the high bits of the key.

    Clusters are created when first touched, so an unused table costs little.
    """

    def __init__(self, mb_size: Optional[int] = None, thread_count: int = 1) -> None:
        self._cluster_count = 0
        self._clusters: dict[int, list[TTEntry]] = {}
        self._generation = 0
        if mb_size is not None:
            self.resize(mb_size, thread_count)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def cluster_count(self) -> int:
        return self._cluster_count

    def resize(self, mb_size: int, thread_count: int) -> None:
        """Size the table in megabytes and clear it."""
        cluster_count = mb_size * 1024 * 1024 // CLUSTER_BYTES
        if cluster_count <= 0:
            raise ValueError(f"Failed to allocate {mb_size}MB for transposition table.")
        self._cluster_count = cluster_count
        self.clear(thread_count)

    def clear(self, thread_count: int) -> None:
        """Empty every entry of the table."""
        self._clusters.clear()

    def new_search(self) -> None:
        """Advance the generation so older entries age."""
        self._generation = (self._generation + GENERATION_DELTA) & 0xFF

    def first_entry(self, key: int) -> list[TTEntry]:
        """The cluster of entries that holds ``key``."""
        if not self._cluster_count:
            raise RuntimeError("transposition table has not been sized")
        index = mul_hi64(key, self._cluster_count)
        cluster = self._clusters.get(index)
        if cluster is None:
            cluster = [TTEntry() for _ in range(CLUSTER_SIZE)]
            self._clusters[index] = cluster
        return cluster

    def probe(self, key: int) -> tuple[bool, TTEntry]:
        """Look up ``key``.

        Returns whether it was found and its entry, or else the empty or
        least valuable entry of its cluster to be replaced.
        """
        cluster = self.first_entry(key)
        key16 = key & 0xFFFF

        for entry in cluster:
            if entry.key16 == key16 or not entry.depth8:
                entry.gen_bound8 = (
                    self._generation | (entry.gen_bound8 & (GENERATION_DELTA - 1))
                ) & 0xFF
                return bool(entry.depth8), entry

        replace = cluster[0]
        for entry in cluster[1:]:
            if _relative_age_value(replace, self._generation) > _relative_age_value(
                entry, self._generation
            ):
                replace = entry
        return False, replace

    def hashfull(self) -> int:
        """Permill of sampled entries that belong to the current search."""
        count = 0
        for index in range(1000):
            cluster = self._clusters.get(index)
            if cluster is None:
                continue
            count += sum(
                1
                for entry in cluster
                if entry.depth8 and (entry.gen_bound8 & GENERATION_MASK) == self._generation
            )
        return count // CLUSTER_SIZE