"""Locating, reading and registering tablebase files on disk."""

from __future__ import annotations

import os
import sys
import threading
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from pathlib import Path
from typing import Optional, TextIO

from .tb_encoding import PIECE_TO_CHAR, TBPIECES, WDLScore

PAWN = 1
QUEEN = 5
KING = 6

EMPTY_PATH = "<empty>"

# WDL score (offset by 2) to the slot of map_idx holding its remapping.
_WDL_MAP = (1, 3, 0, 2, 0)


class TableKind(Enum):
    """The two kinds of tablebase file, with their magic header and suffix."""

    WDL = (b"\x71\xe8\x23\x5d", ".rtbw")
    DTZ = (b"\xd7\x66\x0c\xa5", ".rtbz")

    def __init__(self, magic: bytes, suffix: str) -> None:
        self.magic = magic
        self.suffix = suffix


class TBFlag(IntFlag):
    """Per sub-table flags; all refer to DTZ tables except SINGLE_VALUE."""

    STM = 1
    MAPPED = 2
    WIN_PLIES = 4
    LOSS_PLIES = 8
    WIDE = 16
    SINGLE_VALUE = 128


class CorruptTableError(ValueError):
    """Raised when a tablebase file has an impossible size."""


def table_code(pieces: Sequence[int]) -> str:
    """The name of the table holding ``pieces``, e.g. king, rook, king -> ``KRvK``."""
    code = "".join(PIECE_TO_CHAR[piece] for piece in pieces)
    second_king = code.find("K", 1)
    if not code.startswith("K") or second_king < 0:
        raise ValueError(f"a table needs two kings: {code!r}")
    return code[:second_king] + "v" + code[second_king:]


def _piece_lists() -> Iterator[tuple[int, ...]]:
    """Every material combination a table may exist for, stronger side first."""
    for p1 in range(PAWN, KING):
        yield (KING, p1, KING)
        for p2 in range(PAWN, p1 + 1):
            yield (KING, p1, p2, KING)
            yield (KING, p1, KING, p2)

            for p3 in range(PAWN, KING):
                yield (KING, p1, p2, KING, p3)

            for p3 in range(PAWN, p2 + 1):
                yield (KING, p1, p2, p3, KING)

                for p4 in range(PAWN, p3 + 1):
                    yield (KING, p1, p2, p3, p4, KING)
                    for p5 in range(PAWN, p4 + 1):
                        yield (KING, p1, p2, p3, p4, p5, KING)
                    for p5 in range(PAWN, KING):
                        yield (KING, p1, p2, p3, p4, KING, p5)

                for p4 in range(PAWN, KING):
                    yield (KING, p1, p2, p3, KING, p4)
                    for p5 in range(PAWN, p4 + 1):
                        yield (KING, p1, p2, p3, KING, p4, p5)

            for p3 in range(PAWN, p1 + 1):
                for p4 in range(PAWN, (p2 if p1 == p3 else p3) + 1):
                    yield (KING, p1, p2, KING, p3, p4)


def all_table_codes() -> Iterator[str]:
    """The names of all tables that may exist, in the order they are looked for."""
    for pieces in _piece_lists():
        yield table_code(pieces)


def find_table(name: str, paths: str) -> Optional[Path]:
    """The first file called ``name`` in the directories listed in ``paths``.

    Directories are separated by ``os.pathsep``.
    """
    for directory in paths.split(os.pathsep):
        if not directory:
            continue
        candidate = Path(directory) / name
        if candidate.is_file():
            return candidate
    return None


def read_table(path: os.PathLike | str, kind: TableKind) -> Optional[bytes]:
    """The whole content of a table file, or None if its magic header is wrong.

    Table data starts after the four header bytes; offsets used by the
    decoder count from the start of the file.
    """
    content = Path(path).read_bytes()
    if len(content) % 64 != 16:
        raise CorruptTableError(f"Corrupt tablebase file {path}")
    if content[:4] != kind.magic:
        return None
    return content


def map_dtz_score(
    flags: int, dtz_map: bytes, map_idx: Sequence[int], value: int, wdl: int
) -> int:
    """Turn a stored DTZ value into plies, undoing the table's value remapping."""
    score = WDLScore(wdl)
    if flags & TBFlag.MAPPED:
        position = map_idx[_WDL_MAP[score + 2]] + value
        if flags & TBFlag.WIDE:
            start = 2 * position
            if position < 0 or start + 2 > len(dtz_map):
                raise ValueError(f"DTZ map index {position} is out of range")
            value = int.from_bytes(dtz_map[start : start + 2], "little")
        else:
            if position < 0 or position >= len(dtz_map):
                raise ValueError(f"DTZ map index {position} is out of range")
            value = dtz_map[position]

    # Tables may store moves rather than plies; convert to plies.
    if (
        (score is WDLScore.WIN and not flags & TBFlag.WIN_PLIES)
        or (score is WDLScore.LOSS and not flags & TBFlag.LOSS_PLIES)
        or score is WDLScore.CURSED_WIN
        or score is WDLScore.BLESSED_LOSS
    ):
        value *= 2

    return value + 1


@dataclass
class TablebaseEntry:
    """A table found on disk, with the material facts needed to index it."""

    code: str
    piece_count: int
    has_pawns: bool
    has_unique_pieces: bool
    pawn_count: tuple[int, int]  # (leading colour, other colour)
    symmetric: bool
    paths: str
    _loaded: dict[TableKind, Optional[bytes]] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_code(cls, code: str, paths: str) -> "TablebaseEntry":
        white, _, black = code.partition("v")
        has_unique = any(
            side.count(piece) == 1 for side in (white, black) for piece in "PNBRQ"
        )
        white_pawns, black_pawns = white.count("P"), black.count("P")
        # The side with fewer pawns leads, as that compresses better.
        white_leads = not black_pawns or (white_pawns and black_pawns >= white_pawns)
        pawn_count = (
            (white_pawns, black_pawns) if white_leads else (black_pawns, white_pawns)
        )
        return cls(
            code=code,
            piece_count=len(white) + len(black),
            has_pawns=bool(white_pawns or black_pawns),
            has_unique_pieces=has_unique,
            pawn_count=pawn_count,
            symmetric=white == black,
            paths=paths,
        )

    def load(self, kind: TableKind) -> Optional[bytes]:
        """The table file of ``kind``, read on first use; None if unavailable."""
        with self._lock:
            if kind not in self._loaded:
                location = find_table(self.code + kind.suffix, self.paths)
                self._loaded[kind] = (
                    None if location is None else read_table(location, kind)
                )
            return self._loaded[kind]


class TablebaseRegistry:
    """The tables found under the configured paths, looked up by material."""

    def __init__(self, output: Optional[TextIO] = None) -> None:
        self._output = output
        self._tables: list[TablebaseEntry] = []
        self._by_code: dict[str, TablebaseEntry] = {}
        self._lock = threading.Lock()
        self.max_cardinality = 0
        self.paths = ""

    def init(self, paths: str) -> None:
        """Forget all tables and register those whose WDL file exists under ``paths``."""
        with self._lock:
            self._tables.clear()
            self._by_code.clear()
            self.max_cardinality = 0
            self.paths = paths

            if not paths or paths == EMPTY_PATH:
                return

            for code in all_table_codes():
                if find_table(code + TableKind.WDL.suffix, paths) is None:
                    continue
                entry = TablebaseEntry.from_code(code, paths)
                self.max_cardinality = max(self.max_cardinality, entry.piece_count)
                self._tables.append(entry)
                white, _, black = code.partition("v")
                self._by_code[code] = entry
                self._by_code[f"{black}v{white}"] = entry

            print(
                f"info string Found {len(self._tables)} tablebases",
                file=self._output or sys.stdout,
            )

    def __len__(self) -> int:
        return len(self._tables)

    def get(self, code: str) -> Optional[TablebaseEntry]:
        """The table for ``code`` in either colour orientation, or None."""
        return self._by_code.get(code)


assert TBPIECES == 7 and QUEEN < KING