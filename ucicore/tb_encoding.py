"""Index encoding tables and piece grouping used to address tablebase entries."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache

TBPIECES = 7  # most pieces a supported table may hold
MAX_DTZ = 1 << 18  # large enough for the limits of the table format

PIECE_TO_CHAR = " PNBRQK  pnbrqk"

SQUARE_NB = 64
FILE_D = 3
RANK_2 = 1
RANK_7 = 6
SQ_B1 = 1
SQ_D4 = 27

KING_PAIRS = 462  # legal, non-mirrored placements of the two kings
UNIQUE_TRIPLES = 31332  # placements of three unique leading pieces


class WDLScore(IntEnum):
    """Win/draw/loss result from the point of view of the side to move."""

    LOSS = -2  # loss
    BLESSED_LOSS = -1  # loss, but draw under the 50-move rule
    DRAW = 0
    CURSED_WIN = 1  # win, but draw under the 50-move rule
    WIN = 2

    def __neg__(self) -> "WDLScore":
        return WDLScore(-int(self))


class ProbeState(IntEnum):
    """Outcome of a probing operation."""

    FAIL = 0  # probe failed, table missing
    OK = 1
    CHANGE_STM = -1  # the table stores the other side to move
    ZEROING_BEST_MOVE = 2  # the best move resets the 50-move counter


def _file_of(square: int) -> int:
    return square & 7


def _rank_of(square: int) -> int:
    return square >> 3


def _flip_file(square: int) -> int:
    return square ^ 7


def off_a1h8(square: int) -> int:
    """Signed distance of ``square`` from the a1-h8 diagonal: negative below it."""
    if not 0 <= square < SQUARE_NB:
        raise ValueError(f"no such square: {square}")
    return _rank_of(square) - _file_of(square)


def _kings_touch(s1: int, s2: int) -> bool:
    """True when the squares coincide or are a king's move apart."""
    return (
        abs(_file_of(s1) - _file_of(s2)) <= 1 and abs(_rank_of(s1) - _rank_of(s2)) <= 1
    )


@dataclass(frozen=True)
class EncodingTables:
    """Lookup tables that map piece placements to table indices."""

    map_pawns: tuple[int, ...]
    map_b1h1h7: tuple[int, ...]
    map_a1d1d4: tuple[int, ...]
    map_kk: tuple[tuple[int, ...], ...]  # [map_a1d1d4 code][square]
    binomial: tuple[tuple[int, ...], ...]  # [k][n]: ways to choose k of n
    lead_pawn_idx: tuple[tuple[int, ...], ...]  # [lead pawn count][square]
    lead_pawns_size: tuple[tuple[int, ...], ...]  # [lead pawn count][file a..d]


@lru_cache(maxsize=None)
def build_tables() -> EncodingTables:
    """Compute the encoding tables."""
    map_b1h1h7 = [0] * SQUARE_NB
    code = 0
    for s in range(SQUARE_NB):
        if off_a1h8(s) < 0:
            map_b1h1h7[s] = code
            code += 1

    # Squares of the a1-d1-d4 triangle; diagonal squares are encoded last.
    map_a1d1d4 = [0] * SQUARE_NB
    diagonal = []
    code = 0
    for s in range(SQ_D4 + 1):
        if off_a1h8(s) < 0 and _file_of(s) <= FILE_D:
            map_a1d1d4[s] = code
            code += 1
        elif not off_a1h8(s) and _file_of(s) <= FILE_D:
            diagonal.append(s)
    for s in diagonal:
        map_a1d1d4[s] = code
        code += 1

    # Legal king pairs with the first king in the triangle. With the first
    # king on the diagonal, the second may not be above it.
    map_kk = [[0] * SQUARE_NB for _ in range(10)]
    both_on_diagonal = []
    code = 0
    for idx in range(10):
        for s1 in range(SQ_D4 + 1):
            if map_a1d1d4[s1] != idx or not (idx or s1 == SQ_B1):
                continue
            for s2 in range(SQUARE_NB):
                if _kings_touch(s1, s2):
                    continue
                if not off_a1h8(s1) and off_a1h8(s2) > 0:
                    continue
                if not off_a1h8(s1) and not off_a1h8(s2):
                    both_on_diagonal.append((idx, s2))
                else:
                    map_kk[idx][s2] = code
                    code += 1
    for idx, s2 in both_on_diagonal:
        map_kk[idx][s2] = code
        code += 1

    binomial = [[0] * SQUARE_NB for _ in range(6)]
    binomial[0][0] = 1
    for n in range(1, SQUARE_NB):
        for k in range(min(6, n + 1)):
            binomial[k][n] = (binomial[k - 1][n - 1] if k > 0 else 0) + (
                binomial[k][n - 1] if k < n else 0
            )

    # Pawn squares a2-h7 are numbered 47 down to 0; the leading pawn is the
    # one with the highest number: nearest the edge, then lowest rank.
    map_pawns = [0] * SQUARE_NB
    lead_pawn_idx = [[0] * SQUARE_NB for _ in range(6)]
    lead_pawns_size = [[0] * 4 for _ in range(6)]
    available = 47
    for lead_count in range(1, 6):
        for file in range(FILE_D + 1):
            idx = 0
            for rank in range(RANK_2, RANK_7 + 1):
                sq = rank * 8 + file
                if lead_count == 1:
                    map_pawns[sq] = available
                    available -= 1
                    map_pawns[_flip_file(sq)] = available
                    available -= 1
                lead_pawn_idx[lead_count][sq] = idx
                idx += binomial[lead_count - 1][map_pawns[sq]]
            lead_pawns_size[lead_count][file] = idx

    return EncodingTables(
        map_pawns=tuple(map_pawns),
        map_b1h1h7=tuple(map_b1h1h7),
        map_a1d1d4=tuple(map_a1d1d4),
        map_kk=tuple(tuple(row) for row in map_kk),
        binomial=tuple(tuple(row) for row in binomial),
        lead_pawn_idx=tuple(tuple(row) for row in lead_pawn_idx),
        lead_pawns_size=tuple(tuple(row) for row in lead_pawns_size),
    )


def dtz_before_zeroing(wdl: int) -> int:
    """The DTZ of the move before a zeroing move, given the position's result."""
    return {
        WDLScore.WIN: 1,
        WDLScore.CURSED_WIN: 101,
        WDLScore.BLESSED_LOSS: -101,
        WDLScore.LOSS: -1,
    }.get(WDLScore(wdl), 0)


def sign_of(value: float) -> int:
    """-1, 0 or 1 according to the sign of ``value``."""
    return (value > 0) - (value < 0)


def group_layout(
    pieces: Sequence[int],
    piece_count: int,
    has_pawns: bool,
    has_unique_pieces: bool,
    pawn_count: Sequence[int],
    order: Sequence[int],
    file: int,
    tables: EncodingTables,
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Group the pieces of a table and compute each group's index multiplier.

    A group holds pieces of one type and colour, except the leading group,
    which without pawns holds three unique pieces or the two kings. Returns
    the group lengths and the start index of each group; the last index is
    the size of the table.
    """
    if piece_count < 2 or piece_count > TBPIECES or len(pieces) < piece_count:
        raise ValueError(f"invalid piece count: {piece_count}")

    group_len = [0] * (TBPIECES + 1)
    group_idx = [0] * (TBPIECES + 1)

    first_len = 0 if has_pawns else 3 if has_unique_pieces else 2
    n = 0
    group_len[0] = 1
    for i in range(1, piece_count):
        first_len -= 1
        if first_len > 0 or pieces[i] == pieces[i - 1]:
            group_len[n] += 1
        else:
            n += 1
            group_len[n] = 1
    n += 1
    group_len[n] = 0

    # Groups are encoded in a per-table order: the leading group sits at
    # position order[0], remaining pawns (if both sides have some) at order[1].
    pp = bool(has_pawns and pawn_count[1])
    next_group = 2 if pp else 1
    free_squares = 64 - group_len[0] - (group_len[1] if pp else 0)
    idx = 1

    k = 0
    while next_group < n or k == order[0] or k == order[1]:
        if k == order[0]:
            group_idx[0] = idx
            if has_pawns:
                idx *= tables.lead_pawns_size[group_len[0]][file]
            else:
                idx *= UNIQUE_TRIPLES if has_unique_pieces else KING_PAIRS
        elif k == order[1]:
            group_idx[1] = idx
            idx *= tables.binomial[group_len[1]][48 - group_len[0]]
        else:
            group_idx[next_group] = idx
            idx *= tables.binomial[group_len[next_group]][free_squares]
            free_squares -= group_len[next_group]
            next_group += 1
        k += 1

    group_idx[n] = idx
    return tuple(group_len[:n]), tuple(group_idx[: n + 1])