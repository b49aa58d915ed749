"""Helpers of the UCI protocol: score conversion, win rates, squares and ``go`` parsing."""

from __future__ import annotations

import math
import time

from .timeman import BLACK, WHITE, SearchLimits

NORMALIZE_TO_PAWN_VALUE = 356

# Coefficients of third-order polynomials fitted to game statistics; they turn
# an evaluation into the argument of a logistic function.
_AS = (-1.06249702, 7.42016937, 0.89425629, 348.60356174)
_BS = (-5.33122190, 39.57831533, -90.84473771, 123.40620748)

_FILE_CHARS = "abcdefgh"
_RANK_CHARS = "12345678"


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def to_cp(value: int) -> int:
    """Convert an internal evaluation to centipawns."""
    return _trunc_div(100 * value, NORMALIZE_TO_PAWN_VALUE)


def win_rate_model(value: int, ply: int) -> int:
    """The probability of winning, in per mille, for an evaluation at a game ply."""
    move = min(max(_trunc_div(ply, 2) + 1, 8), 120) / 32.0

    a = ((_AS[0] * move + _AS[1]) * move + _AS[2]) * move + _AS[3]
    b = ((_BS[0] * move + _BS[1]) * move + _BS[2]) * move + _BS[3]

    try:
        denominator = 1 + math.exp((a - float(value)) / b)
    except OverflowError:
        return 0
    return int(0.5 + 1000 / denominator)


def wdl(value: int, ply: int) -> str:
    """The ``wdl`` part of an info line: win, draw and loss in per mille."""
    win = win_rate_model(value, ply)
    loss = win_rate_model(-value, ply)
    draw = 1000 - win - loss
    return f" wdl {win} {draw} {loss}"


def square_name(square: int) -> str:
    """The coordinate name of a square numbered 0 (a1) to 63 (h8)."""
    if not 0 <= square < 64:
        raise ValueError(f"no such square: {square}")
    return _FILE_CHARS[square & 7] + _RANK_CHARS[square >> 3]


def _now_ms() -> int:
    return int(time.monotonic() * 1000)


def parse_go(args: str) -> tuple[SearchLimits, bool]:
    """Parse the arguments of a ``go`` command.

    Returns the search limits and whether the search is in ponder mode. Moves
    listed after ``searchmoves`` are kept as text. Parsing stops at the first
    value that is not a number, leaving the limits read so far.
    """
    limits = SearchLimits(start_time=_now_ms())
    ponder_mode = False
    tokens = iter(args.split())

    def read_int() -> int:
        token = next(tokens, None)
        if token is None:
            raise StopIteration
        try:
            return int(token)
        except ValueError:
            raise StopIteration from None

    try:
        for token in tokens:
            if token == "searchmoves":
                limits.searchmoves.extend(tokens)
            elif token == "wtime":
                limits.time[WHITE] = read_int()
            elif token == "btime":
                limits.time[BLACK] = read_int()
            elif token == "winc":
                limits.inc[WHITE] = read_int()
            elif token == "binc":
                limits.inc[BLACK] = read_int()
            elif token == "movestogo":
                limits.movestogo = read_int()
            elif token == "depth":
                limits.depth = read_int()
            elif token == "nodes":
                limits.nodes = read_int()
            elif token == "movetime":
                limits.movetime = read_int()
            elif token == "mate":
                limits.mate = read_int()
            elif token == "perft":
                limits.perft = read_int()
            elif token == "infinite":
                limits.infinite = True
            elif token == "ponder":
                ponder_mode = True
    except StopIteration:
        pass

    return limits, ponder_mode