"""Canonical Huffman decoding of compressed tablebase values ("recursive pairing")."""

from __future__ import annotations

from dataclasses import dataclass, field

from .tb_encoding import TBPIECES

SINGLE_VALUE = 128  # table flag: every position stores the same value
LEAF = 0xFFF  # right-hand symbol of a btree entry that is a leaf

_MASK64 = (1 << 64) - 1
_SPARSE_ENTRY_BYTES = 6
_LR_BYTES = 3


def _read(data: bytes, offset: int, size: int, byteorder: str) -> int:
    if offset < 0 or offset + size > len(data):
        raise ValueError(f"truncated table data at offset {offset}")
    return int.from_bytes(data[offset : offset + size], byteorder)


def _u8(data: bytes, offset: int) -> int:
    return _read(data, offset, 1, "little")


def _u16le(data: bytes, offset: int) -> int:
    return _read(data, offset, 2, "little")


def _u32le(data: bytes, offset: int) -> int:
    return _read(data, offset, 4, "little")


def _u32be(data: bytes, offset: int) -> int:
    return _read(data, offset, 4, "big")


def _u64be(data: bytes, offset: int) -> int:
    return _read(data, offset, 8, "big")


def _children(data: bytes, btree: int, sym: int) -> tuple[int, int]:
    """The left and right symbols of a btree entry, 12 bits each."""
    entry = btree + _LR_BYTES * sym
    if entry < 0 or entry + _LR_BYTES > len(data):
        raise ValueError(f"symbol {sym} lies outside the table data")
    b0, b1, b2 = data[entry], data[entry + 1], data[entry + 2]
    return ((b1 & 0xF) << 8) | b0, (b2 << 4) | (b1 >> 4)


@dataclass
class PairsData:
    """Indexing information for one compressed sub-table.

    The offset fields point into the bytes of the table file they were
    parsed from.
    """

    flags: int = 0
    max_sym_len: int = 0
    min_sym_len: int = 0
    blocks_num: int = 0
    sizeof_block: int = 0
    span: int = 0
    lowest_sym: int = 0  # offset of the lowest symbol of each length
    btree: int = 0  # offset of the symbol pair tree
    block_length: int = 0  # offset of the per-block value counts (minus one)
    block_length_size: int = 0
    sparse_index: int = 0  # offset of the sparse index into block_length
    sparse_index_size: int = 0
    blocks: int = 0  # offset of the Huffman-compressed blocks
    base64: list[int] = field(default_factory=list)
    symlen: list[int] = field(default_factory=list)
    pieces: list[int] = field(default_factory=lambda: [0] * TBPIECES)
    group_idx: tuple[int, ...] = ()
    group_len: tuple[int, ...] = ()
    map_idx: list[int] = field(default_factory=lambda: [0] * 4)

    @property
    def table_size(self) -> int:
        """Number of positions in the table: the last group index."""
        lengths = list(self.group_len[:TBPIECES])
        count = lengths.index(0) if 0 in lengths else len(lengths)
        if count >= len(self.group_idx):
            raise ValueError("group indices are not set")
        return self.group_idx[count]


def _compute_symlen(pairs: PairsData, data: bytes) -> None:
    """Count the values each symbol expands to, minus one."""
    size = len(pairs.symlen)
    visited = [False] * size
    for root in range(size):
        if visited[root]:
            continue
        visited[root] = True
        stack = [root]
        while stack:
            sym = stack[-1]
            left, right = _children(data, pairs.btree, sym)
            if right == LEAF:
                pairs.symlen[sym] = 0
                stack.pop()
                continue
            if left >= size or right >= size:
                raise ValueError(f"symbol {sym} has children out of range")
            pending = next((c for c in (left, right) if not visited[c]), None)
            if pending is not None:
                visited[pending] = True
                stack.append(pending)
                continue
            pairs.symlen[sym] = (pairs.symlen[left] + pairs.symlen[right] + 1) & 0xFF
            stack.pop()


def parse_sizes(pairs: PairsData, data: bytes, offset: int) -> int:
    """Read a sub-table's size header at ``offset`` into ``pairs``.

    ``pairs.group_idx`` and ``pairs.group_len`` must already be set. Returns
    the offset just past the header.
    """
    pairs.flags = _u8(data, offset)
    offset += 1

    if pairs.flags & SINGLE_VALUE:
        pairs.blocks_num = pairs.block_length_size = 0
        pairs.span = pairs.sparse_index_size = 0
        pairs.min_sym_len = _u8(data, offset)  # the single stored value
        return offset + 1

    tb_size = pairs.table_size
    pairs.sizeof_block = 1 << _u8(data, offset)
    pairs.span = 1 << _u8(data, offset + 1)
    offset += 2
    pairs.sparse_index_size = (tb_size + pairs.span - 1) // pairs.span
    padding = _u8(data, offset)
    offset += 1
    pairs.blocks_num = _u32le(data, offset)
    offset += 4
    pairs.block_length_size = pairs.blocks_num + padding
    pairs.max_sym_len = _u8(data, offset)
    pairs.min_sym_len = _u8(data, offset + 1)
    offset += 2
    if pairs.max_sym_len < pairs.min_sym_len:
        raise ValueError("maximum symbol length is below the minimum")
    pairs.lowest_sym = offset

    # Longer codes have lower values, so base64[i] >= base64[i + 1].
    count = pairs.max_sym_len - pairs.min_sym_len + 1
    base64 = [0] * count
    for i in range(count - 2, -1, -1):
        lower = _u16le(data, pairs.lowest_sym + 2 * i)
        higher = _u16le(data, pairs.lowest_sym + 2 * (i + 1))
        base64[i] = ((base64[i + 1] + lower - higher) & _MASK64) // 2
    for i in range(count):
        shift = 64 - i - pairs.min_sym_len
        base64[i] = (base64[i] << shift) & _MASK64 if shift >= 0 else base64[i] >> -shift
    pairs.base64 = base64

    offset += 2 * count
    pairs.symlen = [0] * _u16le(data, offset)
    offset += 2
    pairs.btree = offset
    _compute_symlen(pairs, data)

    size = len(pairs.symlen)
    return offset + size * _LR_BYTES + (size & 1)


def decompress_pairs(pairs: PairsData, data: bytes, index: int) -> int:
    """The value stored at position ``index`` of the sub-table."""
    if pairs.flags & SINGLE_VALUE:
        return pairs.min_sym_len
    if pairs.span <= 0:
        raise ValueError("sub-table sizes have not been parsed")

    k = index // pairs.span
    entry = pairs.sparse_index + _SPARSE_ENTRY_BYTES * k
    block = _u32le(data, entry)
    offset = _u16le(data, entry + 4)
    offset += index % pairs.span - pairs.span // 2

    def block_length(number: int) -> int:
        if number < 0:
            raise ValueError("index lies before the first block")
        return _u16le(data, pairs.block_length + 2 * number)

    while offset < 0:
        block -= 1
        offset += block_length(block) + 1
    while offset > block_length(block):
        offset -= block_length(block) + 1
        block += 1

    ptr = pairs.blocks + block * pairs.sizeof_block
    buf64 = _u64be(data, ptr)
    ptr += 8
    buf64_size = 64
    base64 = pairs.base64
    symlen = pairs.symlen

    while True:
        length = 0
        while buf64 < base64[length]:
            length += 1
            if length >= len(base64):
                raise ValueError("invalid Huffman code")
        sym = (buf64 - base64[length]) >> (64 - length - pairs.min_sym_len)
        sym = (sym + _u16le(data, pairs.lowest_sym + 2 * length)) & 0xFFFF
        if sym >= len(symlen):
            raise ValueError(f"decoded symbol {sym} is out of range")

        if offset < symlen[sym] + 1:
            break

        offset -= symlen[sym] + 1
        length += pairs.min_sym_len
        buf64 = (buf64 << length) & _MASK64
        buf64_size -= length
        if buf64_size <= 32:
            buf64_size += 32
            buf64 |= _u32be(data, ptr) << (64 - buf64_size)
            ptr += 4

    # Expand the pair symbol down to the leaf that holds the value.
    while symlen[sym]:
        left, right = _children(data, pairs.btree, sym)
        if offset < symlen[left] + 1:
            sym = left
        else:
            offset -= symlen[left] + 1
            sym = right

    return _children(data, pairs.btree, sym)[0]