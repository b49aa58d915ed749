import io
import os

import pytest

from ucicore.tb_encoding import WDLScore
from ucicore.tb_files import (
    CorruptTableError,
    TableKind,
    TablebaseRegistry,
    TBFlag,
    all_table_codes,
    find_table,
    map_dtz_score,
    read_table,
    table_code,
)


def _write_table(directory, name, kind=TableKind.WDL, size=16):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(kind.magic + bytes(size - 4))
    return path


def test_wdl_file_with_fixed_magic_is_read(tmp_path):
    content = bytes([0x71, 0xE8, 0x23, 0x5D]) + bytes(12)
    path = tmp_path / "KRvK.rtbw"
    path.write_bytes(content)
    assert find_table("KRvK" + TableKind.WDL.suffix, str(tmp_path)) == path
    assert read_table(path, TableKind.WDL) == content
    assert read_table(path, TableKind.DTZ) is None


def test_dtz_file_with_fixed_magic_is_read(tmp_path):
    content = bytes([0xD7, 0x66, 0x0C, 0xA5]) + bytes(12)
    path = tmp_path / "KRvK.rtbz"
    path.write_bytes(content)
    assert find_table("KRvK" + TableKind.DTZ.suffix, str(tmp_path)) == path
    assert read_table(path, TableKind.DTZ) == content
    assert read_table(path, TableKind.WDL) is None


def test_table_code_inserts_separator():
    assert table_code([6, 4, 6]) == "KRvK"
    assert table_code([6, 5, 6, 4]) == "KQvKR"


def test_table_code_requires_two_kings():
    with pytest.raises(ValueError):
        table_code([6, 4, 4])


def test_all_table_codes_structure():
    codes = list(all_table_codes())
    assert codes[0] == "KPvK"
    assert len(codes) == len(set(codes))
    for code in codes:
        white, sep, black = code.partition("v")
        assert sep == "v"
        assert white.count("K") == 1 and white.startswith("K")
        assert black.count("K") == 1 and black.startswith("K")
        assert 3 <= len(white) + len(black) <= 7


def test_all_table_codes_stronger_side_first():
    codes = set(all_table_codes())
    assert "KRvK" in codes
    assert "KQvKR" in codes
    assert "KRvKQ" not in codes
    assert "KvKR" not in codes


def test_find_table_searches_in_order(tmp_path):
    first, second = tmp_path / "a", tmp_path / "b"
    first.mkdir()
    expected = _write_table(second, "KRvK.rtbw")
    paths = os.pathsep.join([str(first), str(second)])
    assert find_table("KRvK.rtbw", paths) == expected
    assert find_table("KQvK.rtbw", paths) is None


def test_read_table_returns_content(tmp_path):
    path = _write_table(tmp_path, "KRvK.rtbw", size=80)
    content = read_table(path, TableKind.WDL)
    assert content[:4] == TableKind.WDL.magic
    assert len(content) == 80


def test_read_table_wrong_magic_is_none(tmp_path):
    path = _write_table(tmp_path, "KRvK.rtbz", kind=TableKind.WDL)
    assert read_table(path, TableKind.DTZ) is None


def test_read_table_bad_size_raises(tmp_path):
    path = _write_table(tmp_path, "KRvK.rtbw", size=17)
    with pytest.raises(CorruptTableError):
        read_table(path, TableKind.WDL)


def test_map_dtz_score_unmapped_moves_to_plies():
    assert map_dtz_score(0, b"", [0, 0, 0, 0], 5, WDLScore.WIN) == 11
    assert map_dtz_score(TBFlag.WIN_PLIES, b"", [0, 0, 0, 0], 5, WDLScore.WIN) == 6
    assert map_dtz_score(TBFlag.LOSS_PLIES, b"", [0, 0, 0, 0], 5, WDLScore.LOSS) == 6
    flags = TBFlag.WIN_PLIES | TBFlag.LOSS_PLIES
    assert map_dtz_score(flags, b"", [0, 0, 0, 0], 5, WDLScore.CURSED_WIN) == 11


def test_map_dtz_score_byte_map():
    dtz_map = bytes([0, 7, 9, 11, 13])
    flags = TBFlag.MAPPED | TBFlag.WIN_PLIES
    # A win uses the first map slot.
    assert map_dtz_score(flags, dtz_map, [2, 0, 0, 0], 1, WDLScore.WIN) == 12


def test_map_dtz_score_out_of_range():
    with pytest.raises(ValueError):
        map_dtz_score(TBFlag.MAPPED, b"\x01", [5, 0, 0, 0], 0, WDLScore.WIN)


def test_registry_finds_tables(tmp_path):
    _write_table(tmp_path, "KRvK.rtbw")
    _write_table(tmp_path, "KPvKP.rtbw")
    output = io.StringIO()
    registry = TablebaseRegistry(output=output)
    registry.init(str(tmp_path))
    assert len(registry) == 2
    assert registry.max_cardinality == 4
    assert output.getvalue().strip() == "info string Found 2 tablebases"
    assert registry.get("KQvK") is None


def test_registry_both_orientations(tmp_path):
    _write_table(tmp_path, "KRvK.rtbw")
    registry = TablebaseRegistry(output=io.StringIO())
    registry.init(str(tmp_path))
    entry = registry.get("KRvK")
    assert registry.get("KvKR") is entry
    assert entry.has_pawns is False
    assert entry.has_unique_pieces is True
    assert entry.symmetric is False
    assert entry.piece_count == 3


def test_registry_pawn_entry(tmp_path):
    _write_table(tmp_path, "KPvKP.rtbw")
    registry = TablebaseRegistry(output=io.StringIO())
    registry.init(str(tmp_path))
    entry = registry.get("KPvKP")
    assert entry.has_pawns is True
    assert entry.symmetric is True
    assert entry.pawn_count == (1, 1)


def test_registry_loads_files_lazily(tmp_path):
    _write_table(tmp_path, "KRvK.rtbw")
    registry = TablebaseRegistry(output=io.StringIO())
    registry.init(str(tmp_path))
    entry = registry.get("KRvK")
    assert entry.load(TableKind.WDL)[:4] == TableKind.WDL.magic
    assert entry.load(TableKind.DTZ) is None


@pytest.mark.parametrize("paths", ["", "<empty>"])
def test_registry_empty_paths(tmp_path, paths):
    _write_table(tmp_path, "KRvK.rtbw")
    registry = TablebaseRegistry(output=io.StringIO())
    registry.init(str(tmp_path))
    assert len(registry) == 1
    registry.init(paths)
    assert len(registry) == 0
    assert registry.max_cardinality == 0
    assert registry.get("KRvK") is None