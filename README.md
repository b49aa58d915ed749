# ucicore

Building blocks for a chess engine that speaks the Universal Chess Interface
(UCI) protocol. The package is pure Python and has no runtime dependencies.

## What is inside

| Module | Purpose |
| --- | --- |
| `ucicore.options` | `Option` (`button`, `check`, `string`, `spin`, `combo`) and a case-insensitive `OptionsMap` that applies `setoption` arguments and renders the `option name ...` lines sent in reply to `uci`. |
| `ucicore.tune` | A `Tuner` that exposes integer parameters as spin options and writes option changes back, with `SetRange`, `default_range` and `next_name`. |
| `ucicore.timeman` | `SearchLimits` and `TimeManagement`, which computes an optimum and a maximum thinking time from the clock, increment and moves to go, including the "nodes as time" mode. |
| `ucicore.tt` | A clustered `TranspositionTable` of `TTEntry` records with generation-based ageing; `Bound` and `mul_hi64`. |
| `ucicore.uci` | Protocol helpers: `to_cp`, `win_rate_model`, `wdl`, `square_name` and `parse_go`. |
| `ucicore.tb_encoding` | Tablebase index tables (`build_tables`, `EncodingTables`), `WDLScore`, `ProbeState`, `off_a1h8`, `dtz_before_zeroing`, `sign_of` and `group_layout`. |
| `ucicore.tb_pairs` | `PairsData`, `parse_sizes` for a sub-table header and `decompress_pairs` for values stored with canonical Huffman codes and recursive pairing. |
| `ucicore.tb_files` | `TableKind`, `table_code`, `all_table_codes`, `find_table`, `read_table`, `map_dtz_score` and a `TablebaseRegistry` of the tables found on disk. |

## Options

```python
from ucicore.options import Option, OptionsMap

options = OptionsMap()
options.add("Hash", Option.spin(16, 1, 33554432, None))
options.add("Ponder", Option.check(False, None))

options.setoption("name Hash value 64")
print(int(options["hash"]))   # names are case-insensitive -> 64
print(options.render())       # "\noption name Hash type spin default 16 min 1 max 33554432..."
```

`Option.set` returns `False` and leaves the value unchanged for a value
outside a spin option's bounds, a `check` value other than `true` or
`false`, an empty value (except for buttons and strings) or an unknown
`combo` choice. Otherwise it stores the value and calls the option's
`on_change` callback. `OptionsMap.setoption` raises `UnknownOptionError`
(a `KeyError`) for a name that is not registered.

## Tuning parameters

```python
from ucicore.options import OptionsMap
from ucicore.tune import SetRange, Tuner

weights = [100, 20]
tuner = Tuner()
tuner.add("weights, SetRange(-50, 50), bonus", weights, SetRange(-50, 50), (globals_dict, "bonus"))
tuner.init_options(OptionsMap())
```

Each integer becomes a spin option (`weights[0]`, `weights[1]`, ...); a
`(owner, key)` pair names an item of a mapping or sequence or an attribute
of an object; a callable is run after every update. A line
`name,value,min,max,step,0.0020` is printed for every option created.
Parameters whose range is empty are not turned into options.

## Time management

```python
from ucicore.timeman import WHITE, SearchLimits, TimeManagement

limits = SearchLimits(time=[60_000, 60_000], inc=[1_000, 1_000])
tm = TimeManagement()
tm.init(limits, WHITE, 20, {"Move Overhead": 10, "nodestime": 0, "Ponder": 0})
print(tm.optimum(), tm.maximum())   # milliseconds
```

`options` may be any mapping whose values convert with `int()`, including an
`OptionsMap`.

## Transposition table

```python
from ucicore.tt import Bound, TranspositionTable

table = TranspositionTable()
table.resize(16, 1)                       # 16 MB worth of clusters, cleared
table.new_search()
found, entry = table.probe(0x1234_5678_9ABC_DEF0)
entry.save(0x1234_5678_9ABC_DEF0, 35, False, Bound.EXACT, 8, 0, 30, table.generation)
print(table.hashfull())                   # permill of the sampled entries used this search
```

Clusters are created when first touched, so a large table costs little until
it fills.

## Protocol helpers

```python
from ucicore.uci import parse_go, square_name, to_cp, wdl

print(to_cp(356))            # 100: one pawn
print(wdl(0, 60))            # " wdl <win> <draw> <loss>" in per mille
print(square_name(28))       # "e4"
limits, ponder = parse_go("wtime 300000 btime 300000 movestogo 40")
```

## Tablebases

`TablebaseRegistry.init` takes a search path in the form of the
`SyzygyPath` option (directories separated by `os.pathsep`; `""` or
`"<empty>"` means none), registers every table whose WDL file is present and
prints `info string Found N tablebases`. `len()` of the registry tells how
many were found; `get("KRvK")` finds a table in either colour orientation,
and its `load(TableKind.WDL)` reads the file on first use. `read_table`
raises `CorruptTableError` for a file of impossible size and returns `None`
when the magic header does not match.

## What the package does not do

There is no board representation or move generator, so there is no search,
no evaluation, no `position` handling and no probing of a position against
the tablebases: the tablebase modules stop at locating files, building the
index tables, laying out piece groups and decoding stored values by index.
There is no command loop that reads UCI commands from standard input and no
command-line program; the package is a library only.

## Tests

The test suite uses pytest; the `test` extra pulls it in.