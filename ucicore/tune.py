"""Registration of tunable engine parameters as UCI spin options."""

from __future__ import annotations

import sys
from collections.abc import Callable, MutableMapping, MutableSequence
from dataclasses import dataclass
from typing import Any, Optional, TextIO, Union

from .options import Option, OptionsMap

Range = tuple[int, int]


def default_range(value: int) -> Range:
    """The default tuning range of a parameter: from zero to twice its value."""
    return (0, 2 * value) if value > 0 else (2 * value, 0)


class SetRange:
    """A tuning range: either a function of the value or fixed bounds."""

    def __init__(
        self,
        low_or_function: Union[int, Callable[[int], Range]],
        high: Optional[int] = None,
    ) -> None:
        if callable(low_or_function):
            if high is not None:
                raise TypeError("a range function takes no upper bound")
            self._function: Optional[Callable[[int], Range]] = low_or_function
            self._bounds: Range = (0, 0)
        else:
            if high is None:
                raise TypeError("SetRange needs a function or both bounds")
            self._function = None
            self._bounds = (int(low_or_function), int(high))

    def __call__(self, value: int) -> Range:
        if self._function is not None:
            return self._function(value)
        return self._bounds

    def __repr__(self) -> str:
        if self._function is not None:
            return f"SetRange({self._function.__name__})"
        return f"SetRange({self._bounds[0]}, {self._bounds[1]})"


DEFAULT_RANGE = SetRange(default_range)


def next_name(names: str) -> tuple[str, str]:
    """Split the next parameter name off a comma separated list.

    Names holding parentheses may contain commas; pieces are joined until the
    parentheses balance. Returns the name and the rest of the list.
    """
    name = ""
    while True:
        token, separator, names = names.partition(",")
        words = token.split()
        if words:
            name += words[0]
        if name.count("(") == name.count(")"):
            return name, names
        if not separator and not names:
            raise ValueError(f"unbalanced parentheses in parameter names: {name!r}")


def _read(owner: Any, key: Any) -> Any:
    if isinstance(owner, (MutableMapping, MutableSequence)):
        return owner[key]
    return getattr(owner, key)


def _write(owner: Any, key: Any, value: Any) -> None:
    if isinstance(owner, (MutableMapping, MutableSequence)):
        owner[key] = value
    else:
        setattr(owner, key, value)


@dataclass
class _ValueEntry:
    name: str
    owner: Any
    key: Any
    range: SetRange

    def init_option(self, tuner: "Tuner") -> None:
        tuner._make_option(self.name, _read(self.owner, self.key), self.range)

    def read_option(self, options: OptionsMap) -> None:
        if self.name in options:
            _write(self.owner, self.key, int(options[self.name]))


@dataclass
class _PostUpdateEntry:
    name: str
    function: Callable[[], Any]

    def read_option(self, options: OptionsMap) -> None:
        self.function()


class Tuner:
    """Turns integer parameters into spin options and writes option changes back.

    Parameters passed to :meth:`add` are ``(owner, key)`` pairs naming an item
    of a mapping or sequence or an attribute of an object, lists (possibly
    nested) of integers, callables run after every update, and ``SetRange``
    values that set the range of the parameters following them.
    """

    def __init__(
        self,
        results: Optional[dict[str, int]] = None,
        output: Optional[TextIO] = None,
        update_on_last: bool = False,
    ) -> None:
        self.results = dict(results or {})
        self.update_on_last = update_on_last
        self._output = output
        self._entries: list[Union[_ValueEntry, _PostUpdateEntry]] = []
        self._options: Optional[OptionsMap] = None
        self._last_option: Optional[Option] = None

    def add(self, names: str, *args: Any) -> None:
        """Register parameters; ``names`` lists one comma separated name per argument."""
        tuning_range = DEFAULT_RANGE
        for arg in args:
            name, names = next_name(names)
            if isinstance(arg, SetRange):
                tuning_range = arg
            elif isinstance(arg, list):
                self._add_array(tuning_range, name, arg)
            elif isinstance(arg, tuple) and len(arg) == 2:
                owner, key = arg
                if not isinstance(_read(owner, key), int):
                    raise TypeError(f"parameter {name!r} is not an integer")
                self._entries.append(_ValueEntry(name, owner, key, tuning_range))
            elif callable(arg):
                self._entries.append(_PostUpdateEntry(name, arg))
            else:
                raise TypeError(f"unsupported tuning parameter {name!r}: {arg!r}")

    def _add_array(self, tuning_range: SetRange, base: str, items: list) -> None:
        for index, item in enumerate(items):
            name = f"{base}[{index}]"
            if isinstance(item, list):
                self._add_array(tuning_range, name, item)
            elif isinstance(item, int):
                self._entries.append(_ValueEntry(name, items, index, tuning_range))
            else:
                raise TypeError(f"unsupported tuning parameter {name!r}: {item!r}")

    def init_options(self, options: OptionsMap) -> None:
        """Create an option for every parameter, then read their values back."""
        self._options = options
        for entry in self._entries:
            if isinstance(entry, _ValueEntry):
                entry.init_option(self)
        self.read_options()

    def read_options(self) -> None:
        """Copy option values into the parameters and run post-update functions."""
        if self._options is None:
            raise RuntimeError("options have not been initialised")
        for entry in self._entries:
            entry.read_option(self._options)

    def _on_tune(self, option: Option) -> None:
        if not self.update_on_last or option is self._last_option:
            self.read_options()

    def _make_option(self, name: str, value: int, tuning_range: SetRange) -> None:
        low, high = tuning_range(value)
        if low == high:
            return  # nothing to tune

        value = self.results.get(name, value)
        low, high = tuning_range(value)
        assert self._options is not None
        self._last_option = self._options.add(
            name, Option.spin(value, low, high, self._on_tune)
        )
        print(
            f"{name},{value},{low},{high},{(high - low) / 20.0:g},0.0020",
            file=self._output or sys.stdout,
        )