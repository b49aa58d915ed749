"""UCI engine options: typed values with bounds, defaults and change callbacks."""

from __future__ import annotations

import itertools
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

OnChange = Callable[["Option"], None]

_FLOAT_PREFIX = re.compile(
    r"\s*[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)
_INT_PREFIX = re.compile(r"\s*[+-]?\d+")

# Shared across all maps so that every registration gets a later position.
_insert_order = itertools.count()


def _parse_float_prefix(text: str) -> float:
    """Parse the leading floating point number of ``text``, ignoring the rest."""
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        raise ValueError(f"invalid number: {text!r}")
    return float(match.group())


def _parse_int_prefix(text: str) -> int:
    """Parse the leading integer of ``text``, ignoring the rest."""
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ValueError(f"invalid integer: {text!r}")
    return int(match.group())


class OptionType(str, Enum):
    """The option types defined by the UCI protocol."""

    BUTTON = "button"
    CHECK = "check"
    STRING = "string"
    SPIN = "spin"
    COMBO = "combo"


class UnknownOptionError(KeyError):
    """Raised when a command names an option that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"No such option: {self.name}"


@dataclass(eq=False)
class Option:
    """A single UCI option holding its default and current value as text."""

    kind: OptionType = OptionType.BUTTON
    default: str = ""
    value: str = ""
    minimum: int = 0
    maximum: int = 0
    on_change: Optional[OnChange] = None
    _order: int = field(default=-1, init=False, repr=False, compare=False)

    @classmethod
    def button(cls, on_change: Optional[OnChange] = None) -> "Option":
        """A button: has no value, only triggers its callback."""
        return cls(OptionType.BUTTON, on_change=on_change)

    @classmethod
    def check(cls, value: bool, on_change: Optional[OnChange] = None) -> "Option":
        """A boolean option stored as ``true`` or ``false``."""
        text = "true" if value else "false"
        return cls(OptionType.CHECK, text, text, on_change=on_change)

    @classmethod
    def string(cls, value: str, on_change: Optional[OnChange] = None) -> "Option":
        """A free text option."""
        return cls(OptionType.STRING, value, value, on_change=on_change)

    @classmethod
    def spin(
        cls,
        value: float,
        minimum: int,
        maximum: int,
        on_change: Optional[OnChange] = None,
    ) -> "Option":
        """A numeric option with inclusive bounds."""
        text = f"{float(value):f}"
        return cls(OptionType.SPIN, text, text, int(minimum), int(maximum), on_change)

    @classmethod
    def combo(
        cls, default: str, current: str, on_change: Optional[OnChange] = None
    ) -> "Option":
        """A choice among the words of ``default`` separated by ``var``."""
        return cls(OptionType.COMBO, default, current, on_change=on_change)

    def set(self, value: str) -> bool:
        """Assign a new value and run the callback; return False if it was rejected."""
        if self.kind not in (OptionType.BUTTON, OptionType.STRING) and not value:
            return False
        if self.kind is OptionType.CHECK and value not in ("true", "false"):
            return False
        if self.kind is OptionType.SPIN:
            number = _parse_float_prefix(value)
            if number < self.minimum or number > self.maximum:
                return False
        if self.kind is OptionType.COMBO:
            choices = {token.lower() for token in self.default.split()}
            if value.lower() not in choices or value == "var":
                return False

        if self.kind is not OptionType.BUTTON:
            self.value = value
        if self.on_change is not None:
            self.on_change(self)
        return True

    def __int__(self) -> int:
        if self.kind is OptionType.SPIN:
            return _parse_int_prefix(self.value)
        if self.kind is OptionType.CHECK:
            return int(self.value == "true")
        raise TypeError(f"a {self.kind.value} option has no integer value")

    def __str__(self) -> str:
        """The current value as text."""
        return self.value

    def matches(self, text: str) -> bool:
        """Case-insensitive comparison of a combo option's current value."""
        if self.kind is not OptionType.COMBO:
            raise TypeError(f"a {self.kind.value} option cannot be matched")
        return self.value.lower() == text.lower()


class OptionsMap:
    """Options keyed by case-insensitive name, rendered in registration order."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[str, Option]] = {}

    def add(self, name: str, option: Option) -> Option:
        """Register ``option`` under ``name``, replacing any option of that name."""
        key = name.lower()
        existing = self._store.get(key)
        stored_name = existing[0] if existing is not None else name
        option._order = next(_insert_order)
        self._store[key] = (stored_name, option)
        return option

    def setoption(self, command: str) -> bool:
        """Apply the arguments of a ``setoption`` command: ``name <name> value <value>``."""
        tokens = iter(command.split())
        next(tokens, None)  # the "name" keyword
        name_parts = []
        for token in tokens:
            if token == "value":
                break
            name_parts.append(token)
        name = " ".join(name_parts)
        value = " ".join(tokens)

        entry = self._store.get(name.lower())
        if entry is None:
            raise UnknownOptionError(name)
        return entry[1].set(value)

    def __getitem__(self, name: str) -> Option:
        entry = self._store.get(name.lower())
        if entry is None:
            raise KeyError(name)
        return entry[1]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._store

    def __len__(self) -> int:
        return len(self._store)

    def render(self) -> str:
        """The option lines sent in reply to the ``uci`` command."""
        parts = []
        for name, option in sorted(self._store.values(), key=lambda e: e[1]._order):
            line = f"\noption name {name} type {option.kind.value}"
            if option.kind in (OptionType.STRING, OptionType.CHECK, OptionType.COMBO):
                line += f" default {option.default}"
            elif option.kind is OptionType.SPIN:
                default = int(_parse_float_prefix(option.default))
                line += f" default {default} min {option.minimum} max {option.maximum}"
            parts.append(line)
        return "".join(parts)