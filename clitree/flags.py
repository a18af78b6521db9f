r"""
clitree flag declarations.

Overview
- Flag: one named option bound to a typed destination.
  • names: comma-joined aliases ("p, port"); the first one is the primary name.
  • type/target: the destination (see clitree.values.adapt()).
  • default: text applied through the adapter when no environment variable matched.
    List kinds may take a tuple of texts, each applied by its own set().
  • noopt: text used when a non-bool flag is the last token and has no value.
  • envvar: comma-joined environment variable names, first existing one wins
    (even when its value is empty).
  • usage/placeholder/hidden: help copy ("value" is the default placeholder).
  • isbool: presence-only flag (bare "-name" means "true"); implied by bool destinations.

Lifecycle
- initialize(): called by the resolution driver before every parse.
  1. resolve the adapter once (DeclarationError when the destination is unsupported),
  2. reset the destination to its construction-time content,
  3. apply the first existing environment variable, else the non-empty default,
  4. clear the visited state.
  A malformed environment value does not abort: the default is applied instead and
  the returned InvalidEnvironmentError is reported by the driver.
- set_value(text): command-line assignment; marks the flag visited.
- get_value(): text rendering of the destination.

Quick example
    >>> port = Flag("p, port", type=int, default="8080", envvar="APP_PORT")
    >>> port.initialize()
    >>> port.value
    8080
    >>> port.set_value("9000"); port.visited
    True
"""
import functools
import logging
import operator
import os
import re
from collections.abc import Iterable

from rich.text import Text

from .faults import *
from .utils import *
from .values import Kind, adapt, iscustom

logger = logging.getLogger(__name__)


class FlagType(type):
    """
    Metaclass giving flags a typename, read-only metadata properties and
    stable __repr__/__rich_repr__ implementations.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_text(cls, metadata, key, /):
    # optional help copy: Unset -> None, non-empty after trimming otherwise
    if not isinstance(text := metadata[key], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} {key!r} must be a string")
    elif isinstance(text, str) and not (text := text.strip()):
        raise ValueError(f"{cls.__typename__} {key!r} cannot be empty")
    metadata[key] = coalesce(text)


def _sanitize_names(cls, metadata, /):
    """
    Validate the comma-joined alias declaration and store it as a tuple.

    Names are trimmed, must be non-empty, must not start with a dash and must not
    contain whitespace or "="; duplicates are rejected.
    """
    if not isinstance(names := metadata["names"], str):
        raise TypeError(f"{cls.__typename__} names must be a comma-separated string")

    sanitized = []
    for name in splitnames(names):
        if not name:
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(r"[^\s=-][^\s=]*", name):
            raise ValueError(f"{cls.__typename__} name {name!r} must not start with '-' nor contain spaces or '='")
        elif name in sanitized:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        sanitized.append(name)
    metadata["names"] = tuple(sanitized)


def _sanitize_value_metadata(cls, metadata, /):
    """
    Validate destination-related metadata (type, default, noopt, envvars).

    Notes
    - The adapter itself is resolved later, by initialize().
    - default may be a string, or an iterable of strings for list kinds.
    - envvars are split on commas; empty segments are dropped.
    """
    if isinstance(type := metadata["type"], str):
        try:
            metadata["type"] = Kind(type)
        except ValueError:
            raise DeclarationError(f"{cls.__typename__} type {type!r} is not a known kind") from None

    if not isinstance(default := metadata["default"], str | Unset):
        if not isinstance(default, Iterable) or not all(isinstance(text, str) for text in default):
            raise TypeError(f"{cls.__typename__} 'default' must be a string or an iterable of strings")
        metadata["default"] = tuple(default)

    if not isinstance(metadata["noopt"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'noopt' must be a string")

    if not isinstance(envvars := metadata["envvars"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'envvar' must be a comma-separated string")
    metadata["envvars"] = tuple(filter(None, splitnames(coalesce(envvars, ""))))

    metadata["isbool"] |= (
        metadata["type"] in (bool, Kind.BOOL) or
        isinstance(metadata["target"], bool) or
        bool(getattr(metadata["target"], "isbool", False) if iscustom(metadata["target"]) else False)
    )


class Flag(metaclass=FlagType):
    """
    Named option bound to a typed destination.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes
      mirroring the sanitized metadata.
    - name: primary name; value: current destination value; visited: True once
      set_value() ran during the current parse.
    """

    __introspectable__ = (
        "names",
        "usage",
        "placeholder",
        "default",
        "noopt",
        "envvars",
        "hidden",
        "isbool",
    )
    __displayable__ = (
        "names",
        "default",
        "envvars",
        "isbool",
    )

    def __new__(
            cls,
            names,
            /,
            type=Unset,
            target=Unset,
            *,
            default=Unset,
            noopt=Unset,
            envvar=Unset,
            usage=Unset,
            placeholder=Unset,
            hidden=False,
            isbool=False,
    ):
        """
        Declare a flag.

        Parameters
        - names: str, comma-joined aliases ("v, verbose").
        - type: Unset | Kind | kind name | Python type (bool, int, list[str], ...).
        - target: Unset | initial value | list to append into | custom adapter.
        - default: Unset | str | Iterable[str], applied through the adapter.
        - noopt: Unset | str, value of a trailing non-bool flag given without one.
        - envvar: Unset | str, comma-joined environment variable names.
        - usage: Unset | str, one-line help.
        - placeholder: Unset | str, value label in help (defaults to "value").
        - hidden: bool, omit from help.
        - isbool: bool, presence-only flag.
        """
        metadata = {
            "names": names,
            "type": type,
            "target": target,
            "default": default,
            "noopt": noopt,
            "envvars": envvar,
            "usage": usage,
            "placeholder": placeholder,
            "hidden": bool(hidden),
            "isbool": bool(isbool),
        }
        _sanitize_names(cls, metadata)
        _sanitize_text(cls, metadata, "usage")
        _sanitize_text(cls, metadata, "placeholder")
        _sanitize_value_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._placeholder = self._placeholder or "value"
        self._default = coalesce(self._default)
        self._noopt = coalesce(self._noopt)
        self._adapter = Unset
        self._visited = False
        return self

    @property
    def name(self):
        """
        primary name (first alias).
        """
        return self._names[0]

    @property
    def adapter(self):
        """
        adapter owning the destination, resolved on first access.
        """
        if self._adapter is Unset:
            self._adapter = adapt(self._type, self._target, isbool=self._isbool)
            self._isbool |= bool(getattr(self._adapter, "isbool", False))
        return self._adapter

    @property
    def value(self):
        """
        current destination value (the custom adapter itself for custom adapters).
        """
        getter = getattr(self.adapter, "get", None)
        return getter() if callable(getter) else self.adapter

    @property
    def visited(self):
        return self._visited

    def initialize(self):
        """
        prepare the flag for one parse.

        returns
        - None, or the InvalidEnvironmentError raised by a malformed environment value
          (the caller decides how to report it).

        raises
        - DeclarationError: unsupported destination or malformed default.
        """
        adapter = self.adapter
        if callable(reset := getattr(adapter, "reset", None)):
            reset()

        fault = None
        for envvar in self._envvars:
            if (text := os.environ.get(envvar)) is None:
                continue
            logger.debug("flag %r: using environment variable %s=%r", self.name, envvar, text)
            try:
                adapter.set(text)
            except ValueError as exception:
                fault = InvalidEnvironmentError(
                    f"invalid value {text!r} for environment variable {envvar} (flag -{self.name}): {exception}",
                    code=FaultCode.INVALID_ENVIRONMENT,
                    title="invalid environment",
                    hint=f"fix or unset {envvar}",
                    cause=exception,
                )
                break
            else:
                self._visited = False
                return None

        if callable(reset):
            reset()
        self._apply_default()
        self._visited = False
        return fault

    def _apply_default(self):
        if self._default is None:
            return
        for text in ((self._default,) if isinstance(self._default, str) else self._default):
            if not text:
                continue
            try:
                self.adapter.set(text)
            except ValueError as exception:
                raise DeclarationError(f"{type(self).__typename__} -{self.name} has a malformed default {text!r}: {exception}") from None

    def set_value(self, text, /):
        """
        assign text from the command line and mark the flag visited.

        raises
        - InvalidValueError: the adapter rejected the text.
        """
        self._visited = True
        try:
            self.adapter.set(text)
        except ValueError as exception:
            raise InvalidValueError(
                f"invalid value {text!r} for flag -{self.name}: {exception}",
                code=FaultCode.INVALID_VALUE,
                title="invalid value",
                hint=f"-{self.name} expects a {self.placeholder}",
                cause=exception,
            ) from exception

    def get_value(self):
        return str(self.adapter)

    def __flag__(self):
        """
        Introspection hook: identify this object as a Flag.
        """
        return self


__all__ = (
    "Flag",
)

del FlagType
