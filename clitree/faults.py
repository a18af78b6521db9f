"""
clitree faults (errors raised or reported while declaring, parsing and dispatching).

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing fault.
- DeclarationError: programming errors in the declared command/flag tree. These
  are raised immediately and never routed through the error-display collaborator.
- CommandException: base type for recoverable faults. It carries a message plus
  immutable options and knows how to render itself with rich.
- trigger(): central entry point to surface a fault (respecting shell/soft/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Runtime options understood by the renderers
- tool: the App the fault belongs to (its name heads the message).
- shell: print on stderr and exit instead of raising.
- soft: report without raising or exiting (used when help is also requested).
- fancy / colorful: panel chrome and palette.
- title / code / hint / docs: copy shown to the user.

Integration
- The resolution driver reports parse faults with Context.show_error(fault),
  which delegates to App.show_error (rendering.show_error by default) and
  finally to trigger(fault, **options).
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the library (stable identifiers).

    grouping
    - routing (1110x): UNKNOWN_COMMAND, UNKNOWN_SUBCOMMAND
    - flags (1111x/1112x): MALFORMED_TOKEN, UNKNOWN_FLAG, MISSING_VALUE, INVALID_VALUE
    - actions (1113x): ACTION_FAILED
    - configuration (1115x): INVALID_ENVIRONMENT

    the host application can remap codes to labels with a __codes__ mapping in
    __main__ (see normalize()).
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND     = 11101
    UNKNOWN_SUBCOMMAND  = 11102

    # --- flag errors (11xxx) ---
    MALFORMED_TOKEN     = 11111
    UNKNOWN_FLAG        = 11112
    MISSING_VALUE       = 11117
    INVALID_VALUE       = 11123

    # --- delegated errors (11xxx) ---
    ACTION_FAILED       = 11131

    # --- configuration errors (11xxx) ---
    INVALID_ENVIRONMENT = 11151

    def normalize(self):
        """
        return a host-normalized string for this code.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class DeclarationError(TypeError):
    """
    The declared tree cannot work: unknown destination type, malformed default,
    unusable names. Raised as soon as it is detected; never reported softly.
    """


class CommandException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", False)
        fancy = self.options.get("fancy", False)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        tool = self.options.get("tool")
        prog = text(getattr(main, "__prog__", getattr(tool, "name", "cli")), styler("prog-name"))
        code = self.options.get("code")

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code.normalize() if code else "?", styler("code")),
            " | ",
            text(str(self.options.get("title", "error")).title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))
        if docs := self.options.get("docs"):
            renders.append(text(docs, styler("hint")))

        if fancy:
            return Panel(Group(*renders), title=header, title_align="left", width=console.width - 4)

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            if self.options.get("soft", False):
                return
            raise self from self.options.get("cause")
        console.print(self)
        if self.options.get("soft", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class MalformedTokenError(CommandException): ...
class UnknownFlagError(CommandException): ...
class MissingValueError(CommandException): ...
class InvalidValueError(CommandException): ...
class InvalidEnvironmentError(CommandException): ...
class UnknownCommandError(CommandException): ...
class UnknownSubcommandError(UnknownCommandError): ...
class ActionFailedError(CommandException): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into a copy of the fault via copy.replace(fault, **options).
    - in shell mode the copy is printed on stderr; otherwise it is raised.
    - soft=True reports without raising (non-shell) or exiting (shell).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "DeclarationError",
    "CommandException",
    "MalformedTokenError",
    "UnknownFlagError",
    "MissingValueError",
    "InvalidValueError",
    "InvalidEnvironmentError",
    "UnknownCommandError",
    "UnknownSubcommandError",
    "ActionFailedError",
    "trigger",
    "getdoc",
)
