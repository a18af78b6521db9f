r"""
clitree command layer: declare a command tree and run it.

What this module provides
- Command: addressable sub-command with its own flags, children and action.
- App: root of the tree (a Command plus version, authors, build info, the
  display collaborators and the runtime switches shell/fancy/colorful).
- command(names, ...): decorator turning a function into a Command action.
- invoke(app, prompt): convenience runner (plain callables are wrapped in an App).

Resolution (one pass per tree level, see Command._resolve)
1. initialize every flag (declared + implicit help/version), collecting
   environment faults;
2. parse this level's tokens with Commandline;
3. report faults through the context (softly when help or version was also asked);
4. help requested → show help; version requested (root) → show version;
5. positional arguments but no matched child → not-found callback or
   UnknownCommandError;
6. root only: on_app_initialized (guarded);
7. matched child → recurse with the tail;
8. action → call it (guarded); no action → show help.
run() returns the deepest Context reached.

Guarded callbacks
- An Exception raised by an action (or the init hook), or a CommandException
  returned by it, becomes an ActionFailedError given to App.on_action_panic.
  Without a handler the fault is triggered (raised, or printed with exit 1 in
  shell mode). BaseExceptions (SystemExit, KeyboardInterrupt) pass through.

Implicit flags
- "h, help" on every level unless disable_help; "v, version" on the App unless
  disable_version. Aliases already declared by the user are left out. They are
  built once, when the node is constructed, so repeated runs never duplicate them.

Quick start
    from clitree import App, Flag, command, invoke

    @command("serve, s", flags=[Flag("p, port", type=int, default="8080", envvar="APP_PORT")])
    def serve(context):
        print("serving on", context.value("port"))

    app = App("demo", version="1.0.0", commands=[serve], shell=True)

    if __name__ == "__main__":
        invoke(app)
"""
import copy
import functools
import inspect
import logging
import operator
import os.path
import re
import shlex
import sys
from collections.abc import Iterable

from rich.text import Text

from . import rendering
from .buildinfo import BuildInfo, parse_build_info
from .commandline import Commandline, lookup
from .context import Context
from .faults import *
from .flags import Flag
from .utils import *

logger = logging.getLogger(__name__)


class CommandType(type):
    """
    Metaclass giving commands a typename, read-only metadata properties and
    stable __repr__/__rich_repr__ implementations (see __introspectable__ and
    __displayable__).
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


def _process_names(cls, metadata):
    """
    Validate the comma-joined alias declaration ("serve, s") into a tuple.

    Errors
    - TypeError: names is not a string.
    - ValueError: an empty alias, an alias starting with "-" or holding spaces, duplicates.
    """
    if not isinstance(names := metadata["names"], str):
        raise TypeError(f"{cls.__typename__} names must be a comma-separated string")

    sanitized = []
    for name in splitnames(names):
        if not name:
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(r"[^\s-]\S*", name):
            raise ValueError(f"{cls.__typename__} name {name!r} must not start with '-' nor contain spaces")
        elif name in sanitized:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        sanitized.append(name)
    metadata["names"] = tuple(sanitized)


def _process_strings(cls, metadata, /):
    """
    Normalize scalar string/Text metadata fields (trimmed, non-empty, Unset -> None).
    """
    for name in (
            "usage",
            "usage_text",
            "description",
            "see_also",
            "version",
    ):
        if name not in metadata:
            continue
        if not isinstance(object := metadata[name], str | Text | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        metadata[name] = coalesce(object)


def _process_iterables(cls, metadata, /):
    """
    Normalize iterable-of-string metadata fields into tuples (no duplicates).
    """
    for name in (
            "examples",
            "authors",
    ):
        if name not in metadata:
            continue
        if isinstance(object := metadata[name], str | Text):
            object = (object,)
        if not isinstance(object, Iterable):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of strings")
        seen = set()
        for item in object:
            if not isinstance(item, str | Text):
                raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of strings")
            elif isinstance(item, str) and not item.strip():
                raise ValueError(f"{cls.__typename__} {name!r} must be an iterable of non-empty strings")
            elif str(item) in seen:
                raise ValueError(f"{cls.__typename__} {name!r} cannot contain duplicates")
            seen.add(str(item))
        metadata[name] = tuple(object)


def _process_callbacks(cls, metadata, /):
    """
    Validate callback fields: callable or Unset (-> None).
    """
    for name in (
            "action",
            "on_command_not_found",
            "on_action_panic",
            "on_app_initialized",
            "show_help",
            "show_version",
            "show_error",
    ):
        if name not in metadata:
            continue
        if not callable(object := metadata[name]) and object is not Unset:
            raise TypeError(f"{cls.__typename__} {name!r} must be callable")
        metadata[name] = coalesce(object)


def _process_flags(cls, metadata, /):
    """
    Validate the declared flags: Flag instances, each name used once at this level.
    """
    if not isinstance(flags := metadata["flags"], Iterable):
        raise TypeError(f"{cls.__typename__} 'flags' must be an iterable of flags")

    seen = set()
    for flag in (flags := tuple(flags)):
        if not isinstance(flag, Flag):
            raise TypeError(f"{cls.__typename__} 'flags' must be an iterable of flags")
        for name in flag.names:
            if name in seen:
                raise ValueError(f"{cls.__typename__} flag name {name!r} is already in use")
            seen.add(name)
    metadata["flags"] = flags


def _process_commands(cls, metadata, /):
    """
    Validate the child commands: Command instances (not App), unique aliases among siblings.
    """
    if not isinstance(commands := metadata["commands"], Iterable):
        raise TypeError(f"{cls.__typename__} 'commands' must be an iterable of commands")

    seen = set()
    for command in (commands := tuple(commands)):
        if not isinstance(command, Command) or isinstance(command, App):
            raise TypeError(f"{cls.__typename__} 'commands' must be an iterable of commands")
        for name in command.names:
            if name in seen:
                typeof = "command" if issubclass(cls, App) else "subcommand"
                raise ValueError(f"{cls.__typename__} {typeof} name {name!r} is already in use")
            seen.add(name)
    metadata["commands"] = commands


def _implicit_flags(metadata, /):
    """
    Build the implicit help (and, for an App, version) flags, leaving out aliases
    the user already declared.
    """
    taken = {name for flag in metadata["flags"] for name in flag.names}
    implicit = []
    for names, usage, disabled, hidden in (
            (("h", "help"), "show help", "disable_help", "hidden_help"),
            (("v", "version"), "print version information", "disable_version", "hidden_version"),
    ):
        if disabled not in metadata or metadata[disabled]:
            continue
        if names := [name for name in names if name not in taken]:
            implicit.append(Flag(", ".join(names), type=bool, usage=usage, hidden=metadata[hidden]))
    metadata["implicit"] = tuple(implicit)


def _build(cls, metadata, /):
    self = object.__new__(cls)
    for name, object_ in metadata.items():
        setattr(self, "_" + name, object_)
    return self


_TRUTHY = ("1", "t", "T", "TRUE", "true", "True")


def _requested(flags, name, tokens, commands, /):
    """
    True when the bool flag `name` resolved to true, or (after an aborted parse)
    when it appears among the tokens the parser left unread.
    """
    if (flag := lookup(flags, name)) is None or not flag.isbool:
        return False
    if flag.value is True:
        return True
    for token in tokens:
        if token == "--" or lookup(commands, token) is not None:
            break
        if token.startswith("-") and token != "-":
            key, separator, text = token[2 if token.startswith("--") else 1:].partition("=")
            if key in flag.names:
                return not separator or text in _TRUTHY
    return False


def _guard(context, callback, /):
    """
    call callback(context), turning failures into ActionFailedError.

    returns
    - True when the callback completed, False when a fault was handled.
    """
    try:
        result = callback(context)
    except Exception as exception:
        cause = exception
        message = exception.message if isinstance(exception, CommandException) else f"{type(exception).__name__}: {exception}"
    else:
        if not isinstance(result, CommandException):
            return True
        cause, message = result, result.message

    fault = ActionFailedError(
        message,
        code=FaultCode.ACTION_FAILED,
        title="action failed",
        hint=f"'{context.name}' did not complete",
        cause=cause,
    )
    logger.debug("%s failed: %r", context.name, cause)
    if (handler := context.app.on_action_panic) is not None:
        handler(context, fault)
    else:
        trigger(fault, **context.app.runtime)
    return False


class Command(metaclass=CommandType):
    """
    Named sub-command of an App.

    Properties
    - The names listed in __introspectable__ are read-only mirrors of the
      sanitized metadata (collections are returned as tuples).
    - name: primary alias.
    """

    __introspectable__ = (
        "names",
        "usage",
        "usage_text",
        "description",
        "examples",
        "see_also",
        "flags",
        "implicit",
        "commands",
        "action",
        "on_command_not_found",
        "show_help",
        "skip_flag_parsing",
        "hidden",
        "hidden_help",
        "disable_help",
    )
    __displayable__ = (
        "names",
        "usage",
        "flags",
        "commands",
        "skip_flag_parsing",
        "hidden",
    )

    @property
    def name(self):
        return self._names[0]

    def __new__(
            cls,
            names,
            /,
            *,
            usage=Unset,
            usage_text=Unset,
            description=Unset,
            examples=(),
            see_also=Unset,
            flags=(),
            commands=(),
            action=Unset,
            on_command_not_found=Unset,
            show_help=Unset,
            skip_flag_parsing=False,
            hidden=False,
            hidden_help=False,
            disable_help=False,
    ):
        """
        Declare a command.

        Parameters
        - names: str, comma-joined aliases ("serve, s"); the first is the primary name.
        - usage: short one-line description (listed in the parent's commands table).
        - usage_text: replaces the synthesized usage line in help.
        - description: long description; defaults to the action's docstring.
        - examples: Iterable[str], one example per entry.
        - see_also: str, footer of the help page.
        - flags: Iterable[Flag], flags of this level only.
        - commands: Iterable[Command], children.
        - action: callable(context), run when no child matched.
        - on_command_not_found: callable(context, name).
        - show_help: callable(context), overrides the App's help renderer here.
        - skip_flag_parsing: every token is positional at this level.
        - hidden: omit from the parent's help; hidden_help: hide the implicit help flag.
        - disable_help: do not add the implicit help flag.

        Raises
        - TypeError/ValueError on invalid metadata, duplicate flag names or
          duplicate child aliases.
        """
        if inspect.isfunction(action) or inspect.ismethod(action):
            description = coalesce(description, inspect.getdoc(action) or Unset)

        metadata = {
            "names": names,
            "usage": usage,
            "usage_text": usage_text,
            "description": description,
            "examples": examples,
            "see_also": see_also,
            "flags": flags,
            "commands": commands,
            "action": action,
            "on_command_not_found": on_command_not_found,
            "show_help": show_help,
            "skip_flag_parsing": bool(skip_flag_parsing),
            "hidden": bool(hidden),
            "hidden_help": bool(hidden_help),
            "disable_help": bool(disable_help),
        }
        _process_names(cls, metadata)
        _process_strings(cls, metadata)
        _process_iterables(cls, metadata)
        _process_callbacks(cls, metadata)
        _process_flags(cls, metadata)
        _process_commands(cls, metadata)
        _implicit_flags(metadata)
        return _build(cls, metadata)

    def run(self, parent, tokens=(), alias=Unset, /):
        """
        Run this command below the parent context.

        Parameters
        - parent: Context of the level that matched this command.
        - tokens: Iterable[str], the tokens following the command name.
        - alias: the alias the user typed (defaults to the primary name).

        Returns
        - Context: the deepest context reached.
        """
        if not isinstance(parent, Context):
            raise TypeError(f"{type(self).__typename__} run() first argument must be a context")
        alias = coalesce(alias, self.name)
        return self._resolve(parent.app, f"{parent.name} {alias}", parent, list(tokens))

    def _resolve(self, app, name, parent, tokens, /):
        """
        resolve one tree level (see module docstring for the steps).
        """
        root = parent is None
        flags = self._flags + self._implicit
        faults = [fault for flag in flags if (fault := flag.initialize()) is not None]

        commandline = Commandline(flags, self._commands, skip_flag_parsing=self._skip_flag_parsing)
        try:
            commandline.parse(tokens)
        except CommandException as fault:
            faults.append(fault)

        context = Context(name, app, None if root else self, flags, self._commands, commandline.args, parent)
        logger.debug("resolved %r: args=%r command=%r", name, commandline.args, commandline.alias)

        help = _requested(flags, "help", commandline.rest, self._commands)
        version = root and _requested(flags, "version", commandline.rest, self._commands)

        for fault in faults:
            if help or version:
                fault = copy.replace(fault, soft=True)
            context.report(fault)
            context.show_error(fault)

        if help:
            context.show_help()
            return context

        if version:
            app.show_version(app)
            return context

        if commandline.command is None and self._commands and commandline.args:
            command = commandline.args[0]
            if self._on_command_not_found is not None:
                self._on_command_not_found(context, command)
            else:
                fault = (UnknownCommandError if root else UnknownSubcommandError)(
                    f"no such command: {command}",
                    code=FaultCode.UNKNOWN_COMMAND if root else FaultCode.UNKNOWN_SUBCOMMAND,
                    title="unknown command" if root else "unknown subcommand",
                    hint=f"run '{name} --help' to list the available commands",
                )
                context.report(fault)
                context.show_error(fault)
            return context

        if root and app.on_app_initialized is not None:
            if not _guard(context, app.on_app_initialized):
                return context

        if commandline.command is not None:
            return commandline.command.run(context, commandline.tail, commandline.alias)

        if self._action is not None:
            logger.debug("dispatching %r", name)
            _guard(context, self._action)
        else:
            context.show_help()
        return context


class App(Command):
    """
    Root of a command tree.

    Besides the Command fields an App carries the program identity (name,
    version, authors, build info), the display collaborators and the runtime
    switches used when faults are surfaced:
    - shell: print faults on stderr and exit(1) instead of raising.
    - fancy: panel chrome around help, version and faults.
    - colorful: palette styling (overridable with __styles__ in __main__).
    """

    __introspectable__ = Command.__introspectable__ + (
        "version",
        "authors",
        "on_action_panic",
        "on_app_initialized",
        "show_version",
        "show_error",
        "hidden_version",
        "disable_version",
        "shell",
        "fancy",
        "colorful",
    )
    __displayable__ = (
        "name",
        "version",
        "usage",
        "flags",
        "commands",
        "shell",
        "fancy",
        "colorful",
    )

    def __new__(
            cls,
            name=Unset,
            /,
            *,
            version="0.0.0",
            usage="A new cli application",
            usage_text=Unset,
            description=Unset,
            authors=(),
            examples=(),
            see_also=Unset,
            build_info=Unset,
            flags=(),
            commands=(),
            action=Unset,
            on_command_not_found=Unset,
            on_action_panic=Unset,
            on_app_initialized=Unset,
            show_help=Unset,
            show_version=Unset,
            show_error=Unset,
            skip_flag_parsing=False,
            hidden_help=False,
            hidden_version=False,
            disable_help=False,
            disable_version=False,
            shell=False,
            fancy=False,
            colorful=False,
    ):
        """
        Declare an application.

        Parameters (in addition to Command's)
        - name: program name, defaults to the basename of sys.argv[0].
        - version: str shown by the version renderer.
        - authors: Iterable[str].
        - build_info: BuildInfo or its one-line text form (see parse_build_info).
        - on_action_panic: callable(context, fault) receiving ActionFailedError.
        - on_app_initialized: callable(context), run at the root before dispatching.
        - show_help(context) / show_version(app) / show_error(context, fault):
          display collaborators, defaulting to clitree.rendering.
        - hidden_version / disable_version: implicit version flag controls.
        - shell / fancy / colorful: runtime switches (see class docstring).
        """
        name = coalesce(name, os.path.basename(sys.argv[0]) or "app")
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} 'name' cannot be empty")

        if inspect.isfunction(action) or inspect.ismethod(action):
            description = coalesce(description, inspect.getdoc(action) or Unset)

        if isinstance(build_info, str):
            build_info = parse_build_info(build_info)
        elif not isinstance(build_info, BuildInfo | Unset):
            raise TypeError(f"{cls.__typename__} 'build_info' must be a build-info or a string")

        metadata = {
            "names": (name,),
            "version": version,
            "usage": usage,
            "usage_text": usage_text,
            "description": description,
            "authors": authors,
            "examples": examples,
            "see_also": see_also,
            "build_info": coalesce(build_info),
            "flags": flags,
            "commands": commands,
            "action": action,
            "on_command_not_found": on_command_not_found,
            "on_action_panic": on_action_panic,
            "on_app_initialized": on_app_initialized,
            "show_help": coalesce(show_help, rendering.show_help),
            "show_version": coalesce(show_version, rendering.show_version),
            "show_error": coalesce(show_error, rendering.show_error),
            "skip_flag_parsing": bool(skip_flag_parsing),
            "hidden": False,
            "hidden_help": bool(hidden_help),
            "hidden_version": bool(hidden_version),
            "disable_help": bool(disable_help),
            "disable_version": bool(disable_version),
            "shell": bool(shell),
            "fancy": bool(fancy),
            "colorful": bool(colorful),
        }
        _process_strings(cls, metadata)
        _process_iterables(cls, metadata)
        _process_callbacks(cls, metadata)
        _process_flags(cls, metadata)
        _process_commands(cls, metadata)
        _implicit_flags(metadata)
        return _build(cls, metadata)

    @property
    def build_info(self):
        return self._build_info

    @property
    def runtime(self):
        """
        options handed to trigger() when a fault of this app is surfaced.
        """
        return {"tool": self, "shell": self._shell, "fancy": self._fancy, "colorful": self._colorful}

    def run(self, prompt=Unset, /):
        """
        Run the application.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; split with shlex.split.
          • Iterable[str]: pre-tokenized sequence (kept verbatim, "" included).

        Returns
        - Context: the deepest context reached.

        Raises
        - TypeError: prompt is not Unset/str/Iterable[str].
        - DeclarationError: a flag destination or default is unusable.
        - CommandException subclasses: reported faults in non-shell mode.
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("run() argument must be a string or an iterable of strings")
        else:
            raise TypeError("run() argument must be a string or an iterable of strings")

        logger.debug("running %r with %r", self.name, tokens)
        return self._resolve(self, self.name, None, tokens)

    def __invoke__(self, prompt=Unset):
        return self.run(prompt)


def command(names, /, **options):
    """
    Decorator building a Command whose action is the decorated function.

    Usage
        @command("serve, s", usage="start the server", flags=[...])
        def serve(context): ...

    The function's docstring becomes the description unless one is given.
    """
    @rename("command")
    def wrapper(action, /):
        if not callable(action):
            raise TypeError("@command() must be applied to a callable")
        return Command(names, action=action, **options)

    return wrapper


def invoke(object, prompt=Unset, /):
    """
    Convenience runner for apps or plain callables.

    Behavior
    - object implements __invoke__ → object.__invoke__(prompt).
    - object is a plain callable → wrapped as App(action=object), then invoked.

    Returns
    - whatever __invoke__ returns (the deepest Context for an App).
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)

    if callable(object):
        return invoke(App(action=object), prompt)

    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method") from None


__all__ = (
    "Command",
    "App",
    "command",
    "invoke",
)

del CommandType
