"""
clitree execution context (one node per resolved level of the command tree).

A Context is built by the resolution driver after the level's tokens were parsed:
- name: composed name ("app", "app serve", "app serve now").
- app: the App being run.
- command: the matched Command (None at the root).
- flags / commands: what this level declares (implicit help/version included).
- args: positional arguments left after parsing at this level.
- parent: the previous level (None at the root).
- faults: parse and environment faults reported at this level.

Flag accessors look at this level first, then walk up the parents, so an action
of "app serve" can read the root's "--verbose".
"""
from .utils import *


class Context:
    """
    resolved state of one level, handed to actions and collaborators.
    """

    def __init__(self, name, app, command=None, flags=(), commands=(), args=(), parent=None, /, *, faults=()):
        self._name = name
        self._app = app
        self._command = command
        self._flags = tuple(flags)
        self._commands = tuple(commands)
        self._args = tuple(args)
        self._parent = parent
        self._faults = list(faults)

    name = mirror("name")
    app = mirror("app")
    command = mirror("command")
    flags = mirror("flags")
    commands = mirror("commands")
    args = mirror("args")
    parent = mirror("parent")
    faults = mirror("faults")

    @property
    def nargs(self):
        return len(self._args)

    @property
    def root(self):
        """
        Return the topmost context (the application level).
        """
        child, parent = self, self._parent
        while parent:
            child, parent = parent, parent._parent
        return child

    @property
    def global_context(self):
        return self.root

    @property
    def path(self):
        """
        Return the contexts from the root to this one, as a tuple.
        """
        path = [context := self]
        while context._parent:
            path.append(context := context._parent)
        return tuple(reversed(path))

    def arg(self, index, default=None, /):
        """
        positional argument at index, or default when there is none.
        """
        try:
            return self._args[index]
        except IndexError:
            return default

    def lookup(self, name, /):
        """
        flag declaring name at this level, then at the parent levels (None if absent).
        """
        context = self
        while context:
            for flag in context._flags:
                if name in flag.names:
                    return flag
            context = context._parent
        return None

    def _flag(self, name):
        if (flag := self.lookup(name)) is None:
            raise KeyError(f"no such flag: {name!r}")
        return flag

    def value(self, name, /):
        """
        current destination value of the named flag.

        raises
        - KeyError: no flag of that name is visible from this level.
        """
        return self._flag(name).value

    def string(self, name, /):
        """
        text rendering of the named flag's destination.
        """
        return self._flag(name).get_value()

    def isset(self, name, /):
        """
        True when the named flag was given on the command line.
        """
        return self._flag(name).visited

    def report(self, fault, /):
        self._faults.append(fault)

    def show_help(self):
        """
        display help for this level (the command's own renderer wins).
        """
        show_help = getattr(self._command, "show_help", None) or self._app.show_help
        show_help(self)

    def show_error(self, fault, /):
        """
        hand a fault to the application's error collaborator.
        """
        self._app.show_error(self, fault)

    def __bool__(self):
        return True

    def __repr__(self):
        return f"context(name={self._name!r}, args={self._args!r})"


__all__ = (
    "Context",
)
