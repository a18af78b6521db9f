r"""
clitree single-level command-line parser.

Overview
- Commandline(flags, commands, skip_flag_parsing=False) parses the tokens that
  belong to one level of the command tree:
  • binds flag values (through Flag.set_value),
  • collects positional arguments in order,
  • stops at the first candidate token naming a child command and keeps the
    rest of the tokens, verbatim, for that child.

Grammar
- "-name", "--name": flag token (one or two dashes are stripped).
- "-name=value", "--name=value": inline value (split on the first "=").
- "-name value": a non-bool flag consumes the next token, whatever it looks like.
- bool flags never consume the next token; bare means "true", "=text" is parsed.
- "-" alone is positional; "--" alone ends flag scanning (the rest is positional).
- Lookups are exact: no prefixes, no abbreviations, first declared match wins.

Results (attributes, filled by parse())
- args: positional arguments.
- command / alias: matched child command and the token that named it (or None).
- tail: tokens after the matched command name.
- rest: tokens left unread when parse() raised (empty otherwise).

Errors (raised by parse(), parsing stops at the first one)
- MalformedTokenError: "--=x" and friends (no flag name), "---x" (three dashes).
- UnknownFlagError: no flag declares the name.
- MissingValueError: non-bool flag at the end of the tokens, without noopt.
- InvalidValueError: raised by the flag's adapter (see Flag.set_value).

Partial results stay available after an error (args collected so far), and
rest holds the tokens left unread, starting with the one that failed.
"""
import logging
from collections import deque

from .faults import *

logger = logging.getLogger(__name__)


def lookup(nodes, name, /):
    """
    first flag or command (in declaration order) declaring name, else None.
    """
    for node in nodes:
        if name in node.names:
            return node
    return None


class Commandline:
    """
    Parser for one level of the command tree (see module docstring).
    """

    def __init__(self, flags=(), commands=(), /, *, skip_flag_parsing=False):
        self.flags = tuple(flags)
        self.commands = tuple(commands)
        self.skip_flag_parsing = bool(skip_flag_parsing)
        self.args = []
        self.command = None
        self.alias = None
        self.tail = []
        self.rest = []

    def parse(self, tokens, /):
        """
        parse tokens for this level and return self.

        contract
        - every call starts from empty results.
        - with skip_flag_parsing, every token is positional: no flag or command lookup.
        - the first non-flag token is tried against the command set; a match stops
          scanning and the remaining tokens become the tail.
        """
        self.args, self.command, self.alias, self.tail, self.rest = [], None, None, [], []
        tokens = deque(tokens)

        if self.skip_flag_parsing:
            self.args.extend(tokens)
            return self

        candidate = True
        while tokens:
            token = tokens.popleft()

            if token == "--":
                self.args.extend(tokens)
                break

            if token.startswith("-") and token != "-":
                try:
                    self._parse_flag(token, tokens)
                except CommandException:
                    self.rest = [token, *tokens]
                    raise
                continue

            if candidate and self.commands:
                if (command := lookup(self.commands, token)) is not None:
                    self.command, self.alias, self.tail = command, token, list(tokens)
                    logger.debug("matched command %r, handing over %r", token, self.tail)
                    break
            candidate = False
            self.args.append(token)

        logger.debug("parsed arguments %r", self.args)
        return self

    def _parse_flag(self, token, tokens):
        """
        resolve one flag token and assign its value.

        value sources, in order
        - inline "=value" (bool flags parse it as boolean text),
        - "true" for a bare bool flag,
        - the next token for a bare non-bool flag,
        - the flag's noopt text when there is no next token.
        """
        name, separator, value = token[2 if token.startswith("--") else 1:].partition("=")
        if not name or name.startswith("-"):
            raise MalformedTokenError(
                f"bad flag syntax: {token}",
                code=FaultCode.MALFORMED_TOKEN,
                title="malformed flag",
                token=token,
            )

        if (flag := lookup(self.flags, name)) is None:
            raise UnknownFlagError(
                f"flag provided but not defined: -{name}",
                code=FaultCode.UNKNOWN_FLAG,
                title="unknown flag",
                hint=f"check the spelling of {token!r}",
                token=token,
                flag=name,
            )

        if separator:
            flag.set_value(value)
        elif flag.isbool:
            flag.set_value("true")
        elif tokens:
            flag.set_value(tokens.popleft())
        elif flag.noopt is not None:
            flag.set_value(flag.noopt)
        else:
            raise MissingValueError(
                f"flag needs an argument: -{name}",
                code=FaultCode.MISSING_VALUE,
                title="missing value",
                hint=f"use '-{name} {flag.placeholder}' or '-{name}={flag.placeholder}'",
                token=token,
                flag=name,
            )


__all__ = (
    "Commandline",
    "lookup",
)
