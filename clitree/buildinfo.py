"""
clitree build information (shown by the version renderer).

parse_build_info() reads the one-line form build scripts usually inject:

    time:"Sat May 13 19:53:08 UTC 2017" branch:master commit:320279c patches:1234 by:ci

Keys: time, branch, commit, patches, by. Values may be double-quoted (shell
rules). Unknown keys and tokens without a colon are ignored.
"""
import shlex
from typing import NamedTuple


class BuildInfo(NamedTuple):
    timestamp: str = ""
    git_branch: str = ""
    git_commit: str = ""
    git_rev_count: str = ""
    built_by: str = ""


_FIELDS = {
    "time": "timestamp",
    "branch": "git_branch",
    "commit": "git_commit",
    "patches": "git_rev_count",
    "by": "built_by",
}


def parse_build_info(text, /):
    """
    Parse "key:value" pairs into a BuildInfo.

    Raises
    - TypeError: text is not a string.
    - ValueError: unbalanced quotes.
    """
    if not isinstance(text, str):
        raise TypeError("parse_build_info() argument must be a string")

    fields = {}
    for token in shlex.split(text):
        key, separator, value = token.partition(":")
        if separator and key in _FIELDS:
            fields[_FIELDS[key]] = value
    return BuildInfo(**fields)


__all__ = (
    "BuildInfo",
    "parse_build_info",
)
