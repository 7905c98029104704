"""Compilation and run options, and their command-line spellings."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Union


class OptLevel(Enum):
    """How strongly an optional pass is applied."""

    DISABLED = "disabled"
    ENABLED = "enabled"
    ALT = "alt"

    def enabled(self) -> bool:
        """True unless the pass is disabled."""
        return self is not OptLevel.DISABLED

    def is_extra(self) -> bool:
        """True only for the full version of the pass."""
        return self is OptLevel.ENABLED


class AdtEncoding(Enum):
    """Encoding used for constructors and matches."""

    SCOTT = "Scott"
    NUM_SCOTT = "NumScott"

    def __str__(self) -> str:
        return self.value


_STRICT_WARNINGS = (
    (
        "float_combinators",
        "Warning: Running in strict mode without enabling the float_combinators pass "
        "can lead to some functions expanding infinitely.",
    ),
    (
        "linearize_matches",
        "Warning: Running in strict mode without enabling the linearize_matches pass "
        "can lead to some functions expanding infinitely.",
    ),
)


@dataclass(frozen=True)
class CompileOpts:
    """Which compilation passes run, and how data types are encoded.

    The defaults enable eta reduction, match linearization and combinator
    floating, with the NumScott encoding.
    """

    eta: bool = True
    prune: bool = False
    linearize_matches: OptLevel = OptLevel.ENABLED
    float_combinators: bool = True
    merge: bool = False
    inline: bool = False
    check_net_size: bool = False
    adt_encoding: AdtEncoding = AdtEncoding.NUM_SCOTT

    def set_all(self) -> "CompileOpts":
        """A copy with every optimizing pass turned on."""
        return dataclasses.replace(
            self,
            eta=True,
            prune=True,
            float_combinators=True,
            merge=True,
            inline=True,
            linearize_matches=OptLevel.ENABLED,
        )

    def set_no_all(self) -> "CompileOpts":
        """A copy with every optimizing pass turned off."""
        return dataclasses.replace(
            self,
            eta=False,
            prune=False,
            linearize_matches=OptLevel.DISABLED,
            float_combinators=False,
            merge=False,
            inline=False,
        )

    def check_for_strict(self) -> None:
        """Print a warning for each pass strict mode should not run without."""
        if not self.float_combinators:
            print(_STRICT_WARNINGS[0][1])
        if not self.linearize_matches.enabled():
            print(_STRICT_WARNINGS[1][1])


@dataclass(frozen=True)
class RunOpts:
    """Options for reading back and showing the result of a run."""

    linear_readback: bool = False
    pretty: bool = False


class OptArg(Enum):
    """A value of the '-O' command-line option."""

    ALL = "all"
    NO_ALL = "no-all"
    ETA = "eta"
    NO_ETA = "no-eta"
    PRUNE = "prune"
    NO_PRUNE = "no-prune"
    LINEARIZE_MATCHES = "linearize-matches"
    LINEARIZE_MATCHES_ALT = "linearize-matches-alt"
    NO_LINEARIZE_MATCHES = "no-linearize-matches"
    FLOAT_COMBINATORS = "float-combinators"
    NO_FLOAT_COMBINATORS = "no-float-combinators"
    MERGE = "merge"
    NO_MERGE = "no-merge"
    INLINE = "inline"
    NO_INLINE = "no-inline"
    CHECK_NET_SIZE = "check-net-size"
    NO_CHECK_NET_SIZE = "no-check-net-size"
    ADT_SCOTT = "adt-scott"
    ADT_NUM_SCOTT = "adt-num-scott"


class WarningArg(Enum):
    """A value of the '-W', '-D' and '-A' command-line options."""

    ALL = "all"
    IRREFUTABLE_MATCH = "irrefutable-match"
    REDUNDANT_MATCH = "redundant-match"
    UNREACHABLE_MATCH = "unreachable-match"
    UNUSED_DEFINITION = "unused-definition"
    REPEATED_BIND = "repeated-bind"
    RECURSION_CYCLE = "recursion-cycle"


_SIMPLE_ARGS = {
    OptArg.ETA: {"eta": True},
    OptArg.NO_ETA: {"eta": False},
    OptArg.PRUNE: {"prune": True},
    OptArg.NO_PRUNE: {"prune": False},
    OptArg.FLOAT_COMBINATORS: {"float_combinators": True},
    OptArg.NO_FLOAT_COMBINATORS: {"float_combinators": False},
    OptArg.MERGE: {"merge": True},
    OptArg.NO_MERGE: {"merge": False},
    OptArg.INLINE: {"inline": True},
    OptArg.NO_INLINE: {"inline": False},
    OptArg.CHECK_NET_SIZE: {"check_net_size": True},
    OptArg.NO_CHECK_NET_SIZE: {"check_net_size": False},
    OptArg.LINEARIZE_MATCHES: {"linearize_matches": OptLevel.ENABLED},
    OptArg.LINEARIZE_MATCHES_ALT: {"linearize_matches": OptLevel.ALT},
    OptArg.NO_LINEARIZE_MATCHES: {"linearize_matches": OptLevel.DISABLED},
    OptArg.ADT_SCOTT: {"adt_encoding": AdtEncoding.SCOTT},
    OptArg.ADT_NUM_SCOTT: {"adt_encoding": AdtEncoding.NUM_SCOTT},
}


def compile_opts_from_cli(args: Iterable[Union[OptArg, str]]) -> CompileOpts:
    """Apply the '-O' values in order to the default options.

    Values may be given as OptArg members or by their command-line names;
    an unknown name raises ValueError.
    """
    opts = CompileOpts()
    for arg in args:
        arg = OptArg(arg)
        if arg is OptArg.ALL:
            opts = opts.set_all()
        elif arg is OptArg.NO_ALL:
            opts = opts.set_no_all()
        else:
            opts = dataclasses.replace(opts, **_SIMPLE_ARGS[arg])
    return opts