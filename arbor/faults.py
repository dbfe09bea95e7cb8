"""
Arbor faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing fault.
- CommandException: base type carrying a message plus options; knows how to
  render itself ("Error: <message>", or a rich panel when fancy).
- InvalidCommandError / InvalidArgumentError / MissingSubcommandError /
  InvalidConfigurationError: the dispatch faults. The hierarchy is flat.
- ExecutionError: convenience error for actions that want a plain
  user-facing message. Actions may raise anything; dispatch propagates it unchanged.
- CommandWarning / ShadowedCommandWarning: non-fatal diagnostics, emitted
  through the warnings module.
- trigger(): surface a fault (print in shell mode, raise otherwise).

Integration
- Dispatch raises faults directly; the runner (arbor.invoke) renders them on
  the stderr console and maps them to exit status 1.
- Hosts may define __styles__, __codes__ and __prog__ in __main__ to restyle
  rendered faults, relabel codes, or name the program in panel titles.
"""
import copy
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, pluralize

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the dispatch engine (stable identifiers).

    grouping
    - routing (111 0x): INVALID_COMMAND, MISSING_SUBCOMMAND
    - positionals (111 2x): INVALID_ARGUMENT
    - delegated (111 3x): DELEGATED_ERROR (raised by actions)
    - configuration (111 5x): INVALID_CONFIGURATION
    - warnings (121 xx): SHADOWED_COMMAND
    """
    # --- routing errors ---
    INVALID_COMMAND       = 11101
    MISSING_SUBCOMMAND    = 11102

    # --- positional errors ---
    INVALID_ARGUMENT      = 11121

    # --- delegated errors ---
    DELEGATED_ERROR       = 11131

    # --- configuration errors ---
    INVALID_CONFIGURATION = 11151

    # --- warnings ---
    SHADOWED_COMMAND      = 12101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _styles(defaults):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


class CommandException(Exception):
    """
    Base class of every fault raised by dispatch.

    - message: the user-facing text; str(exception) returns it.
    - options: read-only rendering options (colorful, fancy, prog, ...) merged
      in with copy.replace(exception, **options).
    """
    code = FaultCode.DELEGATED_ERROR
    title = "error"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message if message is not Unset else "")
        self.message = message if message is not Unset else ""
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message

    def __rich__(self):
        styles = _styles({
            "error-label": "bold #FF4DA6",  # friendly pinky label
            "error-message": "#C8C8D0",  # soft light gray message
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
        })
        colorful = self.options.get("colorful", False)

        def styler(style):
            return styles[style] if colorful else ""

        message = Text.assemble(Text("Error:", styler("error-label")), " ", Text(self.message, styler("error-message")))

        if not self.options.get("fancy", False):
            return message

        prog = getattr(__import__("__main__"), "__prog__", self.options.get("prog", ""))
        header = Text.assemble(
            "[ ",
            Text(str(prog), styler("prog-name")),
            " — " if prog else "",
            Text(self.code.normalize(), styler("code")),
            " | ",
            self.title.title(),
            " ]",
        )
        return Panel(Group(message), title=header, title_align="left")

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        # Subclass constructors take payloads, not the message, so rebuild from state.
        other = type(self).__new__(type(self), *self.args)
        other.__dict__.update(self.__dict__)
        other.options = MappingProxyType({**self.options, **overrides})
        return other


class InvalidCommandError(CommandException):
    """
    A token matched no command or subcommand at the current level of the tree.
    """
    code = FaultCode.INVALID_COMMAND
    title = "invalid command"

    def __init__(self, token, /, **options):
        super().__init__(f"Unknown Command Provided: {token}", **options)
        self.token = token


class InvalidArgumentError(CommandException):
    """
    Fewer positional tokens were given than the command's required count.
    """
    code = FaultCode.INVALID_ARGUMENT
    title = "invalid argument"

    def __init__(self, command, /, expected, got, **options):
        super().__init__(
            f"Command '{command}' expects at least {expected} {pluralize("argument", expected)}, got {got}",
            **options,
        )
        self.command = command
        self.expected = expected
        self.got = got


class MissingSubcommandError(CommandException):
    """
    A command with subcommands, no action and no help child received no tokens.
    """
    code = FaultCode.MISSING_SUBCOMMAND
    title = "missing subcommand"

    def __init__(self, name, /, **options):
        super().__init__(f"Command '{name}' requires a subcommand", **options)
        self.name = name


class InvalidConfigurationError(CommandException):
    """
    The tree was built in a way that leaves a request with nothing to run
    (e.g. application help requested but never added).
    """
    code = FaultCode.INVALID_CONFIGURATION
    title = "invalid configuration"


class ExecutionError(CommandException):
    """
    Raised by actions to report a user-facing failure.
    """
    code = FaultCode.DELEGATED_ERROR
    title = "execution error"


class CommandWarning(Warning):
    """
    Base class of non-fatal diagnostics raised while building a tree.
    """
    code = FaultCode.SHADOWED_COMMAND

    def __init__(self, message, /):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class ShadowedCommandWarning(CommandWarning):
    """
    A sibling with the same name already exists; dispatch will never reach the new one.
    """

    def __init__(self, parent, name, /):
        super().__init__(f"'{parent}' already has a command named '{name}', the later one is unreachable")
        self.parent = parent
        self.name = name


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via copy.replace(fault, **options).
    - in shell mode the fault is printed on the stderr console; otherwise it is raised.
    - warnings are always emitted through the warnings module.
    """
    if isinstance(fault, Warning):
        return warnings.warn(fault, stacklevel=3)
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "CommandException",
    "InvalidCommandError",
    "InvalidArgumentError",
    "MissingSubcommandError",
    "InvalidConfigurationError",
    "ExecutionError",
    "CommandWarning",
    "ShadowedCommandWarning",
    "trigger",
)
