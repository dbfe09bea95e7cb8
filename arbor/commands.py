"""
Arbor command layer: build, compose, and run command trees.

What this module provides
- Command: one node of the dispatch tree. A node is either *bare* (only a
  name) or *full* (descriptions, positional arguments, flags, an optional
  action and subcommands). Every builder promotes a bare node to a full one;
  both shapes behave the same way until configured.
- Application: the root container holding the program name, a description
  and the top-level commands.
- invoke(app, prompt): convenience runner that collects tokens, dispatches,
  prints the result on stdout or the fault on stderr, and returns an exit status.

Core ideas
- Builders produce the next builder: every with_*/add_* call returns a new
  object and leaves the receiver untouched, so a built tree is read-only.
- Actions are opaque callables: action(args) -> str. They never take part in
  equality, and copies drop them (copy.copy, copy.deepcopy, clone()).
- with_help() snapshots the node at call time. Children, arguments or flags
  added afterwards do not show up in that help text.
- Dispatch is a depth-first walk with no backtracking: first matching child
  by declaration order wins, and a matching child beats the node's own action.

Quick start
    from arbor import Application, Command, invoke

    repo = (
        Command("repo")
        .with_description("manage tracked repositories")
        .with_subcommand(
            Command("add")
            .with_argument("path", required=True)
            .with_flag("--all", "-a", "add every repository below path")
            .with_action(lambda args: f"added {args[0]}")
        )
        .with_help()
    )
    app = Application("flex").add_command(repo).with_help()

    if __name__ == "__main__":
        raise SystemExit(invoke(app))

See also
- arbor.arguments for PositionalArgument and Flag.
- arbor.faults for fault codes and rendering behavior.
"""
import copy
import functools
import operator
import re
import shlex
import sys
from collections.abc import Iterable
from typing import NamedTuple

from rich.console import Console

from .arguments import PositionalArgument, Flag
from .faults import *
from .utils import *

# Fixed width of the name column in generated help listings.
COLUMN_WIDTH = 12

DEFAULT_MESSAGE = (
    "Command '{name}' called (default). Use action() to customize or help() to add a help subcommand."
)


class CommandType(type):
    """
    Metaclass shared by Command and Application.

    Responsibilities
    - Derive __typename__ from the class name (camel-case split with hyphens)
      for messages and reprs.
    - Expose every name in __introspectable__ as a read-only property via mirror().
    - Provide a compact, stable __repr__ built on __rich_repr__, and a default
      __rich_repr__ over __introspectable__ when the class defines none.
    """
    __introspectable__ = ()

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
            """
            Return a concise, stable representation with key metadata.

            Example
            - command(name='init', short_description='start tracking', ...)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        if "__rich_repr__" not in namespace:
            @rename("__rich_repr__")
            def __rich_repr__(self):
                for name in type(self).__introspectable__:
                    yield name, getattr(self, name)
            self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_name(cls, object, /, *, word=True):
    if not isinstance(object, str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    if not object.strip() or word and any(character.isspace() for character in object):
        raise ValueError(f"{cls.__typename__} 'name' must be a non-empty word, got {object!r}")
    return object


def _sanitize_text(cls, field, object, /):
    if object is not None and not isinstance(object, str):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    return object


def _sanitize_items(cls, field, object, kind, /):
    if isinstance(object, str) or not isinstance(object, Iterable):
        raise TypeError(f"{cls.__typename__} {field!r} must be an iterable of {kind.__typename__}s")
    items = tuple(object)
    if not all(isinstance(item, kind) for item in items):
        raise TypeError(f"{cls.__typename__} {field!r} must be an iterable of {kind.__typename__}s")
    return items


def _sanitize_tokens(object, /):
    """
    Normalize dispatch input into a tuple of strings, compared exactly (no trimming).
    """
    if isinstance(object, str) or not isinstance(object, Iterable):
        raise TypeError("run() argument must be an iterable of strings")
    tokens = tuple(object)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("run() argument must be an iterable of strings")
    return tokens


def _column(name, text):
    return f"    {name:<{COLUMN_WIDTH}} {text or ""}".rstrip()


def _render_command_help(prog, name, short_description, subcommands, arguments, flags):
    """
    Render the help text of a command from a snapshot of its fields.

    Layout
    - usage line, then the short description when non-empty
    - "Available Subcommands:" with one padded row per child
    - "Arguments:" and "Flags:" only when something was declared
    """
    sections = [f"Usage: {" ".join(filter(None, (prog, name)))} <subcommand> [<args>]"]
    if short_description:
        sections.append(short_description)

    sections.append("\n".join((
        "Available Subcommands:",
        *(_column(child.name, child.short_description) for child in subcommands),
    )))

    if arguments:
        sections.append("\n".join((
            "Arguments:",
            *(_column(argument.name, "(required)" if argument.required else "(optional)") for argument in arguments),
        )))

    if flags:
        sections.append("\n".join((
            "Flags:",
            *(_column(", ".join(flag.names), flag.description) for flag in flags),
        )))

    return "\n\n".join(sections).strip()


def _render_application_help(name, description, commands):
    sections = [f"Usage: {name} <command> [<args>]"]
    if description:
        sections.append(description)
    sections.append("\n".join((
        "Available Commands:",
        *(_column(command.name, command.short_description) for command in commands),
    )))
    return "\n\n".join(sections).strip()


def _help_command(text, /):
    """
    Build the synthesized 'help' command whose action returns a pre-rendered text.
    """
    @rename("help")
    def action(args):
        return text

    return Command("help", action=action)


class _Body(NamedTuple):
    """
    Fields of a full command. A bare command has no body and reads _BARE instead.
    """
    short_description: str | None = None
    long_description: str | None = None
    action: object = None
    positional_arguments: tuple = ()
    flags: tuple = ()
    subcommands: tuple = ()


_BARE = _Body()


def _projection(name, /):
    """
    Read-only property reading a field from the body, or its default on a bare command.
    """
    @rename(name)
    def getter(self):
        return getattr(coalesce(self._body, _BARE), name)

    return property(getter)


class Command(metaclass=CommandType):
    """
    Node of the command tree.

    Shapes
    - bare: Command("init"). Only a name; runs to the default message.
    - full: any configuring builder (or constructor keyword) was used.
      The bare and full shapes of an unconfigured node compare equal.

    Fields (read-only)
    - name, short_description, long_description, action,
      positional_arguments, flags, subcommands

    Builders (each returns a new Command)
    - with_description, with_short_description, with_long_description
    - with_argument, with_flag, with_subcommand, with_action, with_help

    Dispatch
    - run(args) walks the tree and returns the resolved action's string.
    """

    name = mirror("name")
    short_description = _projection("short_description")
    long_description = _projection("long_description")
    action = _projection("action")
    positional_arguments = _projection("positional_arguments")
    flags = _projection("flags")
    subcommands = _projection("subcommands")

    __hash__ = None

    def __init__(
            self,
            name,
            /,
            short_description=Unset,
            long_description=Unset,
            positional_arguments=Unset,
            flags=Unset,
            subcommands=Unset,
            *,
            action=Unset
    ):
        """
        Construct a bare command, or a full one when any field is given.

        Parameters
        - name: str
          Token matched exactly during dispatch; non-empty, no whitespace.
        - short_description, long_description: str | None
        - positional_arguments: Iterable[PositionalArgument]
        - flags: Iterable[Flag]
        - subcommands: Iterable[Command]
        - action: Callable[[tuple[str, ...]], str] | None

        Raises
        - TypeError/ValueError on malformed fields.
        """
        cls = type(self)
        self._name = _sanitize_name(cls, name)

        fields = {
            "short_description": short_description,
            "long_description": long_description,
            "action": action,
            "positional_arguments": positional_arguments,
            "flags": flags,
            "subcommands": subcommands,
        }
        if all(object is Unset for object in fields.values()):
            self._body = Unset
            return

        action = coalesce(action)
        if action is not None and not callable(action):
            raise TypeError(f"{cls.__typename__} 'action' must be callable")

        self._body = _Body(
            short_description=_sanitize_text(cls, "short_description", coalesce(short_description)),
            long_description=_sanitize_text(cls, "long_description", coalesce(long_description)),
            action=action,
            positional_arguments=_sanitize_items(cls, "positional_arguments", coalesce(positional_arguments, ()), PositionalArgument),
            flags=_sanitize_items(cls, "flags", coalesce(flags, ()), Flag),
            subcommands=_sanitize_items(cls, "subcommands", coalesce(subcommands, ()), Command),
        )

    @property
    def bare(self):
        """
        True while no configuring builder has been applied.
        """
        return self._body is Unset

    @property
    def required_count(self):
        """
        Number of positional arguments declared as required (duplicates included).
        """
        return sum(argument.required for argument in self.positional_arguments)

    def __rich_repr__(self):
        yield "name", self.name
        if self.bare:
            return
        yield "short_description", self.short_description
        yield "long_description", self.long_description
        yield "positional_arguments", self.positional_arguments
        yield "flags", self.flags
        yield "subcommands", self.subcommands
        # Actions are opaque; show presence only.
        yield "action", "<function>" if self.action is not None else None

    def __eq__(self, other):
        """
        Structural equality ignoring the action.
        """
        if not isinstance(other, Command):
            return NotImplemented
        return (
            self.name == other.name
            and self.short_description == other.short_description
            and self.long_description == other.long_description
            and self.positional_arguments == other.positional_arguments
            and self.flags == other.flags
            and self.subcommands == other.subcommands
        )

    def __replace__(self, /, **changes):
        """
        Return an updated full copy. The action is kept unless replaced.
        """
        if self.bare and not changes:
            return type(self)(self.name)
        return type(self)(self.name, **coalesce(self._body, _BARE)._asdict() | changes)

    def __copy__(self):
        """
        Copy without the action: actions are not duplicable.
        """
        if self.bare:
            return type(self)(self.name)
        return type(self)(self.name, **self._body._asdict() | {"action": None})

    def __deepcopy__(self, memo, /):
        if self.bare:
            return type(self)(self.name)
        return type(self)(self.name, **self._body._asdict() | {
            "action": None,
            "subcommands": tuple(copy.deepcopy(child, memo) for child in self.subcommands),
        })

    def clone(self):
        """
        Deep copy of this node. Every action in the copied subtree is dropped,
        including the ones of generated help commands.
        """
        return copy.deepcopy(self)

    def with_description(self, short, long=None, /):
        return copy.replace(self, short_description=short, long_description=long)

    def with_short_description(self, text, /):
        return copy.replace(self, short_description=text)

    def with_long_description(self, text, /):
        return copy.replace(self, long_description=text)

    def with_argument(self, name, required=False, /):
        """
        Append a positional argument (a PositionalArgument or a name plus required marker).
        """
        argument = name if isinstance(name, PositionalArgument) else PositionalArgument(name, required)
        return copy.replace(self, positional_arguments=(*self.positional_arguments, argument))

    def with_flag(self, flag, short_name=None, description=None, /):
        """
        Append a flag (a Flag, or the fields to build one). Flags are help-only.
        """
        if not isinstance(flag, Flag):
            flag = Flag(flag, short_name, description)
        return copy.replace(self, flags=(*self.flags, flag))

    def with_subcommand(self, command, /):
        """
        Append a child command. A name already taken by a sibling warns: the
        first one keeps winning dispatch.
        """
        if not isinstance(command, Command):
            raise TypeError(f"{type(self).__typename__} subcommand must be a command")
        if self.find(command.name) is not None:
            trigger(ShadowedCommandWarning(self.name, command.name))
        return copy.replace(self, subcommands=(*self.subcommands, command))

    def with_action(self, action, /):
        if not callable(action):
            raise TypeError(f"{type(self).__typename__} 'action' must be callable")
        return copy.replace(self, action=action)

    def with_help(self, prog=None, /):
        """
        Append a 'help' subcommand rendering the node as it is right now.

        Parameters
        - prog: str | None
          Root or parent name shown before this command's name in the usage line.
        """
        text = _render_command_help(
            prog,
            self.name,
            self.short_description,
            self.subcommands,
            self.positional_arguments,
            self.flags,
        )
        return self.with_subcommand(_help_command(text))

    def find(self, name, /):
        """
        Return the first subcommand named `name`, or None.
        """
        for command in self.subcommands:
            if command.name == name:
                return command
        return None

    def run(self, args=(), /):
        """
        Resolve `args` against this node and return the resulting string.

        Order
        1. bare node: run as a node whose only property is the default action.
        2. with an action, fewer tokens than required arguments → InvalidArgumentError
           (checked before any subcommand lookup).
        3. with subcommands:
           - no tokens: the 'help' child runs; without one, MissingSubcommandError
             (even when the node has an action).
           - first child named args[0] runs with args[1:], over the node's action.
           - no match and no action → InvalidCommandError(args[0]).
        4. the action runs with all of `args`; its exceptions propagate unchanged.
        5. no action: the 'help' child runs with `args`, else the default message.
        """
        args = _sanitize_tokens(args)

        if self.bare:
            return type(self)(self.name, action=_default_action(self.name)).run(args)

        action = self.action
        if action is not None and len(args) < self.required_count:
            raise InvalidArgumentError(self.name, self.required_count, len(args))

        if self.subcommands:
            if not args:
                if (help := self.find("help")) is not None:
                    return help.run(())
                raise MissingSubcommandError(self.name)

            head, tail = args[0], args[1:]
            if (child := self.find(head)) is not None:
                return child.run(tail)
            if action is None:
                raise InvalidCommandError(head)

        if action is not None:
            return self._invoke(action, args)

        if (help := self.find("help")) is not None:
            return help.run(args)
        return DEFAULT_MESSAGE.format(name=self.name)

    def _invoke(self, action, args):
        result = action(args)
        if not isinstance(result, str):
            raise TypeError(f"{type(self).__typename__} {self.name!r} action must return a string, not {type(result).__name__}")
        return result


def _default_action(name, /):
    @rename("default")
    def action(args):
        return DEFAULT_MESSAGE.format(name=name)

    return action


class Application(metaclass=CommandType):
    """
    Root of a command tree: program name, description and top-level commands.

    Builders (each returns a new Application)
    - with_description(text), add_command(command), add_commands(commands), with_help()

    Dispatch
    - run(args): empty args or a leading "help" run the 'help' command (an
      InvalidConfigurationError when none was added); otherwise args[0]
      selects a top-level command that runs with args[1:].
    """

    __introspectable__ = (
        "name",
        "description",
        "commands",
    )

    __hash__ = None

    def __init__(self, name, /, description=None, commands=()):
        cls = type(self)
        self._name = _sanitize_name(cls, name, word=False)
        self._description = _sanitize_text(cls, "description", description)
        self._commands = _sanitize_items(cls, "commands", commands, Command)

    def __eq__(self, other):
        if not isinstance(other, Application):
            return NotImplemented
        return (self.name, self.description, self.commands) == (other.name, other.description, other.commands)

    def __replace__(self, /, **changes):
        return type(self)(self.name, **{"description": self.description, "commands": self.commands} | changes)

    def with_description(self, text, /):
        return copy.replace(self, description=text)

    def add_command(self, command, /):
        if not isinstance(command, Command):
            raise TypeError(f"{type(self).__typename__} command must be a command")
        if self.find(command.name) is not None:
            trigger(ShadowedCommandWarning(self.name, command.name))
        return copy.replace(self, commands=(*self.commands, command))

    def add_commands(self, commands, /):
        return functools.reduce(type(self).add_command, commands, self)

    def with_help(self):
        """
        Append a top-level 'help' command listing the commands registered so far.
        """
        return self.add_command(_help_command(_render_application_help(self.name, self.description, self.commands)))

    def find(self, name, /):
        for command in self.commands:
            if command.name == name:
                return command
        return None

    def run(self, args=(), /):
        args = _sanitize_tokens(args)

        if not args or args[0] == "help":
            if (help := self.find("help")) is None:
                raise InvalidConfigurationError("No help command defined")
            return help.run(())

        head, tail = args[0], args[1:]
        if (command := self.find(head)) is None:
            raise InvalidCommandError(head)
        return command.run(tail)


console = Console(emoji=False, highlight=False)


def invoke(object, prompt=Unset, /, *, colorful=False, fancy=False):
    """
    Convenience runner for applications and commands.

    Parameters
    - object: Application | Command
    - prompt:
      • Unset: read sys.argv[1:].
      • str: split with shlex.split.
      • Iterable[str]: items are passed through unchanged.
    - colorful, fancy: rendering options for faults (see arbor.faults).

    Behavior
    - success: the returned string is printed verbatim on stdout; returns 0.
    - any exception from dispatch or from an action: "Error: <message>" is
      printed on stderr; returns 1.

    Raises
    - TypeError: when object cannot be run or prompt has an invalid type.
    """
    if not isinstance(object, Application | Command):
        raise TypeError("invoke() first argument must be an application or a command")

    if prompt is Unset:
        tokens = sys.argv[1:]
    elif isinstance(prompt, str):
        tokens = shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(item, str) for item in tokens):
            raise TypeError("invoke() argument must be a string or an iterable of strings")
    else:
        raise TypeError("invoke() argument must be a string or an iterable of strings")

    options = {"shell": True, "colorful": colorful, "fancy": fancy, "prog": object.name}
    try:
        result = object.run(tokens)
    except CommandException as fault:
        trigger(fault, **options)
        return 1
    except Exception as error:
        # Action-defined errors are reported like faults, under the delegated code.
        trigger(ExecutionError(str(error) or type(error).__name__), **options)
        return 1

    console.print(result, markup=False, soft_wrap=True)
    return 0


__all__ = (
    "Command",
    "Application",
    "invoke",
    "COLUMN_WIDTH",
    "DEFAULT_MESSAGE",
)

del CommandType
