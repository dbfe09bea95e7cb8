"""
Arbor argument specifications.

Overview
- PositionalArgument: an unnamed, order-based input of a command. Only its
  `required` marker matters at runtime (arity checking); no type validation.
- Flag: a named switch (--all / -a) with an optional description. Flags are
  declarative metadata rendered by generated help; tokens are never parsed
  into flag values and reach actions verbatim.

Both specs are immutable value objects: equality is structural, they hash,
and copy.replace(spec, **changes) builds an updated copy.

Metadata (sanitized on construction)
- name: non-empty string without whitespace.
- required: coerced to bool.
- Flag.name / Flag.short_name: leading dashes are stripped, so "--all" and
  "all" declare the same flag; short names are a single character.
- Flag.description: trimmed string; a blank one reads as None.

Quick example:
    >>> from arbor.arguments import PositionalArgument, Flag
    >>> PositionalArgument("path", required=True)
    positional-argument(name='path', required=True)
    >>> Flag("--all", "-a", "apply to every repository")
    flag(name='all', short_name='a', description='apply to every repository')
"""
import functools
import operator
import re

from .utils import *


class ArgumentType(type):
    """
    Metaclass giving specs introspectable, read-only fields.

    Responsibilities
    - Expose every name in __introspectable__ as a read-only property via mirror().
    - Provide stable __repr__/__rich_repr__ implementations.
    - Derive __typename__ from the class name (camel-case split with hyphens),
      used in messages and reprs.
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
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        @rename("__eq__")
        def __eq__(self, other):
            if type(other) is not type(self):
                return NotImplemented
            return all(getattr(self, name) == getattr(other, name) for name in type(self).__introspectable__)
        self.__eq__ = __eq__

        @rename("__hash__")
        def __hash__(self):
            return hash((type(self).__typename__, *(getattr(self, name) for name in type(self).__introspectable__)))
        self.__hash__ = __hash__

        @rename("__replace__")
        def __replace__(self, /, **changes):
            unknown = changes.keys() - set(type(self).__introspectable__)
            if unknown:
                raise TypeError(f"{type(self).__typename__} got unexpected field(s) {", ".join(sorted(unknown))}")
            return type(self)(**{name: getattr(self, name) for name in type(self).__introspectable__} | changes)
        self.__replace__ = __replace__

        return self


_NAME = re.compile(r"[^\s-][^\s]*")


def _sanitize_name(cls, field, object, /):
    """
    Validate a name-like field: non-empty, no whitespace, no leading dash after stripping.
    """
    if not isinstance(object, str):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    if not _NAME.fullmatch(object):
        raise ValueError(f"{cls.__typename__} {field!r} must be a non-empty word, got {object!r}")
    return object


def _sanitize_description(cls, field, object, /):
    if object is None:
        return None
    if not isinstance(object, str):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    return object.strip() or None


class PositionalArgument(metaclass=ArgumentType):
    """
    Positional argument declaration: a name shown in help and a required marker
    counted by dispatch before an action runs.
    """

    __introspectable__ = (
        "name",
        "required",
    )

    def __init__(self, name, required=False):
        self._name = _sanitize_name(type(self), "name", name)
        self._required = bool(required)


class Flag(metaclass=ArgumentType):
    """
    Named switch declaration (help-only metadata).

    Parameters
    - name: str
      Long name, with or without leading dashes ("all" or "--all").
    - short_name: str | None
      Single-character alias, with or without a leading dash ("a" or "-a").
    - description: str | None
      One-line help text.
    """

    __introspectable__ = (
        "name",
        "short_name",
        "description",
    )

    def __init__(self, name, short_name=None, description=None):
        if isinstance(name, str):
            name = name.lstrip("-")
        self._name = _sanitize_name(type(self), "name", name)

        if short_name is not None:
            if isinstance(short_name, str):
                short_name = short_name.lstrip("-")
            short_name = _sanitize_name(type(self), "short_name", short_name)
            if len(short_name) != 1:
                raise ValueError(f"{type(self).__typename__} 'short_name' must be a single character, got {short_name!r}")
        self._short_name = short_name

        self._description = _sanitize_description(type(self), "description", description)

    @property
    def names(self):
        """
        Rendered switch names, long form first ("--all", "-a").
        """
        if self.short_name is None:
            return ("--" + self.name,)
        return ("--" + self.name, "-" + self.short_name)


__all__ = (
    "PositionalArgument",
    "Flag",
)
