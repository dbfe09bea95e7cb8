"""
Application behavioral tests (builders, help, top-level dispatch).

Scope
- Validate construction and value-style builders.
- Validate the top-level help command and its snapshot.
- Validate top-level dispatch: empty/"help" tokens, unknown commands,
  delegation into Command.run.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (Application, Command, faults).
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from arbor import (
    COLUMN_WIDTH,
    Application,
    Command,
    InvalidArgumentError,
    InvalidCommandError,
    InvalidConfigurationError,
    ShadowedCommandWarning,
)


class TestApplicationBuilders(TestCase):
    """Construction and builders."""

    def testNewApplication(self):
        app = Application("test cli")
        self.assertEqual(app.name, "test cli")
        self.assertIsNone(app.description)
        self.assertEqual(app.commands, ())
        self.assertEqual(app, Application("test cli"))
        self.assertNotEqual(app, Application("failed cli"))

    def testAddCommandReturnsNewApplication(self):
        app = Application("flex")
        extended = app.add_command(Command("init"))
        self.assertEqual(app.commands, ())
        self.assertEqual(extended.commands, (Command("init"),))

    def testAddCommandsKeepsOrder(self):
        app = (
            Application("flex")
            .add_command(Command("init").with_short_description("command to init cli"))
            .add_commands([Command("another-command"), Command("start")])
        )
        self.assertEqual(app.commands, (
            Command("init", short_description="command to init cli"),
            Command("another-command"),
            Command("start"),
        ))

    def testWithDescription(self):
        self.assertEqual(Application("flex").with_description("tracker").description, "tracker")

    def testAddCommandRejectsNonCommand(self):
        with self.assertRaises(TypeError):
            Application("flex").add_command("init")

    def testShadowedCommandWarns(self):
        app = Application("flex").add_command(Command("init").with_action(lambda args: "first"))
        with self.assertWarns(ShadowedCommandWarning):
            app = app.add_command(Command("init").with_action(lambda args: "second"))
        self.assertEqual(app.run(["init"]), "first")

    def testCommandsAreReadOnly(self):
        app = Application("flex").add_command(Command("init"))
        self.assertIsInstance(app.commands, tuple)
        with self.assertRaises(AttributeError):
            app.commands = ()


class TestApplicationHelp(TestCase):
    """Top-level help command."""

    def testHelpLayout(self):
        app = (
            Application("flex")
            .with_description("Track your git activity.")
            .add_command(Command("init").with_short_description("create the config"))
            .add_command(Command("stop"))
            .with_help()
        )
        self.assertEqual(app.run(["help"]), "\n".join((
            "Usage: flex <command> [<args>]",
            "",
            "Track your git activity.",
            "",
            "Available Commands:",
            "    " + "init".ljust(COLUMN_WIDTH) + " create the config",
            "    stop",
        )))

    def testHelpWithoutDescription(self):
        text = Application("flex").add_command(Command("init")).with_help().run([])
        self.assertTrue(text.startswith("Usage: flex <command> [<args>]\n\nAvailable Commands:"))

    def testHelpIsSnapshot(self):
        app = Application("flex").add_command(Command("init")).with_help().add_command(Command("late"))
        text = app.run([])
        self.assertIn("init", text)
        self.assertNotIn("late", text)
        self.assertEqual(app.commands[-1].name, "late")

    def testHelpAppended(self):
        app = Application("flex").add_command(Command("init")).with_help()
        self.assertEqual([command.name for command in app.commands], ["init", "help"])


class TestApplicationDispatch(TestCase):
    """Top-level dispatch."""

    def testRunsCommandAction(self):
        app = Application("flex").add_command(Command("init").with_action(lambda args: "init ok"))
        self.assertEqual(app.run(["init"]), "init ok")

    def testEmptyAndHelpAreEquivalent(self):
        app = Application("flex").add_command(Command("init")).with_help()
        self.assertEqual(app.run([]), app.run(["help"]))

    def testHelpTokenIgnoresTail(self):
        app = Application("flex").add_command(Command("init")).with_help()
        self.assertEqual(app.run(["help", "init"]), app.run([]))

    def testEmptyWithoutHelpRaises(self):
        app = Application("flex").add_command(Command("test"))
        with self.assertRaises(InvalidConfigurationError) as context:
            app.run([])
        self.assertEqual(str(context.exception), "No help command defined")

    def testHelpTokenWithoutHelpRaises(self):
        with self.assertRaises(InvalidConfigurationError):
            Application("flex").run(["help"])

    def testUnknownCommandRaises(self):
        app = Application("test-app").add_command(Command("test"))
        with self.assertRaises(InvalidCommandError) as context:
            app.run(["not-test", "something"])
        self.assertEqual(context.exception.token, "not-test")
        self.assertEqual(str(context.exception), "Unknown Command Provided: not-test")

    def testDelegatesTailToCommand(self):
        received = []

        def action(args):
            received.append(args)
            return "added"

        app = Application("flex").add_command(
            Command("repo").with_subcommand(Command("add").with_argument("path", True).with_action(action))
        )
        self.assertEqual(app.run(["repo", "add", "/tmp/x"]), "added")
        self.assertEqual(received, [("/tmp/x",)])
        with self.assertRaises(InvalidArgumentError):
            app.run(["repo", "add"])

    def testBareCommandRunsDefault(self):
        app = Application("flex").add_command(Command("start"))
        self.assertIn("'start'", app.run(["start"]))

    def testNestedHelp(self):
        app = Application("flex").add_command(
            Command("validate").with_subcommand(Command("email")).with_help("flex")
        )
        self.assertTrue(app.run(["validate"]).startswith("Usage: flex validate <subcommand> [<args>]"))
        self.assertEqual(app.run(["validate"]), app.run(["validate", "help"]))


if __name__ == "__main__":
    unittest.main()
