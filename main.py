from arbor import *

__prog__ = "flex"


def _reply(message):
    def action(args):
        return message.format(*args)
    return action


def _repository(verb):
    def action(args):
        path, *rest = args
        scope = " (all)" if {"--all", "-a"} & set(rest) else ""
        return f"{verb} {path}{scope}"
    return action


validate = (
    Command("validate")
    .with_description("check the tracker setup", "Validate the configured email and repositories.")
    .with_subcommand(Command("email").with_short_description("check the configured email").with_action(_reply("email ok")))
    .with_subcommand(Command("repo").with_short_description("check the tracked repositories").with_action(_reply("repositories ok")))
    .with_help("flex")
)

repo = (
    Command("repo")
    .with_description("manage tracked repositories")
    .with_subcommand(
        Command("add")
        .with_short_description("start tracking a repository")
        .with_argument("path", True)
        .with_flag("--all", "-a", "add every repository found below path")
        .with_action(_repository("added"))
        .with_help("flex repo")
    )
    .with_subcommand(
        Command("remove")
        .with_short_description("stop tracking a repository")
        .with_argument("path", True)
        .with_flag("--all", "-a", "remove every repository found below path")
        .with_action(_repository("removed"))
        .with_help("flex repo")
    )
    .with_help("flex")
)

app = (
    Application("flex")
    .with_description("Track your git activity across repositories.")
    .add_commands((
        Command("init").with_short_description("create the tracker configuration").with_action(_reply("init ok")),
        Command("start").with_short_description("start the tracker").with_action(_reply("tracker started")),
        Command("stop").with_short_description("stop the tracker").with_action(_reply("tracker stopped")),
        validate,
        repo,
    ))
    .with_help()
)


if __name__ == '__main__':
    raise SystemExit(invoke(app))
