"""
Entry point for Xcode external build system targets.

Xcode runs the target's build tool with the build settings exported to the environment. `xcoderun` picks up
`SRCROOT`, `PROJECT_NAME`, `SCRIPT_NAME` and `ACTION` from there and runs `$SRCROOT/$SCRIPT_NAME $ACTION
$PROJECT_NAME` through the shell. Standard output is kept for the build log: our own diagnostics go to stderr, only
the two fixed error lines are printed to stdout.

Optional environment:

* `SENTRY_DSN` reports log records and errors to Sentry
* `XCODERUN_VERBOSE` enables debug logging
* `XCODERUN_NO_SHELL` executes the script with an argument vector instead of a shell command line
"""

import logging
import os

import sentry_sdk
import typer
from sentry_sdk.integrations.logging import SentryLogsHandler

from ._common import InvokerConfig, MissingEnvironmentError
from ._invoke import invoke

SENTRY_DSN = os.environ.get("SENTRY_DSN", None)

MISSING_VARIABLES_MESSAGE = "Error: Missing variables."

LOG_FORMAT = "[%(levelname)s] %(asctime)s | xcoderun %(name)s: %(message)s%(extra_str)s"

app = typer.Typer(add_completion=False)


@app.command()
def main() -> None:
    """
    Run $SRCROOT/$SCRIPT_NAME with $ACTION and $PROJECT_NAME as arguments.
    """
    setup_logs(flag_from_env("XCODERUN_VERBOSE"))
    setup_sentry()

    try:
        config = InvokerConfig.from_env()
    except MissingEnvironmentError as e:
        logging.getLogger(__name__).debug("Missing build environment", extra={"missing": e.missing})
        print(MISSING_VARIABLES_MESSAGE)
        raise typer.Exit(code=1)

    raise typer.Exit(code=invoke(config, use_shell=not flag_from_env("XCODERUN_NO_SHELL")))


def flag_from_env(name: str) -> bool:
    return os.environ.get(name, "") not in ("", "0")


def setup_sentry():
    if not SENTRY_DSN:
        return

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        traces_sample_rate=1.0,
        enable_logs=True,
    )


class AppendExtrasFormatter(logging.Formatter):
    """
    Renders anything passed via `extra=` after the message, e.g. `Running build script {command='...'}`.
    """

    # attributes every LogRecord carries, plus the one we add ourselves
    STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
        "message",
        "asctime",
        "taskName",
        "extra_str",
    }

    def format(self, record: logging.LogRecord):
        extras = {k: v for k, v in vars(record).items() if k not in self.STANDARD_ATTRS}
        record.extra_str = f" {{{' '.join(f'{k}={v!r}' for k, v in extras.items())}}}" if extras else ""
        return super().format(record)


def setup_logs(verbose: bool):
    # StreamHandler writes to stderr, stdout belongs to the build log
    stderr_handler = logging.StreamHandler()
    stderr_handler.setFormatter(AppendExtrasFormatter(fmt=LOG_FORMAT))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[SentryLogsHandler(level=logging.INFO), stderr_handler],
    )
