import errno
import logging
import subprocess
from subprocess import CompletedProcess
from typing import Any, Callable

import sentry_sdk

from xcoderun._common import CommandFailedError, InvokerConfig

logger = logging.getLogger(__name__)

FAILED_COMMAND_MESSAGE = "Error: Failed to run command."

POSIX_SHELL = "/bin/sh"

Runner = Callable[..., CompletedProcess[Any]]


def _run_argv(argv: list[str], runner: Runner) -> CompletedProcess[Any]:
    try:
        return runner(argv)
    except OSError as e:
        if e.errno != errno.ENOEXEC:
            raise
        # executable without a shebang, the shell would run it with sh as well
        logger.debug("Not an executable format, retrying with sh", extra={"script": argv[0]})
        return runner([POSIX_SHELL, *argv])


def run_command(
    config: InvokerConfig,
    use_shell: bool = True,
    runner: Runner | None = None,
) -> CompletedProcess[Any]:
    """
    Runs the build script and blocks until it exits. Standard streams are inherited, so whatever the script prints
    ends up in the build log directly.

    With `use_shell` the composed command line is handed to the system shell as is, which means spaces and
    metacharacters in any of the values are interpreted by the shell. Otherwise the script is executed with an
    argument vector and no shell is involved: empty values are left out and scripts without a shebang are run with
    `/bin/sh`, as the shell would do, but nothing else is split or expanded.

    :param config: the build environment
    :param use_shell: run `config.command_line` through the shell instead of executing `config.argv`
    :param runner: executes the command, defaults to `subprocess.run`
    :return: the completed process if it exited with status 0
    """
    if runner is None:
        runner = subprocess.run

    command = config.command_line
    logger.debug("Running build script", extra={"command": command, "shell": use_shell})
    try:
        if use_shell:
            result = runner(command, shell=True)
        else:
            result = _run_argv(config.argv, runner)
    except OSError as e:
        raise CommandFailedError(command, None, str(e)) from e

    if result.returncode != 0:
        raise CommandFailedError(command, result.returncode)

    return result


def invoke(
    config: InvokerConfig,
    use_shell: bool = True,
    runner: Runner | None = None,
) -> int:
    sentry_sdk.set_tag("xcode.action", config.action)
    sentry_sdk.set_tag("xcode.project", config.project_name)

    try:
        run_command(config, use_shell=use_shell, runner=runner)
    except CommandFailedError as e:
        logger.error(f"Build script failed: {e}", extra={"returncode": e.returncode})
        print(FAILED_COMMAND_MESSAGE)

    # a failing script is reported but does not fail the build phase itself
    return 0
