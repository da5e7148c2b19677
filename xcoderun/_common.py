import logging
import os
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class InvokerError(Exception):
    pass


class MissingEnvironmentError(InvokerError):
    def __init__(self, missing: list[str]):
        super().__init__(f"Missing environment variables: {', '.join(missing)}")
        self.missing = missing


class CommandFailedError(InvokerError):
    def __init__(self, command: str, returncode: int | None, cause: str | None = None):
        if returncode is None:
            msg = f"Failed to spawn `{command}`: {cause}"
        else:
            msg = f"`{command}` exited with status {returncode}"
        super().__init__(msg)
        self.command = command
        self.returncode = returncode
        self.cause = cause


class InvokerConfig(BaseModel):
    """
    The four values an Xcode external build target hands us through the environment. They are read once at the entry
    point and passed around explicitly from there.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    src_root: str = Field(validation_alias="SRCROOT")
    project_name: str = Field(validation_alias="PROJECT_NAME")
    script_name: str = Field(validation_alias="SCRIPT_NAME")
    action: str = Field(validation_alias="ACTION")

    @classmethod
    def env_names(cls) -> list[str]:
        return [str(field.validation_alias) for field in cls.model_fields.values()]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "InvokerConfig":
        """
        Only presence is checked: a variable that is set to the empty string counts as present.
        :param environ: defaults to the process environment
        :return: the populated config
        """
        if environ is None:
            environ = os.environ

        values = {name: environ[name] for name in cls.env_names() if name in environ}
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            missing = [name for name in cls.env_names() if name not in values]
            if not missing:
                raise
            raise MissingEnvironmentError(missing) from e

    @property
    def script_path(self) -> str:
        return f"{self.src_root}/{self.script_name}"

    @property
    def command_line(self) -> str:
        # values are concatenated verbatim, nothing is quoted
        return f"{self.script_path} {self.action} {self.project_name}"

    @property
    def argv(self) -> list[str]:
        # the shell drops empty words from the command line, so do we
        return [self.script_path, *(arg for arg in (self.action, self.project_name) if arg)]
