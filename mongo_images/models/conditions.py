from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field


class StdoutMessage(BaseModel):
    """A message that must appear on standard output"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["stdout_message"] = "stdout_message"
    message: str = Field(..., min_length=1, description="Text to look for")


class StderrMessage(BaseModel):
    """A message that must appear on standard error"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["stderr_message"] = "stderr_message"
    message: str = Field(..., min_length=1, description="Text to look for")


class Duration(BaseModel):
    """A fixed delay"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["duration"] = "duration"
    seconds: float = Field(..., ge=0, description="Seconds to wait")


class ReplicaSetPrimary(BaseModel):
    """
    Poll replSetGetStatus until a member reports PRIMARY.

    Ends as soon as an election has completed; raises if none completes
    within timeout_seconds.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["replica_set_primary"] = "replica_set_primary"
    port: int = Field(default=27017, description="Container port the server listens on")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Give up after this long")
    poll_interval_seconds: float = Field(default=0.5, gt=0, description="Delay between polls")


Condition = Annotated[
    Union[StdoutMessage, StderrMessage, Duration, ReplicaSetPrimary],
    Field(discriminator="kind"),
]


class WaitFor:
    """Factories for readiness conditions"""

    @staticmethod
    def message_on_stdout(message: str) -> StdoutMessage:
        return StdoutMessage(message=message)

    @staticmethod
    def message_on_stderr(message: str) -> StderrMessage:
        return StderrMessage(message=message)

    @staticmethod
    def seconds(seconds: float) -> Duration:
        return Duration(seconds=seconds)

    @staticmethod
    def millis(millis: int) -> Duration:
        return Duration(seconds=millis / 1000)

    @staticmethod
    def replica_set_primary(
        timeout_seconds: float = 30.0,
        poll_interval_seconds: float = 0.5,
        port: int = 27017
    ) -> ReplicaSetPrimary:
        return ReplicaSetPrimary(
            port=port,
            timeout_seconds=timeout_seconds,
            poll_interval_seconds=poll_interval_seconds
        )
