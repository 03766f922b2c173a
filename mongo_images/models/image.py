from typing import List, Protocol, Tuple, runtime_checkable
from pydantic import BaseModel, ConfigDict, Field

from mongo_images.models.conditions import Condition, WaitFor


NAME = "mongo"
TAG = "5.0.22"
MONGO_PORT = 27017

LISTENER_READY_MESSAGE = "Waiting for connections"
REPLICA_SET_NAME = "rs"
REPLICA_SET_INITIATED_MESSAGE = "Using a default configuration for the set"
REPLICA_SET_SETTLE_SECONDS = 2

# Name/tag pairs known to start with both descriptors
NAME_TAG_VARIANTS = (
    ("mongodb/mongodb-community-server", "7.0.7-ubi8"),
    ("mongodb/mongodb-enterprise-server", "7.0.7-ubi8"),
    ("mongo", "7"),
    ("mongo", "6"),
    ("mongo", "5"),
)


def mongo_connection_string(host: str, port: int) -> str:
    """Single-node connection string that skips replica set discovery"""
    return f"mongodb://{host}:{port}/?directConnection=true"


class ExecCommand(BaseModel):
    """A command run inside a started container, gated by its own conditions"""
    model_config = ConfigDict(frozen=True)

    command: Tuple[str, ...] = Field(..., min_length=1, description="Program and arguments")
    cmd_ready_condition: Condition = Field(
        ...,
        description="Condition checked against the command's own output"
    )
    container_ready_conditions: Tuple[Condition, ...] = Field(
        default=(),
        description="Conditions waited on after the command condition holds"
    )


@runtime_checkable
class Image(Protocol):
    """What the container runner needs to know to launch an image"""

    name: str
    tag: str
    exposed_ports: Tuple[int, ...]

    @property
    def image_ref(self) -> str: ...

    def get_startup_arguments(self) -> List[str]: ...

    def get_readiness_conditions(self) -> List[Condition]: ...

    def get_post_start_actions(self) -> List[ExecCommand]: ...


def _text(field: str, value) -> str:
    if value is None:
        raise TypeError(f"Image {field} must not be None")
    return str(value)


def _replace(image: BaseModel, **changes) -> BaseModel:
    # model_copy does not validate
    return image.model_validate({**image.model_dump(), **changes})


class MongoImage(BaseModel):
    """Standalone MongoDB server"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(default=NAME, min_length=1, description="Image repository")
    tag: str = Field(default=TAG, min_length=1, description="Image tag")
    exposed_ports: Tuple[int, ...] = Field(default=(MONGO_PORT,))

    @classmethod
    def create_default(cls) -> "MongoImage":
        return cls()

    @property
    def image_ref(self) -> str:
        return f"{self.name}:{self.tag}"

    def with_name(self, name) -> "MongoImage":
        return _replace(self, name=_text("name", name))

    def with_tag(self, tag) -> "MongoImage":
        return _replace(self, tag=_text("tag", tag))

    def get_startup_arguments(self) -> List[str]:
        return []

    def get_readiness_conditions(self) -> List[Condition]:
        return [WaitFor.message_on_stdout(LISTENER_READY_MESSAGE)]

    def get_post_start_actions(self) -> List[ExecCommand]:
        return []


class MongoReplicaSetImage(BaseModel):
    """
    MongoDB server running as a one-member replica set.

    Multi-document transactions need a replica set, so the server is started
    with --replSet and initiated with rs.initiate() once it accepts
    connections. Initiation is only *accepted* when the shell reports the
    default configuration; electing the primary happens afterwards. By default
    the runner then sleeps for a fixed two seconds, which is usually but not
    always enough. with_primary_check() swaps that delay for bounded polling
    of replSetGetStatus.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(default=NAME, min_length=1, description="Image repository")
    tag: str = Field(default=TAG, min_length=1, description="Image tag")
    exposed_ports: Tuple[int, ...] = Field(default=(MONGO_PORT,))
    primary_check: bool = Field(
        default=False,
        description="Poll for an elected primary instead of sleeping"
    )
    primary_check_timeout_seconds: float = Field(default=30.0, gt=0)

    @classmethod
    def create_default(cls) -> "MongoReplicaSetImage":
        return cls()

    @property
    def image_ref(self) -> str:
        return f"{self.name}:{self.tag}"

    def with_name(self, name) -> "MongoReplicaSetImage":
        return _replace(self, name=_text("name", name))

    def with_tag(self, tag) -> "MongoReplicaSetImage":
        return _replace(self, tag=_text("tag", tag))

    def with_primary_check(
        self,
        enabled: bool = True,
        timeout_seconds: float = 30.0
    ) -> "MongoReplicaSetImage":
        return _replace(
            self,
            primary_check=enabled,
            primary_check_timeout_seconds=timeout_seconds
        )

    def get_startup_arguments(self) -> List[str]:
        return ["--replSet", REPLICA_SET_NAME]

    def get_readiness_conditions(self) -> List[Condition]:
        return [WaitFor.message_on_stdout(LISTENER_READY_MESSAGE)]

    def get_post_start_action(self) -> ExecCommand:
        if self.primary_check:
            settle = [
                WaitFor.replica_set_primary(
                    timeout_seconds=self.primary_check_timeout_seconds,
                    port=MONGO_PORT
                )
            ]
        else:
            settle = [WaitFor.seconds(REPLICA_SET_SETTLE_SECONDS)]

        return ExecCommand(
            command=("mongosh", "--quiet", "--eval", "rs.initiate()"),
            cmd_ready_condition=WaitFor.message_on_stdout(REPLICA_SET_INITIATED_MESSAGE),
            container_ready_conditions=settle
        )

    def get_post_start_actions(self) -> List[ExecCommand]:
        return [self.get_post_start_action()]
