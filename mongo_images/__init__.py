"""MongoDB image descriptors for integration tests, and the Docker runner that starts them."""

from mongo_images.errors import (
    ContainerError,
    ContainerPortError,
    ContainerStartupError,
    ConvergenceTimeoutError,
    ImagePullError,
    PostStartCommandError,
    ReadinessTimeoutError,
)
from mongo_images.models.conditions import WaitFor
from mongo_images.models.image import (
    NAME,
    NAME_TAG_VARIANTS,
    TAG,
    ExecCommand,
    Image,
    MongoImage,
    MongoReplicaSetImage,
    mongo_connection_string,
)
from mongo_images.services.container import LaunchPhase, RunningContainer
from mongo_images.services.container_runner import ContainerRunner

__all__ = [
    "NAME",
    "NAME_TAG_VARIANTS",
    "TAG",
    "ContainerError",
    "ContainerPortError",
    "ContainerRunner",
    "ContainerStartupError",
    "ConvergenceTimeoutError",
    "ExecCommand",
    "Image",
    "ImagePullError",
    "LaunchPhase",
    "MongoImage",
    "MongoReplicaSetImage",
    "PostStartCommandError",
    "ReadinessTimeoutError",
    "RunningContainer",
    "WaitFor",
    "mongo_connection_string",
]
