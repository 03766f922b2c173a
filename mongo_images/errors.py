from typing import Optional


class ContainerError(Exception):
    """Base class for errors raised while running image descriptors"""


class ImagePullError(ContainerError):
    """The image could not be found locally or pulled from its registry"""

    def __init__(self, image_ref: str, reason: str):
        super().__init__(f"Failed to pull image {image_ref}: {reason}")
        self.image_ref = image_ref


class ContainerStartupError(ContainerError):
    """
    A container did not become ready.

    The container is left as it was when startup failed; ``container`` holds
    the handle so the caller can read its logs and remove it.
    """

    def __init__(self, message: str, container=None):
        super().__init__(message)
        self.container = container


class ReadinessTimeoutError(ContainerStartupError):
    """A readiness condition was not met before the timeout"""


class PostStartCommandError(ContainerStartupError):
    """A post-start command failed, timed out or did not print its ready message"""

    def __init__(
        self,
        message: str,
        container=None,
        exit_code: Optional[int] = None,
        output: str = ""
    ):
        super().__init__(message, container)
        self.exit_code = exit_code
        self.output = output


class ConvergenceTimeoutError(ContainerStartupError):
    """The replica set did not report a primary before the timeout"""


class ContainerPortError(ContainerError):
    """A container port is not published on the host"""
