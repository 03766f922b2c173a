import asyncio
import logging
from enum import Enum
from typing import List, Optional

import docker
from docker.models.containers import Container
from pydantic import BaseModel, Field

from mongo_images.config import Settings
from mongo_images.errors import ContainerPortError
from mongo_images.models.image import MONGO_PORT, Image, mongo_connection_string

logger = logging.getLogger(__name__)


class LaunchPhase(str, Enum):
    """Steps a container goes through on its way to being usable"""
    CREATED = "created"
    PROCESS_STARTED = "process_started"
    LISTENER_READY = "listener_ready"
    COMMAND_ISSUED = "command_issued"
    COMMAND_ACCEPTED = "command_accepted"
    CONVERGENCE_WAIT = "convergence_wait"
    READY = "ready"
    FAILED = "failed"


class ExecResult(BaseModel):
    """Outcome of a command run inside a container"""
    exit_code: Optional[int] = Field(None, description="Exit code, if the command finished")
    stdout: str = Field(default="", description="Decoded standard output")
    stderr: str = Field(default="", description="Decoded standard error")


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


class RunningContainer:
    """Handle to a container started from an image descriptor"""

    def __init__(self, container: Container, image: Image, settings: Settings):
        self._container = container
        self.image = image
        self.settings = settings
        self.history: List[LaunchPhase] = []
        self.advance(LaunchPhase.CREATED)

    @property
    def id(self) -> str:
        return self._container.id

    @property
    def name(self) -> str:
        return self._container.name

    @property
    def phase(self) -> LaunchPhase:
        return self.history[-1]

    def advance(self, phase: LaunchPhase):
        """Record the next launch phase"""
        self.history.append(phase)
        logger.info(f"Container {self.name} ({self.image.image_ref}): {phase.value}")

    def status(self) -> str:
        """Refresh and return the Docker status (created, running, exited, ...)"""
        self._container.reload()
        return self._container.status

    def get_host(self) -> str:
        return self.settings.container_host

    def get_host_port_ipv4(self, port: int) -> int:
        """
        Get the host port a container port is published on

        Args:
            port: Container port, TCP

        Returns:
            int: IPv4 host port
        """
        self._container.reload()
        ports = self._container.attrs.get("NetworkSettings", {}).get("Ports") or {}
        bindings = ports.get(f"{port}/tcp") or []

        for binding in bindings:
            if ":" not in binding.get("HostIp", ""):
                return int(binding["HostPort"])

        raise ContainerPortError(f"Port {port}/tcp is not published for container {self.name}")

    def get_connection_string(self, port: int = MONGO_PORT) -> str:
        """Get the MongoDB connection string for this container"""
        return mongo_connection_string(self.get_host(), self.get_host_port_ipv4(port))

    def logs(self, stdout: bool = True, stderr: bool = True) -> str:
        return _decode(self._container.logs(stdout=stdout, stderr=stderr))

    async def exec(self, command: List[str], timeout: Optional[float] = None) -> ExecResult:
        """
        Run a command inside the container and wait for it to exit

        Raises:
            asyncio.TimeoutError: the command did not finish within timeout
        """
        logger.debug(f"Executing in {self.name}: {command}")
        result = await asyncio.wait_for(
            asyncio.to_thread(self._container.exec_run, command, demux=True),
            timeout
        )
        stdout, stderr = result.output or (None, None)
        return ExecResult(
            exit_code=result.exit_code,
            stdout=_decode(stdout),
            stderr=_decode(stderr)
        )

    async def stop(self, timeout: int = 10):
        await asyncio.to_thread(self._container.stop, timeout=timeout)
        logger.info(f"Stopped container {self.name}")

    async def remove(self):
        """Force-remove the container and its anonymous volumes"""
        try:
            await asyncio.to_thread(self._container.remove, force=True, v=True)
            logger.info(f"Removed container {self.name}")
        except docker.errors.NotFound:
            logger.warning(f"Container {self.name} already removed")

    async def __aenter__(self) -> "RunningContainer":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.remove()
