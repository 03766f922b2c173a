import asyncio
import logging
import uuid
from typing import Optional, Sequence

import docker
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from mongo_images.config import Settings, settings as default_settings
from mongo_images.errors import (
    ContainerStartupError,
    ConvergenceTimeoutError,
    ImagePullError,
    PostStartCommandError,
    ReadinessTimeoutError,
)
from mongo_images.models.conditions import (
    Condition,
    Duration,
    ReplicaSetPrimary,
    StderrMessage,
    StdoutMessage,
)
from mongo_images.models.image import ExecCommand, Image, mongo_connection_string
from mongo_images.services.container import ExecResult, LaunchPhase, RunningContainer

logger = logging.getLogger(__name__)

MANAGED_LABEL = "mongo-images.managed"


class ContainerRunner:
    """Launches image descriptors as Docker containers and waits until they are usable"""

    def __init__(self, client: Optional[docker.DockerClient] = None, settings: Optional[Settings] = None):
        """
        Initialize the runner

        Args:
            client: Docker client to use; built from the environment when omitted
            settings: Runtime settings; the module-level settings when omitted
        """
        self.settings = settings or default_settings

        if client is None:
            try:
                if self.settings.docker_base_url:
                    client = docker.DockerClient(base_url=self.settings.docker_base_url)
                else:
                    client = docker.from_env()
                client.ping()
                logger.info("Docker client initialized successfully")
            except Exception as e:
                logger.error(f"Failed to initialize Docker client: {e}")
                raise

        self.client = client

    def _container_name(self) -> str:
        return f"{self.settings.container_prefix}-{uuid.uuid4().hex[:8]}"

    async def _ensure_image(self, image: Image):
        """Pull the image unless it is already present locally"""
        try:
            await asyncio.to_thread(self.client.images.get, image.image_ref)
            return
        except docker.errors.ImageNotFound:
            if not self.settings.pull_missing_images:
                raise ImagePullError(image.image_ref, "not present locally and pulling is disabled")

        logger.info(f"Pulling image {image.image_ref}")
        try:
            await asyncio.to_thread(self.client.images.pull, image.name, tag=image.tag)
        except docker.errors.APIError as e:
            logger.error(f"Failed to pull image {image.image_ref}: {e}")
            raise ImagePullError(image.image_ref, str(e)) from e

    async def start(self, image: Image) -> RunningContainer:
        """
        Start a container from an image descriptor

        Waits for the image's readiness conditions, then runs each post-start
        action and waits for its conditions in turn.

        Args:
            image: Descriptor to launch

        Returns:
            RunningContainer: Handle to the ready container

        Raises:
            ImagePullError: the image could not be pulled
            ContainerStartupError: the container never became ready
        """
        if not image.name or not image.tag:
            raise ContainerStartupError(f"Image name and tag must be non-empty, got '{image.image_ref}'")

        await self._ensure_image(image)

        container_name = self._container_name()
        arguments = image.get_startup_arguments()

        try:
            container = await asyncio.to_thread(
                self.client.containers.create,
                image=image.image_ref,
                name=container_name,
                command=arguments or None,
                ports={f"{port}/tcp": None for port in image.exposed_ports},
                labels={MANAGED_LABEL: "true"},
            )
        except docker.errors.APIError as e:
            logger.error(f"Failed to create container {container_name}: {e}")
            raise ContainerStartupError(f"Failed to create container from {image.image_ref}: {e}") from e

        node = RunningContainer(container, image, self.settings)

        try:
            await asyncio.to_thread(container.start)
            node.advance(LaunchPhase.PROCESS_STARTED)
            await self._launch(node)
        except ContainerStartupError as e:
            logger.error(f"Container {node.name} did not become ready: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to start container {node.name}: {e}")
            raise ContainerStartupError(f"Failed to start container {node.name}: {e}", container=node) from e
        finally:
            # also reached on cancellation
            if node.phase != LaunchPhase.READY:
                node.advance(LaunchPhase.FAILED)
                await self._discard(node)

        return node

    async def _discard(self, node: RunningContainer):
        if self.settings.remove_on_failure:
            await node.remove()

    async def _launch(self, node: RunningContainer):
        await self._wait_all(node, node.image.get_readiness_conditions())
        node.advance(LaunchPhase.LISTENER_READY)

        for action in node.image.get_post_start_actions():
            await self._run_post_start(node, action)

        node.advance(LaunchPhase.READY)

    async def _run_post_start(self, node: RunningContainer, action: ExecCommand):
        node.advance(LaunchPhase.COMMAND_ISSUED)
        timeout = self.settings.exec_timeout_seconds

        try:
            result = await node.exec(list(action.command), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise PostStartCommandError(
                f"Command {action.command} did not finish within {timeout}s",
                container=node
            ) from e
        except docker.errors.APIError as e:
            raise PostStartCommandError(f"Command {action.command} failed: {e}", container=node) from e

        await self._check_command(node, action, result)
        node.advance(LaunchPhase.COMMAND_ACCEPTED)

        node.advance(LaunchPhase.CONVERGENCE_WAIT)
        await self._wait_all(node, action.container_ready_conditions)

    async def _check_command(self, node: RunningContainer, action: ExecCommand, result: ExecResult):
        condition = action.cmd_ready_condition

        if isinstance(condition, StdoutMessage):
            output = result.stdout
        elif isinstance(condition, StderrMessage):
            output = result.stderr
        else:
            await self._wait_for(node, condition)
            return

        if condition.message not in output:
            raise PostStartCommandError(
                f"Command {action.command} exited with {result.exit_code} "
                f"without printing '{condition.message}'",
                container=node,
                exit_code=result.exit_code,
                output=result.stdout + result.stderr
            )

        logger.debug(f"Command {action.command} printed '{condition.message}'")

    async def _wait_all(self, node: RunningContainer, conditions: Sequence[Condition]):
        for condition in conditions:
            await self._wait_for(node, condition)

    async def _wait_for(self, node: RunningContainer, condition: Condition):
        if isinstance(condition, StdoutMessage):
            await self._wait_for_log_message(node, condition.message, stdout=True)
        elif isinstance(condition, StderrMessage):
            await self._wait_for_log_message(node, condition.message, stdout=False)
        elif isinstance(condition, Duration):
            logger.debug(f"Waiting {condition.seconds}s for {node.name}")
            await asyncio.sleep(condition.seconds)
        elif isinstance(condition, ReplicaSetPrimary):
            await self._wait_for_primary(node, condition)
        else:
            raise TypeError(f"Unsupported readiness condition: {condition!r}")

    async def _wait_for_log_message(self, node: RunningContainer, message: str, stdout: bool):
        """Poll the container logs until message shows up on the chosen stream"""
        stream = "stdout" if stdout else "stderr"
        timeout = self.settings.startup_timeout_seconds
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            logs = await asyncio.to_thread(node.logs, stdout=stdout, stderr=not stdout)
            if message in logs:
                logger.debug(f"Found '{message}' on {stream} of {node.name}")
                return

            status = await asyncio.to_thread(node.status)
            if status in ("exited", "dead"):
                raise ContainerStartupError(
                    f"Container {node.name} is {status} and never printed '{message}' on {stream}",
                    container=node
                )

            if loop.time() >= deadline:
                raise ReadinessTimeoutError(
                    f"Timed out after {timeout}s waiting for '{message}' on {stream} of {node.name}",
                    container=node
                )

            await asyncio.sleep(self.settings.log_poll_interval_seconds)

    async def _wait_for_primary(self, node: RunningContainer, condition: ReplicaSetPrimary):
        """Poll replSetGetStatus until some member reports PRIMARY"""
        host_port = await asyncio.to_thread(node.get_host_port_ipv4, condition.port)
        url = mongo_connection_string(node.get_host(), host_port)
        client = MongoClient(url, serverSelectionTimeoutMS=2000, connectTimeoutMS=2000)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + condition.timeout_seconds

        try:
            while True:
                try:
                    status = await asyncio.to_thread(client.admin.command, "replSetGetStatus")
                    members = status.get("members", [])
                    if any(member.get("stateStr") == "PRIMARY" for member in members):
                        logger.info(f"Replica set on {node.name} has elected a primary")
                        return
                except PyMongoError as e:
                    logger.debug(f"Waiting for primary on {node.name}: {e}")

                if loop.time() >= deadline:
                    raise ConvergenceTimeoutError(
                        f"No primary elected on {node.name} after {condition.timeout_seconds}s",
                        container=node
                    )

                await asyncio.sleep(condition.poll_interval_seconds)
        finally:
            client.close()

    async def cleanup_all(self):
        """Remove every container this runner type has created"""
        logger.info("Cleaning up all mongo-images containers")

        try:
            containers = await asyncio.to_thread(
                self.client.containers.list,
                all=True,
                filters={"label": MANAGED_LABEL}
            )
        except docker.errors.APIError as e:
            logger.error(f"Failed to list containers: {e}")
            raise

        for container in containers:
            try:
                await asyncio.to_thread(container.remove, force=True, v=True)
                logger.info(f"Removed container {container.name}")
            except docker.errors.APIError as e:
                logger.error(f"Failed to remove container {container.name}: {e}")
