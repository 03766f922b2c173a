"""
Pytest configuration for integration tests
"""
import logging
from pathlib import Path

import docker
import pytest
from bson import ObjectId
from pymongo import MongoClient

from mongo_images.config import Settings
from mongo_images.services.container_runner import MANAGED_LABEL, ContainerRunner

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

INTEGRATION_DIR = Path(__file__).parent


def _docker_available() -> bool:
    try:
        client = docker.from_env()
        client.ping()
        client.close()
        return True
    except docker.errors.DockerException as e:
        logger.warning(f"Docker is not available, skipping integration tests: {e}")
        return False


def pytest_collection_modifyitems(config, items):
    available = None
    for item in items:
        if INTEGRATION_DIR not in item.path.parents:
            continue
        item.add_marker(pytest.mark.integration)
        if available is None:
            available = _docker_available()
        if not available:
            item.add_marker(pytest.mark.skip(reason="Docker daemon not reachable"))


@pytest.fixture(scope="session")
def docker_client():
    """Get Docker client."""
    client = docker.from_env()
    yield client
    client.close()


@pytest.fixture
def runner(docker_client):
    """Runner with generous timeouts for slow image pulls and cold starts."""
    return ContainerRunner(
        client=docker_client,
        settings=Settings(startup_timeout_seconds=120, remove_on_failure=True)
    )


def cleanup_test_containers(docker_client: docker.DockerClient):
    """Remove all containers started by the runner."""
    logger.info("Cleaning up test containers...")

    try:
        containers = docker_client.containers.list(all=True, filters={"label": MANAGED_LABEL})
        for container in containers:
            logger.info(f"Removing container: {container.name}")
            container.remove(force=True, v=True)
    except docker.errors.APIError as e:
        logger.warning(f"Error removing containers: {e}")


@pytest.fixture(scope="session", autouse=True)
def setup_and_teardown(docker_client):
    """Setup before all tests and cleanup after all tests."""
    cleanup_test_containers(docker_client)

    yield

    logger.info("Test session complete. Cleaning up...")
    cleanup_test_containers(docker_client)


def assert_mongo_works(url: str):
    """Insert {x: 42} and read it back."""
    client = MongoClient(url, serverSelectionTimeoutMS=10000)
    try:
        coll = client["some_db"]["some-coll"]

        result = coll.insert_one({"x": 42})
        assert isinstance(result.inserted_id, ObjectId)
        assert str(result.inserted_id)

        found = coll.find_one({"x": 42})
        assert found is not None
        assert found["x"] == 42
    finally:
        client.close()


def assert_mongo_works_with_transaction(url: str):
    """Insert {x: 42} inside a committed transaction and read it back outside it."""
    client = MongoClient(url, serverSelectionTimeoutMS=10000)
    try:
        coll = client["some_db"]["some-coll"]

        with client.start_session() as session:
            session.start_transaction()
            result = coll.insert_one({"x": 42}, session=session)
            assert isinstance(result.inserted_id, ObjectId)
            session.commit_transaction()

        found = coll.find_one({"x": 42})
        assert found is not None
        assert found["x"] == 42
    finally:
        client.close()
