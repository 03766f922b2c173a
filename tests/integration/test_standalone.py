"""
Integration tests for the standalone MongoDB image.
"""
import logging

import pytest

from mongo_images import NAME_TAG_VARIANTS, LaunchPhase, MongoImage

from .conftest import assert_mongo_works

logger = logging.getLogger(__name__)


@pytest.mark.asyncio
async def test_mongo_fetch_document(runner):
    """Test: default image accepts a write and returns it."""
    async with await runner.start(MongoImage()) as node:
        assert node.phase == LaunchPhase.READY

        url = node.get_connection_string()
        logger.info(f"Standalone MongoDB ready at {url}")
        assert_mongo_works(url)


@pytest.mark.asyncio
@pytest.mark.parametrize("name,tag", NAME_TAG_VARIANTS)
async def test_mongo_works_on_variants(runner, name, tag):
    """Test: every supported name/tag pair starts and serves reads."""
    image = MongoImage().with_name(name).with_tag(tag)

    async with await runner.start(image) as node:
        assert_mongo_works(node.get_connection_string())
