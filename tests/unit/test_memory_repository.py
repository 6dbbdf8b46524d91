"""
Transaction behaviour of the in-memory repository.
"""

import asyncio

import pytest

from checklist.features.organizations.schemas import Organization


def _organization(organization_id: str) -> Organization:
    return Organization(id=organization_id, name=organization_id, slug=organization_id)


class TestTransactions:
    async def test_exception_restores_snapshot(self, repository):
        await repository.add_organization(_organization("kept"))
        with pytest.raises(RuntimeError):
            async with repository.transaction():
                await repository.add_organization(_organization("gone"))
                await repository.delete_organization("kept")
                raise RuntimeError("boom")

        assert await repository.get_organization("kept") is not None
        assert await repository.get_organization("gone") is None

    async def test_nested_block_joins_outer(self, repository):
        with pytest.raises(RuntimeError):
            async with repository.transaction():
                async with repository.transaction():
                    await repository.add_organization(_organization("inner"))
                raise RuntimeError("outer failed")

        assert await repository.get_organization("inner") is None

    async def test_concurrent_writer_joins_open_transaction(self, repository):
        started = asyncio.Event()
        release = asyncio.Event()

        async def failing_unit_of_work():
            async with repository.transaction():
                started.set()
                await release.wait()
                raise RuntimeError("outer failed")

        task = asyncio.create_task(failing_unit_of_work())
        await started.wait()
        async with repository.transaction():
            await repository.add_organization(_organization("bystander"))
        release.set()

        with pytest.raises(RuntimeError):
            await task
        # the bystander's write was part of the outer snapshot and is rolled back with it
        assert await repository.get_organization("bystander") is None

    async def test_separate_instances_are_isolated(self, repository):
        from checklist.repository.memory import InMemoryRepository

        other = InMemoryRepository()
        with pytest.raises(RuntimeError):
            async with repository.transaction():
                async with other.transaction():
                    await other.add_organization(_organization("independent"))
                raise RuntimeError("outer failed")

        assert await other.get_organization("independent") is not None
