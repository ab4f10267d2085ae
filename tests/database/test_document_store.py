"""Tests for the SQLite document store."""

import asyncio
import sqlite3

import pytest

from bulwark.database.document_store import (
    DocumentStore,
    apply_update,
    compile_query,
    json_path,
    project,
)
from bulwark.errors import StoreUnavailableError


async def _seed_logs(store):
    logs = store.collection("logs")
    await logs.insert_one({"guild": "1", "n": 1, "tags": ["a"]})
    await logs.insert_one({"guild": "1", "n": 5, "nested": {"x": 2}})
    await logs.insert_one({"guild": "2"})
    return logs


class TestHelpers:
    def test_json_path_quotes_labels_that_need_it(self):
        assert json_path("ranks.admins") == "$.ranks.admins"
        assert json_path("command_last_used.123.ping") == '$.command_last_used."123".ping'

    def test_project_keeps_only_requested_paths(self):
        document = {"a": {"b": 1, "c": 2}, "d": 3}
        assert project(document, ["a.b"]) == {"a": {"b": 1}}
        assert project(document, ["missing"]) == {}
        assert project(document, None) == document

    def test_apply_update_operators(self):
        document = {"ranks": {"admins": ["1"]}, "prefix": "!"}
        apply_update(
            document,
            {
                "$set": {"megalog.ban": "7"},
                "$unset": {"prefix": ""},
                "$addToSet": {"ranks.admins": "1", "ranks.mods": "2"},
            },
        )
        assert document == {"ranks": {"admins": ["1"], "mods": ["2"]}, "megalog": {"ban": "7"}}

        apply_update(document, {"$pull": {"ranks.admins": "1"}})
        assert document["ranks"]["admins"] == []

    def test_apply_update_rejects_unknown_operator(self):
        with pytest.raises(ValueError):
            apply_update({}, {"$inc": {"n": 1}})

    def test_compile_query_empty_matches_everything(self):
        assert compile_query({}) == ("1", [])


class TestQueries:
    async def test_equality_and_comparisons(self, store):
        logs = await _seed_logs(store)
        assert [d["n"] for d in await logs.find({"guild": "1"})] == [1, 5]
        assert [d["n"] for d in await logs.find({"n": {"$gt": 2}})] == [5]
        assert [d["n"] for d in await logs.find({"n": {"$lte": 5, "$gte": 1}})] == [1, 5]

    async def test_none_matches_missing_fields(self, store):
        logs = await _seed_logs(store)
        documents = await logs.find({"n": None})
        assert documents == [{"guild": "2"}]

    async def test_ne_includes_missing_fields(self, store):
        logs = await _seed_logs(store)
        documents = await logs.find({"n": {"$ne": 1}})
        assert [d.get("n") for d in documents] == [5, None]

    async def test_in_exists_and_or(self, store):
        logs = await _seed_logs(store)
        assert await logs.count({"n": {"$in": [1, 5]}}) == 2
        assert await logs.count({"n": {"$in": []}}) == 0
        assert await logs.count({"nested": {"$exists": True}}) == 1
        assert await logs.count({"$or": [{"n": 1}, {"guild": "2"}]}) == 2

    async def test_find_one_projection(self, store):
        logs = await _seed_logs(store)
        assert await logs.find_one({"n": 5}, ["nested.x"]) == {"nested": {"x": 2}}
        assert await logs.find_one({"n": 42}) is None


class TestWrites:
    async def test_update_one_without_match_returns_false(self, store):
        guilds = store.guilds
        assert await guilds.update_one({"id": "1"}, {"$set": {"prefix": "!"}}) is False
        assert await guilds.count() == 0

    async def test_upsert_seeds_document_from_query(self, store):
        guilds = store.guilds
        assert await guilds.update_one({"id": "1"}, {"$set": {"prefix": "!"}}, upsert=True) is True
        assert await guilds.find_one({"id": "1"}) == {"id": "1", "prefix": "!"}

    async def test_update_touches_only_named_fields(self, store):
        guilds = store.guilds
        await guilds.insert_one({"id": "1", "prefix": "!", "ranks": {"admins": []}})
        await guilds.update_one({"id": "1"}, {"$addToSet": {"ranks.admins": "5"}})
        assert await guilds.find_one({"id": "1"}) == {"id": "1", "prefix": "!", "ranks": {"admins": ["5"]}}

    async def test_update_many_and_deletes(self, store):
        logs = await _seed_logs(store)
        assert await logs.update_many({"guild": "1"}, {"$set": {"seen": True}}) == 2
        assert await logs.count({"seen": True}) == 2

        assert await logs.delete_one({"guild": "1"}) == 1
        assert await logs.delete_many({"guild": "1"}) == 1
        assert await logs.delete_many({"guild": "1"}) == 0
        assert await logs.count() == 1

    async def test_insert_returns_doc_id(self, store):
        reports = store.collection("bug_reports")
        first = await reports.insert_one({"report": "one"})
        second = await reports.insert_one({"report": "two"})
        assert second > first

    async def test_unique_keys_are_enforced(self, store):
        await store.guilds.insert_one({"id": "1"})
        with pytest.raises(sqlite3.IntegrityError):
            await store.guilds.insert_one({"id": "1"})

        await store.command_caches.insert_one({"channel": "1", "user": "2"})
        await store.command_caches.insert_one({"channel": "1", "user": "3"})
        with pytest.raises(sqlite3.IntegrityError):
            await store.command_caches.insert_one({"channel": "1", "user": "2"})


class TestConcurrency:
    async def test_reads_wait_for_open_transactions(self, store):
        inserted = asyncio.Event()
        release = asyncio.Event()

        async def aborted_write():
            async with store.connection.transaction() as conn:
                await conn.execute("INSERT INTO logs (body) VALUES (?)", ('{"guild": "9"}',))
                inserted.set()
                await release.wait()
                raise RuntimeError("abort")

        writer = asyncio.create_task(aborted_write())
        await inserted.wait()

        reader = asyncio.create_task(store.collection("logs").find({"guild": "9"}))
        await asyncio.sleep(0)
        assert not reader.done()

        release.set()
        with pytest.raises(RuntimeError):
            await writer
        assert await reader == []


def test_unknown_collection_is_rejected():
    with pytest.raises(ValueError):
        DocumentStore().collection("nope")


async def test_closed_store_is_unavailable():
    store = DocumentStore()
    with pytest.raises(StoreUnavailableError):
        await store.guilds.find_one({"id": "1"})
