"""
Pytest configuration and shared fixtures.

Fixtures available to all tests:
  • fake_mongo          — in-memory stand-in for a pymongo Database
  • db                  — ``swapcheck.database.Database`` wrapping ``fake_mongo``
  • checkpoints         — default ``Checkpoints``

The fake implements only the surface swapcheck touches: equality /
``$exists`` filters, ``$set`` / ``$inc`` updates, upserts, index creation
and the handful of administrative commands the phases send.
"""

from __future__ import annotations

import copy
import itertools
import json
import os
import sys
from types import SimpleNamespace

import pytest
from pymongo.errors import CollectionInvalid, DuplicateKeyError, OperationFailure

# Ensure the project root is on the path so all swapcheck imports resolve.
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from swapcheck.database import Database  # noqa: E402
from swapcheck.domain.models import Checkpoints  # noqa: E402


OLD_MESSAGE = "Powered by FerretDB v1.10.0 and PostgreSQL."
NEW_MESSAGE = "Powered by FerretDB v1.10.0 and PostgreSQL 15.4."


def log_line(msg) -> str:
    return json.dumps({
        "t": {"$date": "2026-10-19T10:00:00.000Z"},
        "s": "W",
        "c": "STORAGE",
        "id": 42000,
        "ctx": "initandlisten",
        "msg": msg,
        "tags": ["startupWarnings"],
    })


# ---------------------------------------------------------------------------
# Matching / updates
# ---------------------------------------------------------------------------

def _matches(doc: dict, flt: dict) -> bool:
    for key, cond in flt.items():
        present = key in doc
        value = doc.get(key)
        if isinstance(cond, dict) and "$exists" in cond:
            if present != bool(cond["$exists"]):
                return False
        elif cond is None:
            if value is not None:
                return False
        elif not present or value != cond:
            return False
    return True


def _apply_update(doc: dict, update: dict) -> None:
    for key, value in update.get("$set", {}).items():
        doc[key] = value
    for key, value in update.get("$inc", {}).items():
        doc[key] = doc.get(key, 0) + value


def _upsert_seed(flt: dict) -> dict:
    return {
        k: v for k, v in flt.items()
        if not (isinstance(v, dict) and any(op.startswith("$") for op in v))
    }


# ---------------------------------------------------------------------------
# Fake collection / database
# ---------------------------------------------------------------------------

class FakeCollection:
    _ids = itertools.count(1000)

    def __init__(self, database: "FakeMongoDatabase", name: str) -> None:
        self.database = database
        self.name = name
        self.docs: list = []
        self.indexes: list = []

    def _touch(self) -> None:
        self.database.created.add(self.name)

    def _find(self, flt):
        return [d for d in self.docs if _matches(d, flt or {})]

    # reads
    def find_one(self, flt=None):
        self.database.calls.append(("find_one", self.name))
        hits = self._find(flt)
        return copy.deepcopy(hits[0]) if hits else None

    def list_indexes(self):
        if self.name not in self.database.created:
            return iter([])
        return iter([{"name": "_id_"}] + [{"name": n} for n in self.indexes])

    # writes
    def insert_one(self, doc):
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", next(self._ids))
        if any(d["_id"] == doc["_id"] for d in self.docs):
            raise DuplicateKeyError(f"E11000 duplicate key {doc['_id']!r}")
        self._touch()
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    def update_one(self, flt, update, upsert=False):
        hits = self._find(flt)
        if hits:
            _apply_update(hits[0], update)
            self._touch()
            return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            doc = _upsert_seed(flt)
            _apply_update(doc, update)
            result = self.insert_one(doc)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=result.inserted_id)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    def find_one_and_update(self, flt, update, upsert=False, return_document=None):
        hits = self._find(flt)
        if hits:
            _apply_update(hits[0], update)
            return copy.deepcopy(hits[0])
        if upsert:
            doc = _upsert_seed(flt)
            _apply_update(doc, update)
            self.insert_one(doc)
            return copy.deepcopy(doc)
        return None

    def create_indexes(self, models):
        self._touch()
        names = []
        for m in models:
            name = m.document["name"]
            if name not in self.indexes:
                self.indexes.append(name)
            names.append(name)
        return names

    # command helpers
    def delete(self, flt, limit):
        hits = self._find(flt)
        if limit:
            hits = hits[:limit]
        for d in hits:
            self.docs.remove(d)
        return len(hits)

    def replace(self, flt, replacement):
        hits = self._find(flt)
        if not hits:
            return None
        before = copy.deepcopy(hits[0])
        new_doc = {"_id": hits[0]["_id"]}
        new_doc.update(replacement)
        self.docs[self.docs.index(hits[0])] = new_doc
        return before


class FakeMongoDatabase:
    def __init__(self, name: str = "swapcheck_test") -> None:
        self.name = name
        self.collections: dict = {}
        self.created: set = set()
        self.calls: list = []
        self.startup_log = [log_line(OLD_MESSAGE)]
        self.build_version = "6.0.5"

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]

    def list_collection_names(self):
        return sorted(self.created)

    def create_collection(self, name):
        if name in self.created:
            raise CollectionInvalid(f"collection {name} already exists")
        self[name]._touch()
        return self[name]

    def command(self, son):
        name = next(iter(son))
        self.calls.append(("command", name))
        handler = getattr(self, f"_cmd_{name}", None)
        if handler is None:
            raise OperationFailure(f"no such command: {name}", code=59)
        return handler(son)

    def _cmd_count(self, son):
        return {"n": len(self[son["count"]]._find(son.get("query"))), "ok": 1.0}

    def _cmd_aggregate(self, son):
        # Supports the [$project, $count] pipeline phase A sends.
        docs = self[son["aggregate"]].docs
        out_field = son["pipeline"][-1]["$count"]
        batch = [{out_field: len(docs)}] if docs else []
        return {"cursor": {"id": 0, "ns": f"{self.name}.{son['aggregate']}", "firstBatch": batch}, "ok": 1.0}

    def _cmd_find(self, son):
        docs = [copy.deepcopy(d) for d in self[son["find"]]._find(son.get("filter"))]
        return {"cursor": {"id": 0, "ns": f"{self.name}.{son['find']}", "firstBatch": docs}, "ok": 1.0}

    def _cmd_delete(self, son):
        n = sum(self[son["delete"]].delete(s["q"], s.get("limit", 0)) for s in son["deletes"])
        return {"n": n, "ok": 1.0}

    def _cmd_findAndModify(self, son):
        before = self[son["findAndModify"]].replace(son["query"], son["update"])
        return {"lastErrorObject": {"n": 1 if before else 0}, "value": before, "ok": 1.0}

    def _cmd_getLog(self, son):
        return {"log": list(self.startup_log), "totalLinesWritten": len(self.startup_log), "ok": 1.0}

    def _cmd_buildInfo(self, son):
        return {"version": self.build_version, "ok": 1.0}

    # helpers for tests
    def use_backend(self, backend: str) -> None:
        msg = NEW_MESSAGE if backend == "new" else OLD_MESSAGE
        self.startup_log = [log_line(msg)]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_mongo():
    return FakeMongoDatabase()


@pytest.fixture
def db(fake_mongo):
    return Database(fake_mongo)


@pytest.fixture
def checkpoints():
    return Checkpoints()

