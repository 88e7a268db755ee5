# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for the display merger and row filtering."""

import copy

import pytest

from opsconsole.staging.buffer import StagingBuffer
from opsconsole.staging.merger import filter_rows, merge
from opsconsole.staging.protocol import StagingShape
from opsconsole.staging.snapshot import SnapshotStore


@pytest.fixture
def order_snapshot(orders):
    store = SnapshotStore(id_field="orderId", name="orders")
    store.replace(orders)
    return store


@pytest.fixture
def product_snapshot(products):
    store = SnapshotStore(id_field="id", name="catalog")
    store.replace(products)
    return store


class TestPatchMerge:
    """Tests for merging patch-staged collections."""

    def test_two_patches_merge_into_one_row(self, order_snapshot):
        """Test status then note on order A shows both, flagged modified."""
        staging = StagingBuffer(StagingShape.PATCH, id_field="orderId")
        staging.record_patch("A", "status", "shipped")
        staging.record_patch("A", "note", "urgent")

        rows = merge(order_snapshot, staging)
        row_a = rows[0]

        assert row_a.id == "A"
        assert row_a["status"] == "shipped"
        assert row_a["note"] == "urgent"
        assert row_a["customerName"] == "Lin"
        assert row_a.modified is True
        assert row_a.new is False

    def test_unpatched_rows_pass_through(self, order_snapshot):
        """Test that rows without a patch are unchanged and unflagged."""
        staging = StagingBuffer(StagingShape.PATCH, id_field="orderId")
        staging.record_patch("A", "status", "shipped")

        rows = merge(order_snapshot, staging)

        assert [r.modified for r in rows] == [True, False, False]
        assert dict(rows[1].record) == dict(order_snapshot.get("B"))

    def test_patch_for_unknown_id_is_not_appended(self, order_snapshot):
        """Test that patches never create rows of their own."""
        staging = StagingBuffer(StagingShape.PATCH, id_field="orderId")
        staging.record_patch("Z", "status", "shipped")

        assert [r.id for r in merge(order_snapshot, staging)] == ["A", "B", "C"]


class TestReplaceMerge:
    """Tests for merging replace-staged collections."""

    def test_replacement_substitutes_wholesale(self, product_snapshot):
        """Test that the staged record replaces the snapshot record entirely."""
        staging = StagingBuffer(StagingShape.REPLACE, id_field="id")
        staging.record_replace("P2", {"name": "Bucket hat", "price": 55})

        row = merge(product_snapshot, staging)[1]

        assert row.modified is True
        assert row.record == {"id": "P2", "name": "Bucket hat", "price": 55}

    def test_new_records_are_appended(self, product_snapshot):
        """Test that staged records unknown to the snapshot come last, flagged new."""
        staging = StagingBuffer(StagingShape.REPLACE, id_field="id")
        staging.record_replace("NEW_2", {"name": "Belt"})
        staging.record_replace("P1", {"name": "Tote"})
        staging.record_replace("NEW_1", {"name": "Socks"})

        rows = merge(product_snapshot, staging)

        assert [r.id for r in rows] == ["P1", "P2", "P3", "NEW_2", "NEW_1"]
        assert rows[0].new is False and rows[0].modified is True
        assert all(r.new and r.modified for r in rows[3:])


class TestMergeProperties:
    """Tests for purity of merge()."""

    def test_merge_is_idempotent(self, product_snapshot):
        """Test that repeated merges give structurally equal output."""
        staging = StagingBuffer(StagingShape.REPLACE, id_field="id")
        staging.record_replace("P1", {"name": "Tote", "tags": ["a"]})
        staging.record_replace("NEW_1", {"name": "Belt"})

        assert merge(product_snapshot, staging) == merge(product_snapshot, staging)

    def test_merge_has_no_side_effects(self, order_snapshot):
        """Test that neither input changes and output rows are independent copies."""
        staging = StagingBuffer(StagingShape.PATCH, id_field="orderId")
        staging.record_patch("A", "items", [{"sku": "P1"}])
        staging_before = staging.state()
        snapshot_before = [dict(r) for r in order_snapshot]

        rows = merge(order_snapshot, staging)
        rows[0].record["items"].append({"sku": "P2"})
        rows[1].record["status"] = "lost"

        assert staging.state() == staging_before
        assert [dict(r) for r in order_snapshot] == snapshot_before

    def test_accepts_plain_sequences(self, orders):
        """Test merging against a plain list of records."""
        staging = StagingBuffer(StagingShape.PATCH, id_field="orderId")
        staging.record_patch("C", "status", "returned")
        original = copy.deepcopy(orders)

        rows = merge(orders, staging)

        assert rows[2]["status"] == "returned"
        assert orders == original

    def test_fresh_snapshot_after_commit_has_no_flags(self, orders):
        """Test that committed values in a new snapshot with empty staging are unflagged."""
        staging = StagingBuffer(StagingShape.PATCH, id_field="orderId")
        committed = copy.deepcopy(orders)
        committed[0]["status"] = "shipped"

        rows = merge(committed, staging)

        assert rows[0]["status"] == "shipped"
        assert not any(r.modified or r.new for r in rows)


class TestFilterRows:
    """Tests for filter_rows."""

    def test_search_sees_staged_values(self, order_snapshot):
        """Test that searching the merged view finds staged edits."""
        staging = StagingBuffer(StagingShape.PATCH, id_field="orderId")
        staging.record_patch("B", "customerName", "Chen Mei")

        rows = filter_rows(merge(order_snapshot, staging), "mei", ["customerName"])

        assert [r.id for r in rows] == ["B"]
        assert rows[0].modified

    def test_exact_filter_uses_staged_status(self, order_snapshot):
        """Test that a status filter matches the staged status, not the snapshot's."""
        staging = StagingBuffer(StagingShape.PATCH, id_field="orderId")
        staging.record_patch("A", "status", "shipped")

        rows = filter_rows(merge(order_snapshot, staging), status="shipped")

        assert [r.id for r in rows] == ["A", "C"]

    def test_empty_criteria_keep_everything(self, order_snapshot):
        """Test that blank query and blank filters keep every row."""
        staging = StagingBuffer(StagingShape.PATCH, id_field="orderId")

        rows = filter_rows(merge(order_snapshot, staging), "  ", ["orderId"], status="")

        assert len(rows) == 3

    def test_search_is_case_insensitive(self, product_snapshot):
        """Test case-insensitive substring search over several fields."""
        staging = StagingBuffer(StagingShape.REPLACE, id_field="id")

        rows = filter_rows(merge(product_snapshot, staging), "HAT", ["name", "category"])

        assert [r.id for r in rows] == ["P2"]
