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

"""Tests for the snapshot store and the staging buffer."""

import pytest

from opsconsole.errors import StagingLockedError
from opsconsole.staging.buffer import PatchStaging, ReplaceStaging, StagingBuffer
from opsconsole.staging.protocol import AttachmentRef, StagingShape, is_temp_id, new_temp_id
from opsconsole.staging.snapshot import SnapshotStore


@pytest.fixture
def patch_buffer():
    return StagingBuffer(StagingShape.PATCH, id_field="orderId", name="orders")


@pytest.fixture
def replace_buffer():
    return StagingBuffer(StagingShape.REPLACE, id_field="id", name="catalog")


class TestSnapshotStore:
    """Tests for SnapshotStore."""

    def test_replace_is_wholesale(self, orders):
        """Test that a refresh replaces every record."""
        store = SnapshotStore(id_field="orderId")
        store.replace(orders)
        store.replace(orders[:1])

        assert len(store) == 1
        assert store.ids() == ["A"]
        assert store.version == 2

    def test_records_are_read_only(self, orders):
        """Test that snapshot records cannot be edited in place."""
        store = SnapshotStore(id_field="orderId")
        store.replace(orders)

        with pytest.raises(TypeError):
            store.records[0]["status"] = "cancelled"

    def test_input_is_copied(self, orders):
        """Test that later changes to the fetched data do not leak in."""
        store = SnapshotStore(id_field="orderId")
        store.replace(orders)
        orders[0]["status"] = "cancelled"

        assert store.get("A")["status"] == "pending"

    def test_get_compares_ids_as_strings(self):
        """Test that numeric and string ids match."""
        store = SnapshotStore()
        store.replace([{"id": 7, "name": "x"}])

        assert store.get("7")["name"] == "x"
        assert 7 in store
        assert "8" not in store

    def test_stale_flag(self, orders):
        """Test that cached snapshots are marked stale until the next fetch."""
        store = SnapshotStore(id_field="orderId")
        store.replace(orders, stale=True)
        assert store.stale is True

        store.replace(orders)
        assert store.stale is False


class TestPatchStaging:
    """Tests for patch-staged buffers."""

    def test_last_write_wins_per_field(self, patch_buffer):
        """Test field-level last-write-wins across interleaved edits."""
        patch_buffer.record_patch("A", "status", "processing")
        patch_buffer.record_patch("A", "note", "call first")
        patch_buffer.record_patch("A", "status", "shipped")
        patch_buffer.record_patch("A", "note", "urgent")

        assert patch_buffer.get("A") == {"status": "shipped", "note": "urgent"}
        assert len(patch_buffer) == 1

    def test_patches_are_independent_per_entity(self, patch_buffer):
        """Test that patches for different ids do not mix."""
        patch_buffer.record_patch("A", "status", "shipped")
        patch_buffer.record_patch("B", "note", "gift wrap")

        assert patch_buffer.get("A") == {"status": "shipped"}
        assert patch_buffer.get("B") == {"note": "gift wrap"}

    def test_multi_field_patch(self, patch_buffer):
        """Test detail-form saves merging several fields at once."""
        patch_buffer.record_patch("A", "status", "shipped")
        patch_buffer.record_patch_fields("A", {"customerName": "Lin Y.", "shippingFee": 60})

        assert patch_buffer.get("A") == {
            "status": "shipped",
            "customerName": "Lin Y.",
            "shippingFee": 60,
        }

    def test_stored_values_are_copies(self, patch_buffer):
        """Test that mutating a staged value afterwards has no effect."""
        items = [{"sku": "P1", "qty": 1}]
        patch_buffer.record_patch("A", "items", items)
        items[0]["qty"] = 5

        assert patch_buffer.get("A")["items"][0]["qty"] == 1

    def test_replace_not_supported(self, patch_buffer):
        """Test that patch buffers reject full replacements."""
        with pytest.raises(TypeError):
            patch_buffer.record_replace("A", {"status": "shipped"})


class TestReplaceStaging:
    """Tests for replace-staged buffers."""

    def test_resubmit_replaces_previous_record(self, replace_buffer):
        """Test that only the latest full record is kept."""
        replace_buffer.record_replace("P1", {"name": "Tote", "price": 100, "stock": 3})
        replace_buffer.record_replace("P1", {"name": "Tote bag", "price": 120})

        assert len(replace_buffer) == 1
        assert replace_buffer.get("P1") == {"id": "P1", "name": "Tote bag", "price": 120}

    def test_resubmit_moves_record_to_end(self, replace_buffer):
        """Test that a resubmitted record is appended after the others."""
        replace_buffer.record_replace("P1", {"name": "a"})
        replace_buffer.record_replace("P2", {"name": "b"})
        replace_buffer.record_replace("P1", {"name": "c"})

        assert [eid for eid, _ in replace_buffer.entries()] == ["P2", "P1"]

    def test_id_field_is_set_from_key(self, replace_buffer):
        """Test that the staged record carries its id or temp id."""
        temp_id = new_temp_id()
        replace_buffer.record_replace(temp_id, {"name": "New"})

        assert replace_buffer.get(temp_id)["id"] == temp_id
        assert is_temp_id(temp_id)

    def test_patch_not_supported(self, replace_buffer):
        """Test that replace buffers reject field patches."""
        with pytest.raises(TypeError):
            replace_buffer.record_patch("P1", "price", 10)

    def test_attachments_survive_staging(self, replace_buffer):
        """Test that attachment references are stored as given."""
        refs = [AttachmentRef.existing("https://x/1.jpg"), AttachmentRef.local("f1.jpg", b"1")]
        replace_buffer.record_replace("P1", {"image": refs})

        assert replace_buffer.get("P1")["image"] == refs


class TestStagingBuffer:
    """Tests for shared StagingBuffer behaviour."""

    def test_dirty_and_clear(self, patch_buffer):
        """Test the dirty flag across staging and clearing."""
        assert patch_buffer.is_dirty() is False

        patch_buffer.record_patch("A", "status", "shipped")
        assert patch_buffer.is_dirty() is True

        patch_buffer.clear()
        assert patch_buffer.is_dirty() is False
        assert patch_buffer.get("A") is None

    def test_discard(self, replace_buffer):
        """Test dropping one staged entry."""
        replace_buffer.record_replace("NEW_1", {"name": "x"})

        assert replace_buffer.discard("NEW_1") is True
        assert replace_buffer.discard("NEW_1") is False
        assert not replace_buffer.is_dirty()

    def test_locked_buffer_rejects_edits(self, patch_buffer):
        """Test that edits are refused while a commit holds the lock."""
        patch_buffer.record_patch("A", "status", "shipped")

        with patch_buffer.commit_lock():
            assert patch_buffer.locked
            with pytest.raises(StagingLockedError):
                patch_buffer.record_patch("A", "note", "late")
            with pytest.raises(StagingLockedError):
                patch_buffer.clear()

        assert not patch_buffer.locked
        assert patch_buffer.get("A") == {"status": "shipped"}

    def test_lock_released_on_error(self, patch_buffer):
        """Test that the lock is released when the commit body raises."""
        with pytest.raises(RuntimeError):
            with patch_buffer.commit_lock():
                raise RuntimeError("boom")

        patch_buffer.record_patch("A", "status", "shipped")
        assert patch_buffer.is_dirty()

    def test_state_is_a_copy(self, replace_buffer):
        """Test that state() cannot be used to edit the buffer."""
        replace_buffer.record_replace("P1", {"name": "a"})
        state = replace_buffer.state()
        state[0][1]["name"] = "changed"

        assert replace_buffer.get("P1")["name"] == "a"

    def test_strategy_selected_by_shape(self, patch_buffer, replace_buffer):
        """Test that each shape gets its own strategy."""
        assert isinstance(patch_buffer.strategy, PatchStaging)
        assert isinstance(replace_buffer.strategy, ReplaceStaging)
