"""
test_store.py

Unit tests for RecordStore.

Tests for appending, scanning, lookups, in-place updates, torn trailing
records, lifecycle and IO error handling.
"""

import unittest
import tempfile
import shutil
import os
from unittest.mock import MagicMock, patch

from changetracker.codec import CHANGE_ITEM_CODEC, PRODUCT_CODEC
from changetracker.exceptions import (
    FieldTooLongError,
    MisalignedOffsetError,
    ReaderError,
    NotFoundError,
    ShortReadError,
    StorageError,
    WriterError,
)
from changetracker.models import ChangeItem, Product
from changetracker.store import RecordStore


class TestRecordStore(unittest.TestCase):
    """Test cases for RecordStore."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.test_dir, "product.dat")
        self.store = RecordStore(self.path, PRODUCT_CODEC)

    def tearDown(self):
        """Clean up test fixtures."""
        self.store.close()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def _append_products(self, *names):
        return [self.store.append(Product(name)) for name in names]

    def _raw_bytes(self) -> bytes:
        with open(self.path, "rb") as f:
            return f.read()

    def test_store_creates_empty_file(self):
        """Test that opening a store creates its file."""
        self.assertTrue(os.path.exists(self.path))
        self.assertEqual(self.store.file_size(), 0)
        self.assertEqual(self.store.record_count(), 0)

    def test_open_in_missing_directory(self):
        """Test that an unopenable path raises StorageError."""
        with self.assertRaises(StorageError):
            RecordStore(os.path.join(self.test_dir, "missing", "product.dat"), PRODUCT_CODEC)

    def test_append_returns_offsets(self):
        """Test that records are appended in fixed-size slots."""
        offsets = self._append_products("A", "B", "C")

        self.assertEqual(offsets, [0, 20, 40])
        self.assertEqual(self.store.file_size(), 60)
        self.assertEqual(self.store.record_count(), 3)

    def test_append_rejects_long_field(self):
        """Test that an over-width record writes nothing."""
        self._append_products("A")

        with self.assertRaises(FieldTooLongError):
            self.store.append(Product("ElevenChars"))
        self.assertEqual(self.store.file_size(), 20)

    def test_scan_from_start(self):
        """Test that a scan yields every record in file order."""
        self._append_products("A", "B", "C")

        scanned = list(self.store.scan_from(0))

        self.assertEqual(scanned, [(0, Product("A")), (20, Product("B")), (40, Product("C"))])

    def test_scan_from_offset(self):
        """Test that a scan can start at a later slot."""
        self._append_products("A", "B", "C")

        names = [record.product_name for _, record in self.store.scan_from(20)]

        self.assertEqual(names, ["B", "C"])

    def test_scan_past_end(self):
        """Test that a scan starting at end-of-file is empty."""
        self._append_products("A")

        self.assertEqual(list(self.store.scan_from(20)), [])
        self.assertEqual(list(self.store.scan_from(200)), [])

    def test_scan_misaligned_offset(self):
        """Test that a scan must start on a record boundary."""
        self._append_products("A", "B")

        with self.assertRaises(MisalignedOffsetError):
            list(self.store.scan_from(3))

    def test_scan_ignores_torn_tail(self):
        """Test that a partial trailing record ends the scan silently."""
        self._append_products("A", "B")
        self.store.close()
        with open(self.path, "ab") as f:
            f.write(b"\x00" * 7)

        self.store = RecordStore(self.path, PRODUCT_CODEC)
        names = [record.product_name for _, record in self.store.scan_from(0)]

        self.assertEqual(names, ["A", "B"])
        self.assertEqual(self.store.record_count(), 2)
        self.assertEqual(self.store.get_stats()['partial_bytes'], 7)

    def test_scan_logs_torn_tail_at_debug(self):
        """Test that scans past a torn tail do not repeat the open warning."""
        self._append_products("A")
        self.store.close()
        with open(self.path, "ab") as f:
            f.write(b"\x00" * 7)
        self.store = RecordStore(self.path, PRODUCT_CODEC)

        with patch("changetracker.store.logger") as mock_logger:
            self.store.exists(lambda record: record.product_name == "B")
            list(self.store.scan_from(0))

        mock_logger.warning.assert_not_called()
        self.assertEqual(mock_logger.debug.call_count, 2)

    def test_append_overwrites_torn_tail(self):
        """Test that appending after a torn write restores alignment."""
        self._append_products("A", "B")
        self.store.close()
        with open(self.path, "ab") as f:
            f.write(b"\x00" * 7)

        self.store = RecordStore(self.path, PRODUCT_CODEC)
        offset = self.store.append(Product("C"))

        self.assertEqual(offset, 40)
        self.assertEqual(self.store.file_size(), 60)
        self.assertEqual(self.store.read_at(40), Product("C"))

    def test_read_at(self):
        """Test reading one record by offset."""
        self._append_products("A", "B")

        self.assertEqual(self.store.read_at(20), Product("B"))

    def test_read_at_end_of_file(self):
        """Test that reading past the last record raises ShortReadError."""
        self._append_products("A")

        with self.assertRaises(ShortReadError) as ctx:
            self.store.read_at(20)
        self.assertEqual(ctx.exception.actual, 0)

    def test_exists(self):
        """Test predicate lookups."""
        self._append_products("A", "B")

        self.assertTrue(self.store.exists(lambda p: p.product_name == "B"))
        self.assertFalse(self.store.exists(lambda p: p.product_name == "Z"))

    def test_exists_on_empty_store(self):
        """Test that nothing exists in an empty file."""
        self.assertFalse(self.store.exists(lambda p: True))

    def test_find_first_and_offset(self):
        """Test that lookups return the first match."""
        self._append_products("A", "B", "B")

        self.assertEqual(self.store.find_first(lambda p: p.product_name == "B"), Product("B"))
        self.assertEqual(self.store.find_offset(lambda p: p.product_name == "B"), 20)
        self.assertIsNone(self.store.find_first(lambda p: p.product_name == "Z"))
        self.assertIsNone(self.store.find_offset(lambda p: p.product_name == "Z"))

    def test_update_at_rewrites_one_slot(self):
        """Test that an update leaves every other byte untouched."""
        self._append_products("A", "B", "C")
        before = self._raw_bytes()

        self.store.update_at(20, Product("Bee"))
        after = self._raw_bytes()

        self.assertEqual(len(after), len(before))
        self.assertEqual(after[:20], before[:20])
        self.assertEqual(after[40:], before[40:])
        self.assertEqual(self.store.read_at(20), Product("Bee"))

    def test_update_at_misaligned(self):
        """Test that updates must target a record boundary."""
        self._append_products("A", "B")

        with self.assertRaises(MisalignedOffsetError):
            self.store.update_at(10, Product("X"))
        with self.assertRaises(MisalignedOffsetError):
            self.store.update_at(-20, Product("X"))

    def test_update_at_past_end(self):
        """Test that updates cannot grow the file."""
        self._append_products("A", "B")

        with self.assertRaises(MisalignedOffsetError):
            self.store.update_at(40, Product("X"))
        self.assertEqual(self.store.file_size(), 40)

    def test_update_at_rejects_long_field(self):
        """Test that a rejected update leaves the file unchanged."""
        self._append_products("A")
        before = self._raw_bytes()

        with self.assertRaises(FieldTooLongError):
            self.store.update_at(0, Product("ElevenChars"))
        self.assertEqual(self._raw_bytes(), before)

    def test_modify(self):
        """Test modify-by-key keeps the record's slot."""
        self._append_products("A", "B", "C")

        offset = self.store.modify(lambda p: p.product_name == "B", Product("Bee"), key="B")

        self.assertEqual(offset, 20)
        self.assertEqual(self.store.record_count(), 3)
        names = [record.product_name for _, record in self.store.scan_from(0)]
        self.assertEqual(names, ["A", "Bee", "C"])

    def test_modify_not_found(self):
        """Test that modifying a missing key raises NotFoundError."""
        self._append_products("A")
        before = self._raw_bytes()

        with self.assertRaises(NotFoundError) as ctx:
            self.store.modify(lambda p: p.product_name == "Z", Product("Z"), key="Z")

        self.assertEqual(ctx.exception.key, "Z")
        self.assertEqual(ctx.exception.entity, "product")
        self.assertIsInstance(ctx.exception, KeyError)
        self.assertEqual(self._raw_bytes(), before)

    def test_last_record(self):
        """Test reading only the trailing record."""
        self.assertIsNone(self.store.last_record())

        self._append_products("A", "B")
        self.assertEqual(self.store.last_record(), Product("B"))

    def test_persistence_across_reopen(self):
        """Test that records survive closing and reopening the file."""
        self._append_products("A", "B")
        self.store.close()

        self.store = RecordStore(self.path, PRODUCT_CODEC)

        self.assertEqual(self.store.record_count(), 2)
        self.assertEqual(self.store.read_at(0), Product("A"))

    def test_close_is_idempotent(self):
        """Test that closing twice is harmless and later use fails."""
        self.store.close()
        self.store.close()

        self.assertIsNone(self.store.file_handle)
        with self.assertRaises(StorageError):
            self.store.append(Product("A"))

    def test_context_manager(self):
        """Test that the store closes its file on exit."""
        path = os.path.join(self.test_dir, "change-item.dat")

        with RecordStore(path, CHANGE_ITEM_CODEC) as store:
            store.append(ChangeItem(0, "Widget", "1.0", "Fix", "1", "Open"))
            self.assertEqual(store.file_size(), 146)

        self.assertIsNone(store.file_handle)

    def test_append_io_error(self):
        """Test that write failures raise WriterError."""
        real_handle = self.store.file_handle
        mock_handle = MagicMock()
        mock_handle.seek.return_value = 0
        mock_handle.write.side_effect = OSError("No space left on device")
        self.store.file_handle = mock_handle

        try:
            with self.assertRaises(WriterError) as ctx:
                self.store.append(Product("A"))
        finally:
            self.store.file_handle = real_handle

        self.assertEqual(ctx.exception.operation, "append")
        self.assertEqual(ctx.exception.file_path, self.path)
        self.assertIsInstance(ctx.exception, StorageError)

    def test_open_closes_handle_when_size_fails(self):
        """Test that a failed size check on open does not leak the handle."""
        mock_handle = MagicMock()
        error = ReaderError("Cannot determine file size", self.path, None)

        with patch("changetracker.store.open", return_value=mock_handle, create=True), \
                patch.object(RecordStore, "file_size", side_effect=error):
            with self.assertRaises(ReaderError):
                RecordStore(self.path, PRODUCT_CODEC)

        mock_handle.close.assert_called_once_with()

    def test_get_stats(self):
        """Test store statistics."""
        self._append_products("A", "B")

        stats = self.store.get_stats()

        self.assertEqual(stats['file_path'], self.path)
        self.assertEqual(stats['record_size'], 20)
        self.assertEqual(stats['file_size'], 40)
        self.assertEqual(stats['record_count'], 2)
        self.assertEqual(stats['partial_bytes'], 0)


if __name__ == '__main__':
    unittest.main()
