"""
Tests for temporary upload storage.
"""

import io
import os
import time

from services.storage_service import StorageService


class TestStorageService:
    """Test saving, validating and removing uploads."""

    def test_save_upload_keeps_suffix(self, storage):
        path = storage.save_upload(io.BytesIO(b'payload'), 'Roster.XLSX')

        assert os.path.dirname(path) == storage.temp_dir
        assert os.path.basename(path).startswith('upload-')
        assert path.endswith('.xlsx')
        assert storage.get_file_size(path) == len(b'payload')

    def test_delete_file(self, storage):
        path = storage.save_upload(io.BytesIO(b'x'), 'a.xlsx')

        assert storage.delete_file(path) is True
        assert storage.delete_file(path) is False
        assert storage.delete_file(None) is False

    def test_missing_file_size_is_zero(self, storage):
        assert storage.get_file_size(os.path.join(storage.temp_dir, 'gone.xlsx')) == 0

    def test_validate_file_extension(self, storage):
        assert storage.validate_file_extension('roster.xlsx')
        assert storage.validate_file_extension('ROSTER.XLSM')
        assert not storage.validate_file_extension('roster.csv')
        assert not storage.validate_file_extension('roster')

    def test_validate_file_size(self, storage):
        path = storage.save_upload(io.BytesIO(b'x' * 2048), 'a.xlsx')

        assert storage.validate_file_size(path, max_size_mb=1)
        assert not storage.validate_file_size(path, max_size_mb=0)

    def test_cleanup_removes_only_stale_files(self, tmp_path):
        storage = StorageService(str(tmp_path / 'stale'))
        old = storage.save_upload(io.BytesIO(b'old'), 'old.xlsx')
        fresh = storage.save_upload(io.BytesIO(b'new'), 'new.xlsx')

        two_days_ago = time.time() - 48 * 3600
        os.utime(old, (two_days_ago, two_days_ago))

        assert storage.cleanup_temp_files(older_than_hours=24) == 1
        assert not os.path.exists(old)
        assert os.path.exists(fresh)
