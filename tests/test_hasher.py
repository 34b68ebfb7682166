"""
Hasher Tests - Verify content fingerprinting.

Tests:
- Digest length per algorithm
- Identical bytes give identical fingerprints
- Error handling for unreadable files
"""

import hashlib

import pytest

from docsearch.hasher import Hasher, fingerprint_file
from docsearch.models import FileInfo
from docsearch.config import SearchConfig


def _info(path):
    stat = path.stat()
    return FileInfo.from_path(path, stat.st_mtime, stat.st_size)


class TestHasher:
    """Tests for the Hasher class."""

    def test_default_is_md5(self, sample_files, test_config):
        """Default fingerprint is the MD5 of the raw bytes."""
        path = sample_files["txt"]

        digest = Hasher(test_config).fingerprint(path)

        assert digest == hashlib.md5(path.read_bytes()).hexdigest()

    @pytest.mark.parametrize("algorithm,length", [("md5", 32), ("sha256", 64), ("xxh64", 16)])
    def test_algorithms(self, sample_files, algorithm, length):
        """Each supported algorithm yields a hex digest of the expected size."""
        config = SearchConfig(hash_algorithm=algorithm)

        digest = fingerprint_file(sample_files["docx"], config)

        assert len(digest) == length
        int(digest, 16)

    def test_unknown_algorithm_rejected(self):
        with pytest.raises(ValueError):
            SearchConfig(hash_algorithm="crc-nope")

    def test_identical_content_same_hash(self, duplicate_files, test_config):
        """Files with identical content have the same fingerprint."""
        file1, file2 = duplicate_files
        hasher = Hasher(test_config)

        assert hasher.fingerprint(file1) == hasher.fingerprint(file2)

    def test_changed_content_changes_hash(self, temp_dir, test_config):
        """Modifying a file's bytes changes its fingerprint."""
        path = temp_dir / "changing.txt"
        hasher = Hasher(test_config)

        path.write_text("version one")
        before = hasher.fingerprint(path)
        path.write_text("version two")

        assert hasher.fingerprint(path) != before

    def test_hashes_large_file_in_chunks(self, temp_dir, test_config):
        """Files larger than one read chunk hash like a single read."""
        path = temp_dir / "large.txt"
        data = b"0123456789abcdef" * 20000
        path.write_bytes(data)

        assert Hasher(test_config).fingerprint(path) == hashlib.md5(data).hexdigest()

    @pytest.mark.asyncio
    async def test_hash_file(self, sample_files, test_config):
        """hash_file wraps the fingerprint in a HashedFile."""
        hasher = Hasher(test_config)
        result = await hasher.hash_file(_info(sample_files["java"]))
        hasher.close()

        assert result is not None
        assert result.info.path == sample_files["java"]
        assert result.is_known is False
        assert result.fingerprint == hasher.fingerprint(sample_files["java"])

    @pytest.mark.asyncio
    async def test_handles_deleted_file(self, temp_dir, test_config):
        """A file deleted between walk and hash returns None, not a crash."""
        path = temp_dir / "temporary.txt"
        path.write_text("Will be deleted")
        info = _info(path)
        path.unlink()

        hasher = Hasher(test_config)
        result = await hasher.hash_file(info)
        hasher.close()

        assert result is None
