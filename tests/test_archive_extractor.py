"""
Tests for cirrus/archive_extractor.py – zip archive → source assets.

Archives are built in memory with the ``make_zip`` fixture so each test
states exactly which entries exist.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from cirrus.archive_extractor import extract_archive
from cirrus.errors import ArchiveParseError, NoValidAssetsError


class TestExtractArchive:
    @pytest.mark.asyncio
    async def test_keeps_only_allowlisted_files(self, make_zip) -> None:
        """Directories and non-source files are dropped; paths are kept whole."""
        data = make_zip(
            {
                "src": None,
                "src/app.py": "print('hi')\n",
                "src/styles.CSS": "body {}",
                "assets/logo.png": b"\x89PNG\r\n",
                "README": "no extension",
                "notes.txt": "plain text",
            }
        )

        assets = await extract_archive(data)

        assert {a.name: a.content for a in assets} == {
            "src/app.py": "print('hi')\n",
            "src/styles.CSS": "body {}",
        }

    @pytest.mark.asyncio
    async def test_preserves_archive_order(self, make_zip) -> None:
        data = make_zip({"b.ts": "b", "a.go": "a", "c.rs": "c"})
        assets = await extract_archive(data)
        assert [a.name for a in assets] == ["b.ts", "a.go", "c.rs"]

    @pytest.mark.asyncio
    async def test_decodes_utf8(self, make_zip) -> None:
        data = make_zip({"i18n.json": '{"greeting": "héllo ✓"}'.encode("utf-8")})
        assets = await extract_archive(data)
        assert assets[0].content == '{"greeting": "héllo ✓"}'

    @pytest.mark.asyncio
    async def test_undecodable_bytes_become_replacement_chars(self, make_zip) -> None:
        """Content is always text, even for a mislabelled binary file."""
        data = make_zip({"blob.js": b"ok\xff\xfe"})
        assets = await extract_archive(data)
        assert isinstance(assets[0].content, str)
        assert assets[0].content.startswith("ok")
        assert "�" in assets[0].content

    @pytest.mark.asyncio
    async def test_no_allowlisted_entries_raises(self, make_zip) -> None:
        data = make_zip({"docs": None, "image.png": b"\x00", "data.csv": "a,b"})
        with pytest.raises(NoValidAssetsError, match="No valid code files detected"):
            await extract_archive(data)

    @pytest.mark.asyncio
    async def test_empty_archive_raises(self, make_zip) -> None:
        with pytest.raises(NoValidAssetsError):
            await extract_archive(make_zip({}))

    @pytest.mark.asyncio
    async def test_not_a_zip_raises(self) -> None:
        with pytest.raises(ArchiveParseError, match="not a valid zip"):
            await extract_archive(b"definitely not a zip file")

    @pytest.mark.asyncio
    async def test_truncated_zip_raises(self, make_zip) -> None:
        data = make_zip({"app.py": "x = 1\n" * 200})
        with pytest.raises(ArchiveParseError):
            await extract_archive(data[: len(data) // 2])

    @pytest.mark.asyncio
    async def test_many_entries_all_extracted(self, make_zip) -> None:
        """Concurrent decoding still yields every qualifying entry exactly once."""
        entries = {f"pkg/mod_{i}.py": f"VALUE = {i}\n" for i in range(50)}
        entries.update({f"pkg/data_{i}.bin": b"\x00" for i in range(10)})
        assets = await extract_archive(make_zip(entries))
        assert len(assets) == 50
        assert {a.name for a in assets} == {f"pkg/mod_{i}.py" for i in range(50)}


class TestUnreadableEntries:
    @pytest.mark.asyncio
    async def test_encrypted_entry_raises(self, make_zip, patch_zip_headers) -> None:
        data = patch_zip_headers(make_zip({"secret.py": "TOKEN = 1\n"}), flag_bits=0x1)
        with pytest.raises(ArchiveParseError, match="encrypted: secret.py"):
            await extract_archive(data)

    @pytest.mark.asyncio
    async def test_unsupported_compression_raises(self, make_zip, patch_zip_headers) -> None:
        data = patch_zip_headers(make_zip({"app.py": "x = 1\n"}), compress_type=99)
        with pytest.raises(ArchiveParseError, match="ZIP parsing failed"):
            await extract_archive(data)


class TestExtractedSizeLimit:
    @pytest.mark.asyncio
    async def test_oversized_expansion_raises(self, make_zip) -> None:
        data = make_zip({"big.py": "x" * 10_000})
        assert len(data) < 1_000
        with pytest.raises(ArchiveParseError, match="over the 1,000-byte limit"):
            await extract_archive(data, max_size=1_000)

    @pytest.mark.asyncio
    async def test_only_selected_entries_count(self, make_zip) -> None:
        data = make_zip({"a.py": "x" * 500, "blob.bin": b"\0" * 5_000})
        assets = await extract_archive(data, max_size=1_000)
        assert [a.name for a in assets] == ["a.py"]

    @pytest.mark.asyncio
    async def test_default_limit_from_settings(self, make_zip) -> None:
        data = make_zip({"a.py": "x" * 100})
        with patch("cirrus.archive_extractor.settings.MAX_EXTRACTED_SIZE", 50):
            with pytest.raises(ArchiveParseError, match="50-byte limit"):
                await extract_archive(data)
