"""Tests for zip archive creation."""

import io
import os
import sys
import zipfile
from unittest.mock import patch

import pytest

from utils.archiver import Archiver
from utils.errors import ArchiveCreationFailed
from utils.safe_path import PathResolver

needs_raw_names = pytest.mark.skipif(
    sys.platform != 'linux',
    reason='needs a filesystem that stores raw bytes in names',
)


@pytest.fixture
def resolver(root_dir):
    return PathResolver(root_dir)


@pytest.fixture
def archiver(resolver, archive_tmp):
    return Archiver(resolver, tmp_dir=str(archive_tmp))


async def _read_stream(job):
    return b''.join([chunk async for chunk in job.stream(chunk_size=4)])


class TestCollect:

    def test_single_file(self, archiver, resolver):
        target = resolver.resolve('reports/q1.csv')
        assert archiver.collect(target) == {'q1.csv': target.value}

    def test_directory_leaves_only(self, archiver, resolver, root_dir):
        (root_dir / 'reports' / 'empty').mkdir()
        entries = archiver.collect(resolver.resolve('reports'))
        assert set(entries) == {'q1.csv', 'sub/b.txt'}

    def test_symlink_inside_root_included(self, archiver, resolver, root_dir):
        os.symlink(root_dir / 'a.txt', root_dir / 'reports' / 'alias.txt')
        entries = archiver.collect(resolver.resolve('reports'))
        assert entries['alias.txt'] == os.path.realpath(root_dir / 'a.txt')

    def test_symlink_outside_root_skipped(self, archiver, resolver, root_dir, outside_dir):
        os.symlink(outside_dir / 'secret.txt', root_dir / 'reports' / 'secret.txt')
        os.symlink(outside_dir, root_dir / 'reports' / 'outside')
        entries = archiver.collect(resolver.resolve('reports'))
        assert set(entries) == {'q1.csv', 'sub/b.txt'}

    def test_deep_tree(self, deep_tree, low_recursion_limit, tmp_path, archive_tmp):
        deep_tree(depth=low_recursion_limit + 150)
        resolver = PathResolver(tmp_path)
        archiver = Archiver(resolver, tmp_dir=str(archive_tmp))
        entries = archiver.collect(resolver.resolve('deep'))
        assert len(entries) == 1
        (name,) = entries
        assert name.endswith('/d/leaf.txt')

    @needs_raw_names
    def test_undecodable_name_skipped(self, archiver, resolver, root_dir):
        (root_dir / 'reports' / os.fsdecode(b'bad\xff.txt')).write_bytes(b'x')
        entries = archiver.collect(resolver.resolve('reports'))
        assert set(entries) == {'q1.csv', 'sub/b.txt'}


class TestArchive:

    async def test_directory_archive_contents(self, archiver, resolver, root_dir, archive_tmp):
        job = archiver.archive(resolver.resolve('reports'))
        assert job.download_name == 'reports.zip'

        data = await _read_stream(job)
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert sorted(zf.namelist()) == ['q1.csv', 'sub/b.txt']
            assert zf.read('q1.csv') == (root_dir / 'reports' / 'q1.csv').read_bytes()
            assert zf.read('sub/b.txt') == (root_dir / 'reports' / 'sub' / 'b.txt').read_bytes()

        assert os.listdir(archive_tmp) == []

    async def test_single_file_archive(self, archiver, resolver, root_dir):
        job = archiver.archive(resolver.resolve('a.txt'))
        assert job.download_name == 'a.txt.zip'
        with zipfile.ZipFile(io.BytesIO(await _read_stream(job))) as zf:
            assert zf.namelist() == ['a.txt']
            assert zf.read('a.txt') == b'alpha\n'

    async def test_nested_tree_entries(self, tmp_path, archive_tmp):
        """A directory with a.txt and sub/b.txt gives exactly those two entries."""
        tree = tmp_path / 'tree'
        (tree / 'sub').mkdir(parents=True)
        (tree / 'a.txt').write_bytes(b'A' * 1000)
        (tree / 'sub' / 'b.txt').write_bytes(os.urandom(2048))
        resolver = PathResolver(tmp_path)
        job = Archiver(resolver, tmp_dir=str(archive_tmp)).archive(resolver.resolve('tree'))
        with zipfile.ZipFile(io.BytesIO(await _read_stream(job))) as zf:
            assert sorted(zf.namelist()) == ['a.txt', 'sub/b.txt']
            assert zf.read('a.txt') == (tree / 'a.txt').read_bytes()
            assert zf.read('sub/b.txt') == (tree / 'sub' / 'b.txt').read_bytes()

    def test_temp_file_inside_archived_tree_excluded(self, resolver, root_dir):
        archiver = Archiver(resolver, tmp_dir=str(root_dir / 'uploads'))
        job = archiver.archive(resolver.resolve(''))
        try:
            assert not any(name.startswith('uploads/filedeck-') for name in job.entries)
        finally:
            job.cleanup()

    async def test_stream_abort_removes_temp_file(self, archiver, resolver, archive_tmp):
        """Stopping the stream early still removes the temporary file."""
        job = archiver.archive(resolver.resolve('reports'))
        stream = job.stream(chunk_size=4)
        first = await stream.__anext__()
        assert first
        assert len(os.listdir(archive_tmp)) == 1

        await stream.aclose()
        assert os.listdir(archive_tmp) == []

    def test_cleanup_is_idempotent(self, archiver, resolver, archive_tmp):
        job = archiver.archive(resolver.resolve('a.txt'))
        job.cleanup()
        job.cleanup()
        assert os.listdir(archive_tmp) == []

    def test_temp_location_unwritable(self, resolver, tmp_path):
        archiver = Archiver(resolver, tmp_dir=str(tmp_path / 'missing-dir'))
        with pytest.raises(ArchiveCreationFailed):
            archiver.archive(resolver.resolve('reports'))

    def test_write_failure_leaves_no_temp_file(self, archiver, resolver, archive_tmp):
        with patch('utils.archiver.zipfile.ZipFile.write', side_effect=OSError(28, 'No space left on device')):
            with pytest.raises(ArchiveCreationFailed):
                archiver.archive(resolver.resolve('reports'))
        assert os.listdir(archive_tmp) == []

    def test_unreadable_subdirectory_fails(self, archiver, resolver):
        with patch('utils.archiver.os.scandir', side_effect=PermissionError(13, 'Permission denied')):
            with pytest.raises(ArchiveCreationFailed):
                archiver.archive(resolver.resolve('reports'))

    @needs_raw_names
    async def test_archive_with_undecodable_name(self, archiver, resolver, root_dir):
        (root_dir / 'reports' / os.fsdecode(b'bad\xff.txt')).write_bytes(b'x')
        job = archiver.archive(resolver.resolve('reports'))
        with zipfile.ZipFile(io.BytesIO(await _read_stream(job))) as zf:
            assert sorted(zf.namelist()) == ['q1.csv', 'sub/b.txt']
