"""Unit tests for notion_ssg.reconciler."""

import pytest

from notion_ssg.config import SourceConfig
from notion_ssg.reconciler import DirectoryReconciler, markdown_files


def make_source(tmp_path, clean_before_sync):
    return SourceConfig.from_dict(
        {
            "databaseId": "b" * 32,
            "srcDir": "src/posts",
            "srcDirImages": "src/images/posts",
            "basePath": "/posts",
            "layout": "post",
            "cleanBeforeSync": clean_before_sync,
        },
        tmp_path,
    )


def touch(path, content="old"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path.resolve()


class TestCleanFirst:
    """Test cases for the clean-first policy."""

    def test_prepare_removes_markdown_and_reports_stale(self, tmp_path):
        source = make_source(tmp_path, clean_before_sync=True)
        kept = touch(source.output_dir / "kept.md")
        stale = touch(source.output_dir / "stale.md")
        other = touch(source.output_dir / "data.json")
        reconciler = DirectoryReconciler(source, clear_images=False)

        reconciler.prepare()
        assert markdown_files(source.output_dir) == []
        assert other.exists()

        written = touch(source.output_dir / "kept.md", "new")
        report = reconciler.finish([written])

        assert report.written == [kept]
        assert report.deleted == [stale]
        assert markdown_files(source.output_dir) == [kept]

    def test_clears_dedicated_image_directory(self, tmp_path):
        source = make_source(tmp_path, clean_before_sync=True)
        image = touch(source.images_dir / "old-0-abc.png")

        DirectoryReconciler(source, clear_images=True).prepare()

        assert not image.exists()

    def test_leaves_shared_image_directory(self, tmp_path):
        source = make_source(tmp_path, clean_before_sync=True)
        image = touch(source.images_dir / "other-source-0-abc.png")

        DirectoryReconciler(source, clear_images=False).prepare()

        assert image.exists()


class TestDiffAfter:
    """Test cases for the diff-after policy."""

    def test_deletes_only_files_not_rewritten(self, tmp_path):
        source = make_source(tmp_path, clean_before_sync=False)
        kept = touch(source.output_dir / "kept.md")
        stale = touch(source.output_dir / "stale.md")
        notes = touch(source.output_dir / "notes.txt")
        image = touch(source.images_dir / "img.png")
        reconciler = DirectoryReconciler(source, clear_images=True)

        reconciler.prepare()
        assert stale.exists()

        new = touch(source.output_dir / "new.md", "new")
        report = reconciler.finish([kept, new])

        assert report.deleted == [stale]
        assert report.written == [kept, new]
        assert markdown_files(source.output_dir) == sorted([kept, new])
        assert notes.exists()
        assert image.exists()

    def test_creates_missing_directory(self, tmp_path):
        source = make_source(tmp_path, clean_before_sync=False)
        reconciler = DirectoryReconciler(source, clear_images=False)

        reconciler.prepare()

        assert source.output_dir.is_dir()
        assert reconciler.finish([]).deleted == []


@pytest.mark.parametrize("clean_before_sync", [True, False])
def test_duplicate_writes_reported_once(tmp_path, clean_before_sync):
    source = make_source(tmp_path, clean_before_sync)
    reconciler = DirectoryReconciler(source, clear_images=False)
    reconciler.prepare()
    path = touch(source.output_dir / "same.md")

    report = reconciler.finish([path, path])

    assert report.written == [path]
