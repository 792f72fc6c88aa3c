import os

from photo_dedup.models import DedupContext, DedupOptions
from photo_dedup.organization.guard import MutationGuard


def _guard(**opts):
    ctx = DedupContext(options=DedupOptions(**opts))
    return MutationGuard(ctx), ctx


def test_deletes_when_keep_is_bigger(tmp_path, make_file):
    keep = make_file(tmp_path / "a" / "IMG_1.jpg", 200)
    dup = make_file(tmp_path / "b" / "IMG_1.jpg", 100)
    guard, ctx = _guard(delete=True)

    assert guard.guarded_delete(dup, keep)
    assert not os.path.exists(dup)
    assert os.path.exists(keep)
    assert ctx.stats.deleted == 1
    assert ctx.stats.bytes_reclaimed == 100


def test_dry_run_reports_but_keeps_file(tmp_path, make_file, caplog):
    caplog.set_level("INFO")
    keep = make_file(tmp_path / "a" / "IMG_1.jpg", 100)
    dup = make_file(tmp_path / "b" / "IMG_1.jpg", 100)
    guard, ctx = _guard(delete=False)

    assert guard.guarded_delete(dup, keep)
    assert os.path.exists(dup)
    assert ctx.stats.would_delete == 1
    assert "would be DELETED" in caplog.text


def test_refuses_when_delete_target_is_larger(tmp_path, make_file):
    keep = make_file(tmp_path / "a" / "IMG_1.jpg", 100)
    dup = make_file(tmp_path / "b" / "IMG_1.jpg", 1000)
    guard, ctx = _guard(delete=True)

    assert not guard.guarded_delete(dup, keep)
    assert os.path.exists(dup)
    assert ctx.stats.refused == 1


def test_delete_preferred_tolerates_small_deficit(tmp_path, make_file):
    keep = make_file(tmp_path / "a" / "IMG_1.jpg", 100)
    dup = make_file(tmp_path / "Takeout" / "IMG_1.jpg", 130)
    guard, _ = _guard(delete=True, delete_match=["Takeout"])

    assert guard.guarded_delete(dup, keep)
    assert not os.path.exists(dup)


def test_delete_preferred_still_refuses_large_deficit(tmp_path, make_file):
    keep = make_file(tmp_path / "a" / "IMG_1.jpg", 100)
    dup = make_file(tmp_path / "Takeout" / "IMG_1.jpg", 150)
    guard, _ = _guard(delete=True, delete_match=["Takeout"])

    assert not guard.guarded_delete(dup, keep)
    assert os.path.exists(dup)


def test_keep_match_protects_regardless_of_size(tmp_path, make_file):
    keep = make_file(tmp_path / "other" / "IMG_1.jpg", 1000)
    dup = make_file(tmp_path / "sortedByYear" / "IMG_1.jpg", 10)
    guard, ctx = _guard(delete=True, keep_match="sortedByYear")

    assert not guard.guarded_delete(dup, keep)
    assert os.path.exists(dup)
    assert ctx.stats.refused == 1


def test_keep_match_on_both_sides_allows_delete(tmp_path, make_file):
    keep = make_file(tmp_path / "sortedByYear" / "a" / "IMG_1.jpg", 100)
    dup = make_file(tmp_path / "sortedByYear" / "b" / "IMG_1.jpg", 100)
    guard, _ = _guard(delete=True, keep_match="sortedByYear")

    assert guard.guarded_delete(dup, keep)


def test_fails_closed_when_a_path_vanished(tmp_path, make_file):
    keep = make_file(tmp_path / "a" / "IMG_1.jpg", 100)
    dup = str(tmp_path / "gone.jpg")
    guard, _ = _guard(delete=True)

    assert not guard.guarded_delete(dup, keep)
    assert not guard.guarded_delete(keep, dup)
    assert os.path.exists(keep)


def test_uses_current_disk_size_not_record_size(tmp_path, make_file):
    keep = make_file(tmp_path / "a" / "IMG_1.jpg", 100)
    dup = make_file(tmp_path / "b" / "IMG_1.jpg", 100)
    # file grew after indexing
    with open(dup, "ab") as f:
        f.write(b"y" * 500)
    guard, _ = _guard(delete=True)

    assert not guard.guarded_delete(dup, keep)


def test_refuses_to_delete_a_file_in_favour_of_itself(tmp_path, make_file):
    path = make_file(tmp_path / "a" / "IMG_1.jpg", 100)
    guard, ctx = _guard(delete=True)

    assert not guard.guarded_delete(path, path)
    assert not guard.guarded_delete(os.path.join(str(tmp_path), "a", ".", "IMG_1.jpg"), path)
    assert os.path.exists(path)
    assert ctx.stats.refused == 2
    assert ctx.stats.deleted == 0
