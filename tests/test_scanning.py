import logging
import queue
import threading
from datetime import datetime

import pytest

from onthisday import config
from onthisday.metadata.extract import MetadataExtractor
from onthisday.metadata.linking import CompanionResolver
from onthisday.models import DateSource, MediaKind, ResultStatus
from onthisday.scanning.filesystem import DONE, ExtractionPipeline, iter_media_files, needs_reindex
from onthisday.scanning.hasher import FileHasher


class FixedExtractor(MetadataExtractor):
    def __init__(self, when=datetime(2019, 3, 14, 10, 0, 0)):
        self.when = when
        self.calls = []

    def extract(self, path, mtime=None):
        self.calls.append(path)
        return self.when, DateSource.EXIF_ORIGINAL


def drain(q):
    items = []
    while True:
        item = q.get_nowait()
        if item is DONE:
            return items
        items.append(item)


def test_needs_reindex(make_record):
    rec = make_record("/a.jpg", file_size=10, file_mtime_ns=500)

    assert needs_reindex(None, 10, 500)
    assert not needs_reindex(rec, 10, 500)
    assert needs_reindex(rec, 11, 500)
    assert needs_reindex(rec, 10, 501)


def test_iter_media_files_filters_and_orders(tmp_path):
    sub = tmp_path / "a"
    sub.mkdir()
    (sub / "b.JPG").write_bytes(b"b")
    (tmp_path / "c.mp4").write_bytes(b"c")
    (tmp_path / "notes.txt").write_text("skip")
    (tmp_path / "._c.mp4").write_bytes(b"resource fork")

    files = list(iter_media_files(tmp_path))

    assert files == [tmp_path / "c.mp4", sub / "b.JPG"]


def test_iter_media_files_stops_on_cancel(tmp_path):
    (tmp_path / "a.jpg").write_bytes(b"a")
    cancel = threading.Event()
    cancel.set()
    assert list(iter_media_files(tmp_path, cancel)) == []


def test_discover_suppresses_companions_and_missing_roots(tmp_path, caplog):
    root = tmp_path / "A"
    root.mkdir()
    (root / "IMG_0001.heic").write_bytes(b"photo")
    (root / "IMG_0001.mov").write_bytes(b"live")
    (root / "b.mp4").write_bytes(b"video")
    missing = tmp_path / "nope"

    pipeline = ExtractionPipeline(extractor=FixedExtractor(), max_workers=2)
    with caplog.at_level(logging.WARNING):
        candidates = pipeline.discover([missing, root], CompanionResolver())

    assert candidates == [root / "b.mp4", root / "IMG_0001.heic"]
    assert "Photo directory not found" in caplog.text


def test_discover_lists_overlapping_roots_once(tmp_path):
    root = tmp_path / "A"
    sub = root / "sub"
    sub.mkdir(parents=True)
    (root / "a.jpg").write_bytes(b"photo")
    (sub / "c.jpg").write_bytes(b"photo")

    pipeline = ExtractionPipeline(extractor=FixedExtractor(), max_workers=2)
    candidates = pipeline.discover([root, sub, root], CompanionResolver())

    assert sorted(candidates) == [root / "a.jpg", sub / "c.jpg"]


def test_process_file_new_and_unchanged(tmp_path, make_record):
    p = tmp_path / "a.jpg"
    p.write_bytes(b"photo")
    extractor = FixedExtractor()
    pipeline = ExtractionPipeline(extractor=extractor, hash_files=False)
    resolver = CompanionResolver()

    res = pipeline.process_file(p, None, resolver)
    assert res.status == ResultStatus.EXTRACTED
    rec = res.record
    assert rec.file_path == str(p)
    assert rec.file_name == "a.jpg"
    assert rec.media_kind == MediaKind.PHOTO
    assert rec.file_size == 5
    assert rec.file_hash is None
    assert (rec.year, rec.month, rec.day) == (2019, 3, 14)

    st = p.stat()
    existing = make_record(p, file_size=st.st_size, file_mtime_ns=st.st_mtime_ns, id=7)
    res = pipeline.process_file(p, existing, resolver)
    assert res.status == ResultStatus.UNCHANGED
    assert len(extractor.calls) == 1


def test_process_file_keeps_id_on_change(tmp_path, make_record):
    p = tmp_path / "a.jpg"
    p.write_bytes(b"photo")
    existing = make_record(p, file_size=1, id=42)

    res = ExtractionPipeline(extractor=FixedExtractor()).process_file(p, existing, CompanionResolver())

    assert res.status == ResultStatus.EXTRACTED
    assert res.record.id == 42
    assert res.record.file_hash is not None


def test_process_file_relinks_companion_without_extracting(tmp_path, make_record):
    p = tmp_path / "IMG_0001.jpg"
    p.write_bytes(b"photo")
    (tmp_path / "IMG_0001.mov").write_bytes(b"live")
    st = p.stat()
    existing = make_record(p, file_size=st.st_size, file_mtime_ns=st.st_mtime_ns, id=3)
    extractor = FixedExtractor()

    res = ExtractionPipeline(extractor=extractor).process_file(p, existing, CompanionResolver())

    assert res.status == ResultStatus.EXTRACTED
    assert res.record.companion_video_path == str(tmp_path / "IMG_0001.mov")
    assert res.record.id == 3
    assert extractor.calls == []


def test_process_file_failure_is_returned(tmp_path):
    res = ExtractionPipeline(extractor=FixedExtractor()).process_file(
        tmp_path / "vanished.jpg", None, CompanionResolver()
    )
    assert res.status == ResultStatus.FAILED
    assert "FileNotFoundError" in res.error


def test_produce_emits_every_candidate_then_done(tmp_path):
    paths = []
    for i in range(5):
        p = tmp_path / f"{i}.jpg"
        p.write_bytes(b"x" * i)
        paths.append(p)
    q = queue.Queue()

    ExtractionPipeline(extractor=FixedExtractor(), max_workers=3).produce(paths, {}, CompanionResolver(), q)

    items = drain(q)
    assert sorted(r.path for r in items) == sorted(paths)
    assert all(r.status == ResultStatus.EXTRACTED for r in items)


def test_produce_after_cancel_starts_no_work(tmp_path):
    p = tmp_path / "a.jpg"
    p.write_bytes(b"photo")
    cancel = threading.Event()
    cancel.set()
    extractor = FixedExtractor()
    q = queue.Queue()

    ExtractionPipeline(extractor=extractor, cancel_event=cancel).produce([p], {}, CompanionResolver(), q)

    assert drain(q) == []
    assert extractor.calls == []


def test_hasher_small_and_sparse(tmp_path, monkeypatch):
    small = tmp_path / "small.jpg"
    small.write_bytes(b"hello world" * 10)
    hasher = FileHasher()

    full = hasher.fingerprint(small)
    assert len(full) == 64
    assert not full.startswith("s-")

    monkeypatch.setattr(config, "SPARSE_HASH_THRESHOLD", 16)
    assert hasher.fingerprint(small).startswith("s-")


@pytest.mark.parametrize("size", [0, 1, 9000, 20000])
def test_hasher_is_stable(tmp_path, size):
    p = tmp_path / "f.mov"
    p.write_bytes(b"\x01" * size)
    hasher = FileHasher()
    assert hasher.fingerprint(p) == hasher.fingerprint(p, size)
