from onthisday.metadata.linking import CompanionResolver


def test_live_photo_pairing(tmp_path):
    photo = tmp_path / "IMG_0001.heic"
    video = tmp_path / "IMG_0001.mov"
    photo.write_bytes(b"photo")
    video.write_bytes(b"video")

    resolver = CompanionResolver()

    assert resolver.has_photo_sibling(video)
    assert resolver.is_live_companion(video)
    assert resolver.find_video_companion(photo) == video
    assert not resolver.is_live_companion(photo)


def test_pairing_is_case_insensitive_and_keeps_real_name(tmp_path):
    photo = tmp_path / "img_0002.jpg"
    video = tmp_path / "IMG_0002.MOV"
    photo.write_bytes(b"photo")
    video.write_bytes(b"video")

    resolver = CompanionResolver()

    assert resolver.find_video_companion(photo) == tmp_path / "IMG_0002.MOV"
    assert resolver.is_live_companion(video)


def test_only_mov_is_a_companion(tmp_path):
    photo = tmp_path / "IMG_0003.jpg"
    clip = tmp_path / "IMG_0003.mp4"
    photo.write_bytes(b"photo")
    clip.write_bytes(b"video")

    resolver = CompanionResolver()

    assert resolver.has_photo_sibling(clip)
    assert not resolver.is_live_companion(clip)
    assert resolver.find_video_companion(photo) is None


def test_exact_stem_required(tmp_path):
    (tmp_path / "IMG_0004.jpg").write_bytes(b"photo")
    video = tmp_path / "IMG_0004_edit.mov"
    video.write_bytes(b"video")

    resolver = CompanionResolver()

    assert not resolver.is_live_companion(video)
    assert resolver.find_video_companion(tmp_path / "IMG_0004.jpg") is None


def test_other_directory_does_not_pair(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.mkdir()
    b.mkdir()
    (a / "IMG_0005.jpg").write_bytes(b"photo")
    video = b / "IMG_0005.mov"
    video.write_bytes(b"video")

    assert not CompanionResolver().is_live_companion(video)


def test_listing_is_cached_per_resolver(tmp_path):
    photo = tmp_path / "IMG_0006.jpg"
    photo.write_bytes(b"photo")

    resolver = CompanionResolver()
    assert resolver.find_video_companion(photo) is None

    (tmp_path / "IMG_0006.mov").write_bytes(b"video")

    # Same scan: cached listing
    assert resolver.find_video_companion(photo) is None
    # Next scan: fresh resolver sees the new file
    assert CompanionResolver().find_video_companion(photo) == tmp_path / "IMG_0006.mov"


def test_missing_directory_has_no_siblings(tmp_path):
    ghost = tmp_path / "gone" / "IMG_0007.mov"
    resolver = CompanionResolver()
    assert not resolver.has_photo_sibling(ghost)
    assert resolver.find_video_companion(tmp_path / "gone" / "IMG_0007.jpg") is None
