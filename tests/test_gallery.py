import pytest

from ecom_studio.errors import ValidationError
from ecom_studio.services import AssetGallery, GalleryKind

from conftest import ts

CDN = "https://cdn.test"


@pytest.fixture
def files(db):
    db.seed(
        "user_files",
        {"id": "v1", "user_id": "user-1", "folder": "video-assets", "file_type": "video",
         "file_path": "user-user-1/video-assets/beta.mp4", "file_name": "beta.mp4",
         "file_size": 300, "created_at": ts(1), "is_favorite": True},
        {"id": "v2", "user_id": "user-1", "folder": "video-assets", "file_type": "video",
         "file_path": "user-user-1/video-assets/Alpha.mp4", "file_name": "Alpha.mp4",
         "file_size": 100, "created_at": ts(2), "is_viewed": True},
        {"id": "v3", "user_id": "user-1", "folder": "video-assets", "file_type": "video",
         "file_path": "user-user-1/video-assets/gamma.mp4", "file_name": "gamma.mp4",
         "file_size": 200, "created_at": ts(3)},
        {"id": "i1", "user_id": "user-1", "folder": "image-assets", "file_type": "image",
         "file_path": "user-user-1/image-assets/shot.png", "file_name": "shot.png",
         "file_size": 50, "created_at": ts(4), "is_favorite": True},
        {"id": "x1", "user_id": "user-2", "folder": "video-assets", "file_type": "video",
         "file_path": "user-user-2/video-assets/other.mp4", "file_name": "other.mp4",
         "created_at": ts(5)},
    )
    return db


def gallery(db, kind, toaster, page_size=18):
    return AssetGallery(db, "user-1", kind, toaster, cdn_url=CDN + "/", page_size=page_size)


def ids(items):
    return [f.id for f in items]


def test_video_gallery_newest_first(files, toaster):
    videos = gallery(files, GalleryKind.VIDEO, toaster)

    assert ids(videos.load()) == ["v3", "v2", "v1"]
    assert videos.unviewed_video_count() == 2


@pytest.mark.parametrize(
    "sort_by, expected",
    [
        ("oldest", ["v1", "v2", "v3"]),
        ("name_asc", ["v2", "v1", "v3"]),
        ("name_desc", ["v3", "v1", "v2"]),
        ("size_desc", ["v1", "v3", "v2"]),
        ("size_asc", ["v2", "v3", "v1"]),
    ],
)
def test_sort_orders(files, toaster, sort_by, expected):
    videos = gallery(files, GalleryKind.VIDEO, toaster)
    videos.load()

    assert ids(videos.sort(sort_by)) == expected


def test_invalid_sort(files, toaster):
    videos = gallery(files, GalleryKind.VIDEO, toaster)
    with pytest.raises(ValidationError):
        videos.sort("random")


def test_load_more_and_sort_resets_page(files, toaster):
    videos = gallery(files, GalleryKind.VIDEO, toaster, page_size=2)
    videos.load()

    assert len(videos.visible) == 2 and videos.has_more
    assert len(videos.load_more()) == 3
    assert not videos.has_more

    videos.sort("oldest")
    assert videos.page == 0
    assert len(videos.visible) == 2


def test_favorites_gallery_spans_folders(files, toaster):
    favorites = gallery(files, GalleryKind.FAVORITES, toaster)

    assert ids(favorites.load()) == ["i1", "v1"]


def test_unfavorite_inside_favorites_removes_item(files, toaster):
    favorites = gallery(files, GalleryKind.FAVORITES, toaster)
    favorites.load()
    favorites.open_lightbox("v1")

    assert favorites.toggle_favorite("v1") is False

    assert ids(favorites.items) == ["i1"]
    assert favorites.lightbox is None
    assert toaster.last.message == "Removed from favorites!"
    assert files.rows("user_files")[0]["is_favorite"] is False


def test_favorite_persist_failure_keeps_local_change(files, toaster):
    videos = gallery(files, GalleryKind.VIDEO, toaster)
    videos.load()
    files.fail_on("update", "user_files")

    assert videos.toggle_favorite("v3") is True

    assert videos.items[0].is_favorite
    assert toaster.last.kind == "error"


def test_lightbox_marks_viewed_once(files, toaster):
    videos = gallery(files, GalleryKind.VIDEO, toaster)
    videos.load()

    url = videos.open_lightbox("v3")

    assert url == "https://cdn.test/user-user-1/video-assets/gamma.mp4"
    assert files.rows("user_files")[2]["is_viewed"] is True
    assert videos.unviewed_video_count() == 1

    videos.close_lightbox()
    videos.open_lightbox("v2")
    assert files.calls.count(("update", "user_files")) == 1


def test_load_failure_empties_gallery(files, toaster):
    files.fail_on("select", "user_files")
    images = gallery(files, GalleryKind.IMAGE, toaster)

    assert images.load() == []
    assert toaster.last.message.startswith("Connection problem")


def test_store_timestamps_with_uneven_fractions(files, toaster):
    files.seed(
        "user_files",
        {"id": "v4", "user_id": "user-1", "folder": "video-assets", "file_type": "video",
         "file_path": "user-user-1/video-assets/delta.mp4", "file_name": "delta.mp4",
         "file_size": 10, "created_at": "2025-03-01T12:02:30.12345+00:00"},
        {"id": "v5", "user_id": "user-1", "folder": "video-assets", "file_type": "video",
         "file_path": "user-user-1/video-assets/eps.mp4", "file_name": "eps.mp4",
         "file_size": 10, "created_at": "2025-03-01T12:10:00.1Z"},
    )
    videos = gallery(files, GalleryKind.VIDEO, toaster)

    assert ids(videos.load()) == ["v5", "v3", "v4", "v2", "v1"]
