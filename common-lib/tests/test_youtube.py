from common_lib.youtube import extract_video_id, watch_url, PlayerError


def test_extract_video_id():
    video_id = "dQw4w9WgXcQ"
    for value in [video_id,
                  f" {video_id} ",
                  f"https://www.youtube.com/watch?v={video_id}",
                  f"https://www.youtube.com/watch?list=PL123&v={video_id}&t=42",
                  f"https://youtu.be/{video_id}?t=10",
                  f"https://www.youtube.com/embed/{video_id}"]:
        assert extract_video_id(value) == video_id


def test_extract_video_id_invalid():
    for value in ["", "short", "https://vimeo.com/123456789", "https://www.youtube.com/watch?v=short"]:
        assert extract_video_id(value) is None


def test_watch_url():
    assert watch_url("dQw4w9WgXcQ") == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def test_embedding_disabled():
    assert PlayerError(101).embedding_disabled
    assert PlayerError(150).embedding_disabled
    assert not PlayerError.NOT_FOUND.embedding_disabled
