from datetime import datetime

from voiceminutes.storage import (
    build_document_path,
    fallback_basename,
    sanitize_filename,
    timestamp_slug,
)


def test_timestamp_slug_format():
    slug = timestamp_slug(datetime(2024, 1, 2, 3, 4, 5))
    assert slug == "2024-01-02_030405"


def test_fallback_basename_is_timestamp_prefixed():
    name = fallback_basename()
    assert name.endswith("--meeting_summary")
    assert name[:4].isdigit()


def test_sanitize_filename_replaces_unsafe_characters():
    assert sanitize_filename('a/b\\c:d*e?f"g<h>i|j\nk') == "a_b_c_d_e_f_g_h_i_j_k"


def test_build_document_path_creates_directory(tmp_path):
    target = tmp_path / "nested" / "docs"
    path = build_document_path(str(target), "議事録")
    assert target.is_dir()
    assert path.endswith("議事録.pdf")
