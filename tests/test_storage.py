import pytest

from assessment.utils.exceptions import StorageError
from assessment.utils.helpers import format_time, parse_bool, upload_filename
from tests.conftest import T0


def test_store_starts_with_empty_log(response_store):
    assert response_store.responses_file.read_text() == "[]"
    assert response_store.all() == []


def test_append_preserves_order(response_store):
    response_store.append({"questionId": "A-1"})
    response_store.append({"questionId": "A-2"})
    assert [r["questionId"] for r in response_store.all()] == ["A-1", "A-2"]


def test_corrupt_log_raises_storage_error(response_store):
    response_store.responses_file.write_text("{not json")
    with pytest.raises(StorageError):
        response_store.append({"questionId": "A-1"})


def test_save_audio_anonymous(response_store):
    name = response_store.save_audio(b"abc", None, "A", "A-1", "clip.ogg")
    assert name == f"anonymous_A_A-1_{T0}.ogg"
    assert (response_store.upload_dir / name).read_bytes() == b"abc"


def test_upload_filename_strips_separators():
    assert upload_filename("../x", "A", "A-1", None, 5) == "..-x_A_A-1_5.webm"


def test_format_time():
    assert format_time(0) == "00:00"
    assert format_time(65) == "01:05"
    assert format_time(3000) == "50:00"
    assert format_time(-3) == "00:00"


def test_parse_bool():
    assert parse_bool("true") is True
    assert parse_bool(True) is True
    assert parse_bool("false") is False
    assert parse_bool(None) is False
    assert parse_bool("yes") is False
