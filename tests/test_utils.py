from __future__ import annotations

import base64

import pytest

from models.schemas import ImagePayload
from services.utils import (
    decode_data_url,
    encode_data_url,
    read_local_image,
    sniff_mime,
    strip_data_url_prefix,
    validate_image_path,
)


@pytest.mark.parametrize("mime", ["image/png", "image/jpeg", "image/jpg", "image/webp"])
def test_decode_round_trips_recognised_prefixes(mime):
    raw = bytes(range(256))
    data_url = encode_data_url(raw, mime)

    data, decoded_mime = decode_data_url(data_url)

    assert data == raw
    assert decoded_mime == mime
    assert encode_data_url(data, decoded_mime) == data_url


def test_strip_leaves_bare_payload_untouched():
    payload = base64.b64encode(b"abc").decode()
    assert strip_data_url_prefix(payload) == payload
    assert decode_data_url(payload) == (b"abc", "image/jpeg")


@pytest.mark.parametrize("value", ["", "not a data url", "data:text/plain;base64,QQ==", "aGVsbG8="])
def test_sniff_mime_falls_back_to_jpeg(value):
    assert sniff_mime(value) == "image/jpeg"


def test_sniff_mime_reads_declared_type():
    assert sniff_mime("data:image/svg+xml;base64,PHN2Zz4=") == "image/svg+xml"


def test_decode_rejects_malformed_base64():
    with pytest.raises(ValueError):
        decode_data_url("data:image/png;base64,@@not-base64@@")


def test_image_payload_data_url_helpers():
    payload = ImagePayload.from_data_url(encode_data_url(b"\x89PNG", "image/png"))
    assert payload == ImagePayload(data=b"\x89PNG", mime_type="image/png")
    assert payload.to_data_url().startswith("data:image/png;base64,")


def test_read_local_image_guesses_mime(tmp_path):
    path = tmp_path / "face.png"
    path.write_bytes(b"png-bytes")
    assert read_local_image(str(path)) == (b"png-bytes", "image/png")


def test_read_local_image_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_local_image(str(tmp_path / "missing.jpg"))


def test_validate_image_path_rejects_unknown_extension(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(ValueError):
        validate_image_path(str(path))


def test_decode_strips_other_declared_types():
    data_url = encode_data_url(b"GIF89a", "image/gif")
    assert decode_data_url(data_url) == (b"GIF89a", "image/gif")
    assert ImagePayload.from_data_url(data_url).mime_type == "image/gif"
