import pytest

from storj_storage import metadata as codec
from storj_storage.exceptions import InvalidMetadataError
from storj_storage.models import Disposition


def test_attachment_disposition_format():
    header = codec.content_disposition(Disposition.ATTACHMENT, "cool_data.txt")
    assert header == "attachment; filename=\"cool_data.txt\"; filename*=UTF-8''cool_data.txt"


def test_disposition_accepts_plain_strings():
    assert codec.content_disposition("INLINE", "test.txt").startswith("inline; ")
    assert codec.content_disposition("attachment") == "attachment"


def test_disposition_defaults_to_inline_when_only_filename_given():
    assert codec.content_disposition(None, "a.txt").startswith("inline; filename=\"a.txt\"")


def test_non_ascii_filename_gets_ascii_fallback_and_extended_form():
    header = codec.content_disposition(Disposition.ATTACHMENT, "résumé 文件.pdf")
    assert 'filename="resume %3F%3F.pdf"' in header
    assert "filename*=UTF-8''r%C3%A9sum%C3%A9%20%E6%96%87%E4%BB%B6.pdf" in header


def test_quotes_and_newlines_do_not_break_the_header():
    header = codec.content_disposition(Disposition.INLINE, 'evil"\r\nname.txt')
    assert "\r" not in header and "\n" not in header
    assert 'filename="evil%22  name.txt"' in header


def test_unknown_disposition_is_rejected():
    with pytest.raises(InvalidMetadataError):
        codec.content_disposition("download", "a.txt")


def test_empty_filename_is_rejected():
    with pytest.raises(InvalidMetadataError):
        codec.content_disposition(Disposition.INLINE, "   ")


@pytest.mark.parametrize("filename", ["test.txt", "résumé 文件.pdf", 'quote"d.txt', "semi;colon.txt"])
def test_parse_is_inverse_of_render(filename):
    header = codec.content_disposition(Disposition.ATTACHMENT, filename)
    assert codec.parse_content_disposition(header) == (Disposition.ATTACHMENT, filename)


def test_parse_plain_filename_without_extended_form():
    assert codec.parse_content_disposition('inline; filename="plain.txt"') == (Disposition.INLINE, "plain.txt")
    assert codec.parse_content_disposition("attachment") == (Disposition.ATTACHMENT, None)


@pytest.mark.parametrize("header", ["", "form-data; name=x", "inline; filename*=bogus"])
def test_parse_rejects_malformed_values(header):
    with pytest.raises(InvalidMetadataError):
        codec.parse_content_disposition(header)


def test_encode_passes_custom_keys_verbatim():
    params = codec.encode(
        content_type="text/plain",
        filename="a.txt",
        disposition="attachment",
        custom_metadata={"Foo": "bar", "x_y": "z"},
    )
    assert params["ContentType"] == "text/plain"
    assert params["ContentDisposition"].startswith("attachment;")
    assert params["Metadata"] == {"Foo": "bar", "x_y": "z"}


def test_encode_without_disposition_leaves_header_out():
    assert codec.encode(content_type="text/plain") == {"ContentType": "text/plain", "Metadata": {}}


@pytest.mark.parametrize("custom", [{"foo": 1}, {"bad key": "v"}, {"": "v"}])
def test_invalid_custom_metadata(custom):
    with pytest.raises(InvalidMetadataError):
        codec.encode(custom_metadata=custom)


def test_encode_headers_matches_encode():
    headers = codec.encode_headers("text/plain", "test.txt", Disposition.ATTACHMENT, {"foo": "bar"})
    assert headers == {
        "Content-Type": "text/plain",
        "Content-Disposition": "attachment; filename=\"test.txt\"; filename*=UTF-8''test.txt",
        "x-amz-meta-foo": "bar",
    }


def test_decode_head_response():
    head = {
        "ContentType": "text/html",
        "ContentDisposition": codec.content_disposition("attachment", "test.html"),
        "Metadata": {"foo": "baz"},
        "ContentLength": 24,
        "ETag": '"abc"',
    }
    meta = codec.decode(head)
    assert meta.content_type == "text/html"
    assert meta.disposition is Disposition.ATTACHMENT
    assert meta.filename == "test.html"
    assert meta.custom_metadata == {"foo": "baz"}

    stored = codec.stored_object("k", head)
    assert stored.size == 24
    assert stored.etag == "abc"
    assert stored.custom["content-type"] == "text/html"
    assert stored.custom["content-disposition"] == head["ContentDisposition"]
    assert stored.custom["foo"] == "baz"


def test_decode_tolerates_foreign_disposition():
    meta = codec.decode({"ContentDisposition": "form-data; name=upload"})
    assert meta.disposition is None
    assert meta.filename is None
