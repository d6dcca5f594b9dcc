"""
Тесты источников изображения: inline base64 и чтение файла
"""

import base64

import pytest

from bookworm_client.constants import MSG_IMAGE_PICK_ERROR
from bookworm_client.core.exceptions import ValidationError
from bookworm_client.core.image_source import (
    FileImageSource,
    FileSystemReader,
    InlineImageSource,
    canonical_base64,
    resolve_image_source,
)
from bookworm_client.models.upload import PickedAsset

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(64))


def test_canonical_base64_strips_line_breaks():
    encoded = base64.b64encode(PNG_BYTES).decode("ascii")
    wrapped = "\n".join(encoded[i:i + 16] for i in range(0, len(encoded), 16))

    assert canonical_base64(wrapped) == encoded


def test_canonical_base64_rejects_garbage():
    with pytest.raises(ValidationError) as exc_info:
        canonical_base64("not base64!!")

    assert exc_info.value.field == "image"
    assert exc_info.value.message == MSG_IMAGE_PICK_ERROR


@pytest.mark.asyncio
async def test_inline_and_file_sources_agree(tmp_path):
    image = tmp_path / "cover.png"
    image.write_bytes(PNG_BYTES)
    inline = InlineImageSource(str(image), base64.encodebytes(PNG_BYTES).decode("ascii"))
    from_file = FileImageSource(image.as_uri(), FileSystemReader())

    assert await inline.read_base64() == await from_file.read_base64()


@pytest.mark.asyncio
async def test_file_reader_accepts_plain_path_and_file_uri(tmp_path):
    image = tmp_path / "my cover.jpg"
    image.write_bytes(PNG_BYTES)
    reader = FileSystemReader()

    assert await reader.read_base64(str(image)) == await reader.read_base64(image.as_uri())


@pytest.mark.asyncio
async def test_missing_file_is_validation_error(tmp_path):
    source = FileImageSource(str(tmp_path / "missing.png"), FileSystemReader())

    with pytest.raises(ValidationError) as exc_info:
        await source.read_base64()

    assert exc_info.value.field == "image"


def test_resolve_prefers_inline_payload():
    reader = FileSystemReader()

    inline = resolve_image_source(PickedAsset(uri="file:///a.png", base64="AAAA"), reader)
    fallback = resolve_image_source(PickedAsset(uri="file:///a.png"), reader)

    assert isinstance(inline, InlineImageSource)
    assert isinstance(fallback, FileImageSource)
    assert fallback.reader is reader
